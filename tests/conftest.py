"""Shared test utilities and fixtures for knowledge-sync tests."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
import punq

from knowledge_sync.core.settings import Settings
from knowledge_sync.services.models import AgentKnowledgeConfig, IndexingStatus, RemoteDocument


class FakeKnowledgeClient:
    """In-memory stand-in for the remote knowledge service boundary.

    Indexing calls (trigger and checks) consume ``index_statuses`` in order and
    keep returning the last status once the list is exhausted. Fetch returns a
    snapshot of the stored config and patch replaces it, so the fake behaves like
    shared remote state.
    """

    def __init__(
        self,
        *,
        index_statuses: list[IndexingStatus] | None = None,
        config: AgentKnowledgeConfig | None = None,
        upload_error: Exception | None = None,
        trigger_error: Exception | None = None,
        check_errors: dict[int, Exception] | None = None,
        fetch_error: Exception | None = None,
        patch_error: Exception | None = None,
        delete_error: Exception | None = None,
        fetch_barrier: asyncio.Barrier | None = None,
        yield_after_fetch: bool = False,
    ) -> None:
        self.index_statuses = list(index_statuses or [IndexingStatus.SUCCEEDED])
        self.config = config or AgentKnowledgeConfig()
        self.upload_error = upload_error
        self.trigger_error = trigger_error
        self.check_errors = check_errors or {}
        self.fetch_error = fetch_error
        self.patch_error = patch_error
        self.delete_error = delete_error
        self.fetch_barrier = fetch_barrier
        self.yield_after_fetch = yield_after_fetch

        self.upload_calls: list[dict[str, str]] = []
        self.index_calls: list[str] = []
        self.fetch_calls: list[str] = []
        self.patch_calls: list[tuple[str, AgentKnowledgeConfig]] = []
        self.delete_calls: list[str] = []
        self.closed = False

    async def upload_file(self, *, owner_id: str, name: str, content: str) -> str:
        self.upload_calls.append({"owner_id": owner_id, "name": name, "content": content})
        if self.upload_error is not None:
            raise self.upload_error
        return f"doc-{len(self.upload_calls)}"

    async def trigger_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        self.index_calls.append(document_id)
        if self.trigger_error is not None:
            raise self.trigger_error
        return self._next_document(document_id)

    async def check_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        self.index_calls.append(document_id)
        error = self.check_errors.get(len(self.index_calls))
        if error is not None:
            raise error
        return self._next_document(document_id)

    async def fetch_agent_config(self, agent_id: str) -> AgentKnowledgeConfig:
        self.fetch_calls.append(agent_id)
        if self.fetch_error is not None:
            raise self.fetch_error
        snapshot = self.config.model_copy(deep=True)
        if self.fetch_barrier is not None:
            await self.fetch_barrier.wait()
        elif self.yield_after_fetch:
            await asyncio.sleep(0)
        return snapshot

    async def patch_agent_config(self, agent_id: str, config: AgentKnowledgeConfig) -> None:
        self.patch_calls.append((agent_id, config))
        if self.patch_error is not None:
            raise self.patch_error
        self.config = config.model_copy(deep=True)

    async def delete_document(self, document_id: str) -> None:
        self.delete_calls.append(document_id)
        if self.delete_error is not None:
            raise self.delete_error

    async def close(self) -> None:
        self.closed = True

    def _next_document(self, document_id: str) -> RemoteDocument:
        status = self.index_statuses.pop(0) if len(self.index_statuses) > 1 else self.index_statuses[0]
        progress = 100 if status is IndexingStatus.SUCCEEDED else 50
        return RemoteDocument(id=document_id, indexing_status=status, progress_percent=progress)


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def test_settings() -> Settings:
    return Settings(KNOWLEDGE_API_KEY="test-key", KNOWLEDGE_AGENT_ID="agent-1")


def build_test_request(container: punq.Container):
    """Build a request-shaped object using a real punq container in app state."""

    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(container=container)))


def build_test_container(bindings: dict[object, object]) -> punq.Container:
    """Create a punq container and bind protocol/service keys to test doubles."""

    container = punq.Container()
    for key, value in bindings.items():
        container.register(key, instance=value)
    return container
