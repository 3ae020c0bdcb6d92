from __future__ import annotations

import logging
from typing import Any

import httpx

from knowledge_sync.services.errors import (
    ConfigFetchError,
    ConfigWriteError,
    DocumentDeleteError,
    IndexTriggerError,
    KnowledgeSyncError,
    RemoteStatusError,
    UploadError,
)
from knowledge_sync.services.models import AgentKnowledgeConfig, IndexingStatus, KnowledgeEntry, RemoteDocument
from knowledge_sync.services.retry import RetryExecutor

logger = logging.getLogger(__name__)

# Transport failures that can escape the retry loop without being classified as retryable.
_CALL_FAILURES = (KnowledgeSyncError, httpx.HTTPError, TimeoutError, ConnectionError, ValueError)


class RemoteKnowledgeClient:
    """Typed façade over the conversational-AI service's knowledge-base and agent endpoints."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        retry: RetryExecutor,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._retry = retry
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            headers={"xi-api-key": api_key},
            timeout=timeout_seconds,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def upload_file(self, *, owner_id: str, name: str, content: str) -> str:
        async def _upload() -> dict[str, Any]:
            response = await self._client.post(
                "/convai/knowledge-base/file",
                files={"file": (f"{name}.txt", content.encode("utf-8"), "text/plain")},
                data={"name": name},
            )
            return self._json_or_raise(response)

        try:
            payload = await self._retry.execute(_upload, description="upload_file")
        except _CALL_FAILURES as exc:
            raise UploadError(f"failed to upload document '{name}': {exc}") from exc

        document_id = payload.get("id") or payload.get("document_id")
        if not document_id:
            raise UploadError(f"upload of '{name}' returned no document id")

        logger.info(
            "uploaded document to knowledge base",
            extra={"document_id": document_id, "owner_id": owner_id, "content_length": len(content)},
        )
        return str(document_id)

    async def trigger_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        try:
            return await self._start_or_check_index(document_id=document_id, embedding_model=embedding_model)
        except _CALL_FAILURES as exc:
            raise IndexTriggerError(f"failed to trigger indexing for {document_id}: {exc}") from exc

    async def check_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        """Re-issues the trigger request; the remote treats it as a status read once a job exists."""

        return await self._start_or_check_index(document_id=document_id, embedding_model=embedding_model)

    async def fetch_agent_config(self, agent_id: str) -> AgentKnowledgeConfig:
        async def _fetch() -> dict[str, Any]:
            response = await self._client.get(f"/convai/agents/{agent_id}")
            return self._json_or_raise(response)

        try:
            payload = await self._retry.execute(_fetch, description="fetch_agent_config")
            return self._parse_agent_config(payload)
        except _CALL_FAILURES + (KeyError, TypeError) as exc:
            raise ConfigFetchError(f"failed to fetch agent config for {agent_id}: {exc}") from exc

    async def patch_agent_config(self, agent_id: str, config: AgentKnowledgeConfig) -> None:
        body = self._agent_config_payload(config)

        async def _patch() -> None:
            response = await self._client.patch(f"/convai/agents/{agent_id}", json=body)
            self._raise_for_status(response)

        try:
            await self._retry.execute(_patch, description="patch_agent_config")
        except _CALL_FAILURES as exc:
            raise ConfigWriteError(f"failed to update agent config for {agent_id}: {exc}") from exc

    async def delete_document(self, document_id: str) -> None:
        async def _delete() -> None:
            response = await self._client.delete(f"/convai/knowledge-base/{document_id}")
            if response.status_code == 404:
                logger.info("document already absent remotely", extra={"document_id": document_id})
                return
            self._raise_for_status(response)

        try:
            await self._retry.execute(_delete, description="delete_document")
        except _CALL_FAILURES as exc:
            raise DocumentDeleteError(f"failed to delete document {document_id}: {exc}") from exc

    async def _start_or_check_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        async def _index() -> dict[str, Any]:
            response = await self._client.post(
                f"/convai/knowledge-base/{document_id}/rag-index",
                json={"model": embedding_model},
            )
            return self._json_or_raise(response)

        payload = await self._retry.execute(_index, description="rag_index")
        return self._parse_remote_document(document_id, payload)

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise RemoteStatusError(status_code=response.status_code, message=response.text[:500])

    @classmethod
    def _json_or_raise(cls, response: httpx.Response) -> dict[str, Any]:
        cls._raise_for_status(response)
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object response")
        return payload

    @staticmethod
    def _parse_remote_document(document_id: str, payload: dict[str, Any]) -> RemoteDocument:
        raw_progress = payload.get("progress_percentage") or 0
        try:
            progress = int(float(raw_progress))
        except (TypeError, ValueError):
            progress = 0
        return RemoteDocument(
            id=str(payload.get("id") or document_id),
            name=str(payload.get("name") or ""),
            indexing_status=IndexingStatus.from_remote(payload.get("status")),
            progress_percent=min(max(progress, 0), 100),
        )

    @staticmethod
    def _parse_agent_config(payload: dict[str, Any]) -> AgentKnowledgeConfig:
        prompt = ((payload.get("conversation_config") or {}).get("agent") or {}).get("prompt") or {}
        rag = prompt.get("rag") or {}
        entries = [KnowledgeEntry.from_remote(item) for item in prompt.get("knowledge_base") or []]
        return AgentKnowledgeConfig(
            entries=entries,
            retrieval_enabled=bool(rag.get("enabled", False)),
            embedding_model=str(rag.get("embedding_model") or ""),
            max_documents_length=int(rag.get("max_documents_length") or 0),
        )

    @staticmethod
    def _agent_config_payload(config: AgentKnowledgeConfig) -> dict[str, Any]:
        return {
            "conversation_config": {
                "agent": {
                    "prompt": {
                        "knowledge_base": [entry.to_remote() for entry in config.entries],
                        "rag": {
                            "enabled": config.retrieval_enabled,
                            "embedding_model": config.embedding_model,
                            "max_documents_length": config.max_documents_length,
                        },
                    }
                }
            }
        }
