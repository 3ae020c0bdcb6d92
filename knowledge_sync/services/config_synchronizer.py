from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager, nullcontext

from knowledge_sync.services.contracts import KnowledgeClientProtocol
from knowledge_sync.services.models import AgentKnowledgeConfig, KnowledgeEntry, UsageMode

logger = logging.getLogger(__name__)


class AgentLockRegistry:
    """Per-agent asyncio locks that serialize config read-modify-write cycles in this process."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, agent_id: str) -> asyncio.Lock:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[agent_id] = lock
        return lock


class ConfigSynchronizer:
    """Links knowledge entries into an agent's shared configuration.

    ``link`` fetches the whole config, merges one entry and writes the whole
    config back. Without a lock registry two overlapping links for the same
    agent can overwrite each other's entry.
    """

    def __init__(
        self,
        client: KnowledgeClientProtocol,
        *,
        embedding_model: str,
        max_documents_length: int,
        locks: AgentLockRegistry | None = None,
    ) -> None:
        self._client = client
        self._embedding_model = embedding_model
        self._max_documents_length = max_documents_length
        self._locks = locks

    @staticmethod
    def build_entry(*, document_id: str, name: str, usage_mode: UsageMode = UsageMode.RETRIEVAL) -> KnowledgeEntry:
        return KnowledgeEntry(id=document_id, name=name, usage_mode=usage_mode)

    def merge(self, existing: AgentKnowledgeConfig, new_entry: KnowledgeEntry) -> AgentKnowledgeConfig:
        entries = list(existing.entries)
        if not existing.has_entry(new_entry.id):
            entries.append(new_entry)

        return AgentKnowledgeConfig(
            entries=entries,
            retrieval_enabled=True,
            embedding_model=self._embedding_model,
            max_documents_length=self._max_documents_length,
        )

    async def link(self, agent_id: str, entry: KnowledgeEntry) -> AgentKnowledgeConfig:
        async with self._agent_guard(agent_id):
            existing = await self._client.fetch_agent_config(agent_id)
            logger.debug(
                "fetched agent knowledge config",
                extra={"agent_id": agent_id, "existing_count": len(existing.entries), "existing_ids": existing.entry_ids()},
            )

            updated = self.merge(existing, entry)
            await self._client.patch_agent_config(agent_id, updated)

        logger.info(
            "linked document to agent",
            extra={"agent_id": agent_id, "document_id": entry.id, "entry_count": len(updated.entries)},
        )
        return updated

    def _agent_guard(self, agent_id: str) -> AbstractAsyncContextManager[object]:
        if self._locks is None:
            return nullcontext()
        return self._locks.lock_for(agent_id)
