from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol

from knowledge_sync.services.models import (
    AgentKnowledgeConfig,
    IngestionRequest,
    IngestionResult,
    OrphanRecord,
    ReconciliationReport,
    RemoteDocument,
)


class KnowledgeClientProtocol(Protocol):
    """Remote knowledge-base and agent-configuration operations used by the pipeline."""

    async def upload_file(self, *, owner_id: str, name: str, content: str) -> str:
        """Upload raw text as a knowledge-base file and return the remote document id."""

    async def trigger_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        """Start indexing for a document; raises ``IndexTriggerError`` when the call fails."""

    async def check_index(self, *, document_id: str, embedding_model: str) -> RemoteDocument:
        """Read the current indexing status of a document."""

    async def fetch_agent_config(self, agent_id: str) -> AgentKnowledgeConfig:
        """Load the agent's current knowledge entries and retrieval settings."""

    async def patch_agent_config(self, agent_id: str, config: AgentKnowledgeConfig) -> None:
        """Overwrite the agent's knowledge entries and retrieval settings."""

    async def delete_document(self, document_id: str) -> None:
        """Remove a knowledge-base document from the remote service."""

    async def close(self) -> None:
        """Release network resources."""


class OrphanLedgerProtocol(Protocol):
    """Local record of documents uploaded remotely but never linked to an agent."""

    async def ping(self) -> bool:
        """Check that the backing store is reachable."""

    async def record(self, orphan: OrphanRecord) -> None:
        """Store or replace the orphan entry for ``orphan.document_id``."""

    async def list_orphans(self) -> Sequence[OrphanRecord]:
        """Return every tracked orphan, oldest first."""

    async def resolve(self, document_id: str) -> None:
        """Forget an orphan once it has been linked or deleted."""

    async def close(self) -> None:
        """Release backing-store resources."""


class IngestionServiceProtocol(Protocol):
    """Entry point that turns document text into a linked knowledge entry."""

    async def ingest(self, request: IngestionRequest, *, stop: asyncio.Event | None = None) -> IngestionResult:
        """Run upload, indexing and linking for one document; ``stop`` ends indexing waits early."""


class ReconciliationServiceProtocol(Protocol):
    """Periodic repair pass over uploaded-but-unlinked documents."""

    async def reconcile(self) -> ReconciliationReport:
        """Retry linking every tracked orphan and report what changed."""
