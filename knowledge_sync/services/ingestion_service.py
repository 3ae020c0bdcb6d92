from __future__ import annotations

import asyncio
import logging

from knowledge_sync.services.config_synchronizer import ConfigSynchronizer
from knowledge_sync.services.contracts import KnowledgeClientProtocol, OrphanLedgerProtocol
from knowledge_sync.services.errors import (
    ConfigFetchError,
    ConfigWriteError,
    IndexPollFailure,
    IndexTimeout,
    IndexTriggerError,
    KnowledgeSyncError,
    UploadError,
)
from knowledge_sync.services.indexing_monitor import IndexingMonitor, raise_for_outcome
from knowledge_sync.services.models import IndexingState, IngestionRequest, IngestionResult, OrphanRecord

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Runs upload, indexing and agent linking for one document and reports a single result."""

    def __init__(
        self,
        client: KnowledgeClientProtocol,
        monitor: IndexingMonitor,
        synchronizer: ConfigSynchronizer,
        *,
        agent_id: str,
        strict_indexing: bool = False,
        orphan_ledger: OrphanLedgerProtocol | None = None,
    ) -> None:
        self._client = client
        self._monitor = monitor
        self._synchronizer = synchronizer
        self._agent_id = agent_id
        self._strict_indexing = strict_indexing
        self._orphan_ledger = orphan_ledger

    async def upload_to_knowledge_base(
        self,
        *,
        owner_id: str,
        name: str,
        content: str,
        category: str | None = None,
    ) -> IngestionResult:
        request = IngestionRequest(owner_id=owner_id, document_name=name, content=content, category=category)
        return await self.ingest(request)

    async def ingest(self, request: IngestionRequest, *, stop: asyncio.Event | None = None) -> IngestionResult:
        log_context = {
            "owner_id": request.owner_id,
            "document_name": request.document_name,
            "category": request.category,
        }
        logger.info("starting ingestion", extra=log_context)

        try:
            document_id = await self._client.upload_file(
                owner_id=request.owner_id,
                name=request.document_name,
                content=request.content,
            )
        except UploadError:
            logger.exception("document upload failed", extra=log_context)
            return IngestionResult.failed("upload")

        indexing_state: IndexingState | None = None
        try:
            outcome = await self._monitor.run(document_id, stop=stop)
            indexing_state = outcome.state
            if self._strict_indexing:
                raise_for_outcome(outcome)
            elif outcome.state is not IndexingState.SUCCEEDED:
                logger.warning(
                    "indexing did not succeed, linking document anyway",
                    extra={"document_id": document_id, "state": outcome.state.value, "attempts": outcome.attempts},
                )
        except IndexTriggerError as exc:
            if self._strict_indexing:
                return await self._fail_after_upload("index", request, document_id, exc, indexing_state)
            logger.warning(
                "indexing trigger failed, linking document anyway",
                extra={"document_id": document_id, "error": str(exc)},
            )
        except (IndexPollFailure, IndexTimeout) as exc:
            return await self._fail_after_upload("index", request, document_id, exc, indexing_state)

        entry = self._synchronizer.build_entry(document_id=document_id, name=request.document_name)
        try:
            await self._synchronizer.link(self._agent_id, entry)
        except (ConfigFetchError, ConfigWriteError) as exc:
            return await self._fail_after_upload("link", request, document_id, exc, indexing_state)

        logger.info(
            "ingestion completed",
            extra={**log_context, "document_id": document_id, "indexing_state": getattr(indexing_state, "value", None)},
        )
        return IngestionResult.succeeded(document_id, indexing_state)

    async def _fail_after_upload(
        self,
        reason: str,
        request: IngestionRequest,
        document_id: str,
        exc: KnowledgeSyncError,
        indexing_state: IndexingState | None,
    ) -> IngestionResult:
        logger.error(
            "ingestion failed after upload, document left unlinked",
            extra={"document_id": document_id, "reason": reason, "error": str(exc)},
        )
        if self._orphan_ledger is not None:
            orphan = OrphanRecord(
                document_id=document_id,
                agent_id=self._agent_id,
                name=request.document_name,
                owner_id=request.owner_id,
                stage=exc.stage,
                detail=str(exc),
            )
            try:
                await self._orphan_ledger.record(orphan)
            except Exception:
                logger.exception(
                    "failed to record orphaned document",
                    extra={"document_id": document_id, "agent_id": self._agent_id},
                )
        return IngestionResult.failed(reason, document_id=document_id, indexing_state=indexing_state)
