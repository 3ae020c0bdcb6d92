from __future__ import annotations

import logging

from knowledge_sync.services.config_synchronizer import ConfigSynchronizer
from knowledge_sync.services.contracts import KnowledgeClientProtocol, OrphanLedgerProtocol
from knowledge_sync.services.errors import ConfigFetchError, ConfigWriteError, DocumentDeleteError
from knowledge_sync.services.models import ReconciliationReport

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Retries linking for documents that were uploaded but never made it into an agent config."""

    def __init__(
        self,
        client: KnowledgeClientProtocol,
        synchronizer: ConfigSynchronizer,
        orphan_ledger: OrphanLedgerProtocol,
        *,
        delete_unlinkable: bool = False,
    ) -> None:
        self._client = client
        self._synchronizer = synchronizer
        self._orphan_ledger = orphan_ledger
        self._delete_unlinkable = delete_unlinkable

    async def reconcile(self) -> ReconciliationReport:
        report = ReconciliationReport()
        orphans = await self._orphan_ledger.list_orphans()
        logger.info("starting orphan reconciliation", extra={"orphan_count": len(orphans)})

        for orphan in orphans:
            entry = self._synchronizer.build_entry(document_id=orphan.document_id, name=orphan.name)
            try:
                await self._synchronizer.link(orphan.agent_id, entry)
            except (ConfigFetchError, ConfigWriteError) as exc:
                logger.warning(
                    "orphan relink failed",
                    extra={"document_id": orphan.document_id, "agent_id": orphan.agent_id, "error": str(exc)},
                )
            else:
                await self._orphan_ledger.resolve(orphan.document_id)
                report.linked.append(orphan.document_id)
                continue

            if not self._delete_unlinkable:
                report.remaining.append(orphan.document_id)
                continue

            try:
                await self._client.delete_document(orphan.document_id)
            except DocumentDeleteError as exc:
                logger.warning(
                    "orphan delete failed",
                    extra={"document_id": orphan.document_id, "error": str(exc)},
                )
                report.remaining.append(orphan.document_id)
                continue

            await self._orphan_ledger.resolve(orphan.document_id)
            report.deleted.append(orphan.document_id)

        logger.info(
            "orphan reconciliation finished",
            extra={"linked": len(report.linked), "deleted": len(report.deleted), "remaining": len(report.remaining)},
        )
        return report
