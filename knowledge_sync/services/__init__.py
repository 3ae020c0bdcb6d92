"""Service layer for the knowledge synchronization pipeline."""

from knowledge_sync.services.config_synchronizer import AgentLockRegistry, ConfigSynchronizer
from knowledge_sync.services.indexing_monitor import IndexingMonitor
from knowledge_sync.services.ingestion_service import IngestionOrchestrator
from knowledge_sync.services.knowledge_client import RemoteKnowledgeClient
from knowledge_sync.services.reconciliation_service import ReconciliationService
from knowledge_sync.services.retry import RetryExecutor

__all__ = [
    "AgentLockRegistry",
    "ConfigSynchronizer",
    "IndexingMonitor",
    "IngestionOrchestrator",
    "ReconciliationService",
    "RemoteKnowledgeClient",
    "RetryExecutor",
]
