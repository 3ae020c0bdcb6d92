from __future__ import annotations

import punq
from fastapi import Request

from knowledge_sync.core.settings import Settings
from knowledge_sync.services.config_synchronizer import AgentLockRegistry, ConfigSynchronizer
from knowledge_sync.services.contracts import (
    IngestionServiceProtocol,
    KnowledgeClientProtocol,
    OrphanLedgerProtocol,
    ReconciliationServiceProtocol,
)
from knowledge_sync.services.indexing_monitor import IndexingMonitor
from knowledge_sync.services.ingestion_service import IngestionOrchestrator
from knowledge_sync.services.knowledge_client import RemoteKnowledgeClient
from knowledge_sync.services.orphan_ledger import InMemoryOrphanLedger, RedisOrphanLedger
from knowledge_sync.services.reconciliation_service import ReconciliationService
from knowledge_sync.services.retry import RetryExecutor


def build_container(settings: Settings) -> punq.Container:
    if not settings.knowledge_api_key:
        raise ValueError("KNOWLEDGE_API_KEY required to call the knowledge service")
    if not settings.knowledge_agent_id:
        raise ValueError("KNOWLEDGE_AGENT_ID required to link uploaded documents")
    agent_id = settings.knowledge_agent_id

    container = punq.Container()
    container.register(Settings, instance=settings)

    container.register(
        RetryExecutor,
        factory=lambda: RetryExecutor(
            max_attempts=settings.retry_max_attempts,
            initial_delay_seconds=settings.retry_initial_delay_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        KnowledgeClientProtocol,
        factory=lambda: RemoteKnowledgeClient(
            base_url=settings.knowledge_api_base_url,
            api_key=settings.knowledge_api_key,
            retry=container.resolve(RetryExecutor),
            timeout_seconds=settings.knowledge_api_timeout_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        OrphanLedgerProtocol,
        factory=lambda: (
            RedisOrphanLedger(
                redis_url=settings.orphan_ledger_redis_url,
                key_prefix=settings.orphan_ledger_key_prefix,
            )
            if settings.orphan_ledger_redis_url
            else InMemoryOrphanLedger()
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        ConfigSynchronizer,
        factory=lambda: ConfigSynchronizer(
            container.resolve(KnowledgeClientProtocol),
            embedding_model=settings.embedding_model,
            max_documents_length=settings.max_documents_length,
            locks=AgentLockRegistry() if settings.serialize_agent_writes else None,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        IndexingMonitor,
        factory=lambda: IndexingMonitor(
            container.resolve(KnowledgeClientProtocol),
            embedding_model=settings.embedding_model,
            max_attempts=settings.index_poll_max_attempts,
            poll_interval_seconds=settings.index_poll_interval_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        IngestionServiceProtocol,
        factory=lambda: IngestionOrchestrator(
            container.resolve(KnowledgeClientProtocol),
            container.resolve(IndexingMonitor),
            container.resolve(ConfigSynchronizer),
            agent_id=agent_id,
            strict_indexing=settings.strict_indexing,
            orphan_ledger=container.resolve(OrphanLedgerProtocol),
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        ReconciliationServiceProtocol,
        factory=lambda: ReconciliationService(
            container.resolve(KnowledgeClientProtocol),
            container.resolve(ConfigSynchronizer),
            container.resolve(OrphanLedgerProtocol),
            delete_unlinkable=settings.reconcile_delete_unlinkable,
        ),
        scope=punq.Scope.singleton,
    )

    return container


def get_container(request: Request) -> punq.Container:
    return request.app.state.container
