from __future__ import annotations

import pytest

from knowledge_sync.core.settings import Settings
from knowledge_sync.dependency_injection import build_container
from knowledge_sync.services.config_synchronizer import ConfigSynchronizer
from knowledge_sync.services.contracts import (
    IngestionServiceProtocol,
    KnowledgeClientProtocol,
    OrphanLedgerProtocol,
    ReconciliationServiceProtocol,
)
from knowledge_sync.services.ingestion_service import IngestionOrchestrator
from knowledge_sync.services.knowledge_client import RemoteKnowledgeClient
from knowledge_sync.services.orphan_ledger import InMemoryOrphanLedger, RedisOrphanLedger


def test_container_resolves_singleton_services(test_settings: Settings) -> None:
    container = build_container(test_settings)

    assert container.resolve(KnowledgeClientProtocol) is container.resolve(KnowledgeClientProtocol)
    assert container.resolve(OrphanLedgerProtocol) is container.resolve(OrphanLedgerProtocol)
    assert container.resolve(ConfigSynchronizer) is container.resolve(ConfigSynchronizer)
    assert container.resolve(IngestionServiceProtocol) is container.resolve(IngestionServiceProtocol)
    assert container.resolve(ReconciliationServiceProtocol) is container.resolve(ReconciliationServiceProtocol)


def test_container_wires_remote_client_and_orchestrator(test_settings: Settings) -> None:
    container = build_container(test_settings)

    assert isinstance(container.resolve(KnowledgeClientProtocol), RemoteKnowledgeClient)
    assert isinstance(container.resolve(IngestionServiceProtocol), IngestionOrchestrator)


def test_container_uses_in_memory_ledger_without_redis_url(test_settings: Settings) -> None:
    container = build_container(test_settings)

    assert isinstance(container.resolve(OrphanLedgerProtocol), InMemoryOrphanLedger)


def test_container_uses_redis_ledger_when_configured() -> None:
    settings = Settings(
        KNOWLEDGE_API_KEY="test-key",
        KNOWLEDGE_AGENT_ID="agent-1",
        ORPHAN_LEDGER_REDIS_URL="redis://localhost:16379/0",
    )
    container = build_container(settings)

    assert isinstance(container.resolve(OrphanLedgerProtocol), RedisOrphanLedger)


@pytest.mark.parametrize(
    ("overrides", "missing"),
    [
        ({"KNOWLEDGE_AGENT_ID": "agent-1"}, "KNOWLEDGE_API_KEY"),
        ({"KNOWLEDGE_API_KEY": "test-key"}, "KNOWLEDGE_AGENT_ID"),
    ],
)
def test_container_requires_credentials_at_startup(
    monkeypatch: pytest.MonkeyPatch,
    overrides: dict[str, str],
    missing: str,
) -> None:
    monkeypatch.delenv(missing, raising=False)

    with pytest.raises(ValueError, match=missing):
        build_container(Settings(_env_file=None, **overrides))
