from __future__ import annotations

import asyncio

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
import pytest

from knowledge_sync.api.routers import knowledge as knowledge_router
from knowledge_sync.api.schemas.knowledge import DocumentIngestRequest
from knowledge_sync.services.contracts import IngestionServiceProtocol, ReconciliationServiceProtocol
from knowledge_sync.services.models import (
    IndexingState,
    IngestionRequest,
    IngestionResult,
    IngestionStatus,
    ReconciliationReport,
)
from tests.conftest import build_test_container, build_test_request


class FakeIngestionService:
    def __init__(self, result: IngestionResult) -> None:
        self.result = result
        self.calls: list[IngestionRequest] = []

    async def ingest(self, request: IngestionRequest, *, stop: asyncio.Event | None = None) -> IngestionResult:
        self.calls.append(request)
        return self.result


class FakeReconciliationService:
    async def reconcile(self) -> ReconciliationReport:
        return ReconciliationReport(linked=["doc-1"], remaining=["doc-2"])


def _build_app(bindings: dict[object, object]) -> FastAPI:
    container = build_test_container(bindings)
    app = FastAPI()

    @app.middleware("http")
    async def attach_container(request, call_next):
        request.app.state.container = container
        return await call_next(request)

    app.include_router(knowledge_router.router, prefix="/api")
    return app


@pytest.mark.asyncio
async def test_ingest_document_maps_payload_into_ingestion_request() -> None:
    service = FakeIngestionService(IngestionResult.succeeded("doc-1", IndexingState.SUCCEEDED))
    request = build_test_request(build_test_container({IngestionServiceProtocol: service}))

    response = await knowledge_router.ingest_document(
        payload=DocumentIngestRequest(owner_id="u1", name="notes.txt", content="hello world", category="notes"),
        request=request,
    )

    assert response.document_id == "doc-1"
    assert response.status is IngestionStatus.SUCCEEDED
    assert response.indexing_state is IndexingState.SUCCEEDED
    assert service.calls == [
        IngestionRequest(owner_id="u1", document_name="notes.txt", content="hello world", category="notes")
    ]


@pytest.mark.asyncio
async def test_ingest_document_failure_raises_bad_gateway() -> None:
    service = FakeIngestionService(IngestionResult.failed("link", document_id="doc-1"))
    request = build_test_request(build_test_container({IngestionServiceProtocol: service}))

    with pytest.raises(HTTPException) as exc_info:
        await knowledge_router.ingest_document(
            payload=DocumentIngestRequest(owner_id="u1", name="notes.txt", content="hello"),
            request=request,
        )

    assert exc_info.value.status_code == 502
    assert exc_info.value.detail["reason"] == "link"
    assert exc_info.value.detail["document_id"] == "doc-1"


def test_api_ingest_document_returns_created() -> None:
    service = FakeIngestionService(IngestionResult.succeeded("doc-1", IndexingState.TIMED_OUT))
    app = _build_app({IngestionServiceProtocol: service})

    with TestClient(app) as client:
        response = client.post(
            "/api/knowledge/documents",
            json={"owner_id": "u1", "name": "notes.txt", "content": "hello world", "category": "notes"},
        )

    assert response.status_code == 201
    assert response.json() == {"document_id": "doc-1", "status": "succeeded", "indexing_state": "timed_out"}


def test_api_ingest_document_upload_failure_returns_bad_gateway() -> None:
    service = FakeIngestionService(IngestionResult.failed("upload"))
    app = _build_app({IngestionServiceProtocol: service})

    with TestClient(app) as client:
        response = client.post("/api/knowledge/documents", json={"owner_id": "u1", "name": "n", "content": "c"})

    assert response.status_code == 502
    assert response.json()["detail"]["reason"] == "upload"


def test_api_ingest_document_rejects_empty_content() -> None:
    service = FakeIngestionService(IngestionResult.succeeded("doc-1"))
    app = _build_app({IngestionServiceProtocol: service})

    with TestClient(app) as client:
        response = client.post("/api/knowledge/documents", json={"owner_id": "u1", "name": "n", "content": ""})

    assert response.status_code == 422
    assert service.calls == []


def test_api_reconcile_returns_report() -> None:
    app = _build_app({ReconciliationServiceProtocol: FakeReconciliationService()})

    with TestClient(app) as client:
        response = client.post("/api/knowledge/reconcile")

    assert response.status_code == 200
    assert response.json() == {"linked": ["doc-1"], "deleted": [], "remaining": ["doc-2"]}
