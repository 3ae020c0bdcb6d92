from fastapi import APIRouter, HTTPException, Request, status

from knowledge_sync.api.schemas.knowledge import DocumentIngestRequest, DocumentIngestResponse, ReconcileResponse
from knowledge_sync.dependency_injection import get_container
from knowledge_sync.services.contracts import IngestionServiceProtocol, ReconciliationServiceProtocol
from knowledge_sync.services.models import IngestionRequest, IngestionStatus

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.post(
    "/documents",
    response_model=DocumentIngestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add document text to the agent knowledge base",
    description="Uploads the text, waits for indexing (up to about a minute) and links it into the agent configuration.",
)
async def ingest_document(payload: DocumentIngestRequest, request: Request) -> DocumentIngestResponse:
    service = get_container(request).resolve(IngestionServiceProtocol)
    result = await service.ingest(
        IngestionRequest(
            owner_id=payload.owner_id,
            document_name=payload.name,
            content=payload.content,
            category=payload.category,
        )
    )
    if result.status is IngestionStatus.FAILED or result.document_id is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "reason": result.reason,
                "status": result.status.value,
                "document_id": result.document_id,
            },
        )
    return DocumentIngestResponse(
        document_id=result.document_id,
        status=result.status,
        indexing_state=result.indexing_state,
    )


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Relink or clean up orphaned documents",
    description="Retries linking every document that was uploaded but never added to its agent configuration.",
)
async def reconcile_orphans(request: Request) -> ReconcileResponse:
    service = get_container(request).resolve(ReconciliationServiceProtocol)
    report = await service.reconcile()
    return ReconcileResponse(linked=report.linked, deleted=report.deleted, remaining=report.remaining)
