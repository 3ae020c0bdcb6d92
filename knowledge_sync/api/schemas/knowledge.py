from pydantic import BaseModel, Field

from knowledge_sync.services.models import IndexingState, IngestionStatus


class DocumentIngestRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, description="Identifier of the user who owns the document")
    name: str = Field(..., min_length=1, description="Display name of the document in the agent's knowledge base")
    content: str = Field(..., min_length=1, description="Plain text already extracted from the uploaded file")
    category: str | None = Field(default=None, description="Optional caller-side category label")


class DocumentIngestResponse(BaseModel):
    document_id: str = Field(..., description="Remote knowledge-base document id")
    status: IngestionStatus = Field(..., description="Final pipeline status")
    indexing_state: IndexingState | None = Field(
        default=None,
        description="Last observed indexing state; anything but succeeded means retrieval may still be partial",
    )


class ReconcileResponse(BaseModel):
    linked: list[str] = Field(default_factory=list, description="Orphans linked into their agent during this pass")
    deleted: list[str] = Field(default_factory=list, description="Orphans removed from the remote service")
    remaining: list[str] = Field(default_factory=list, description="Orphans still unlinked after this pass")
