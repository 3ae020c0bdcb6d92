from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IndexingStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @classmethod
    def from_remote(cls, value: object) -> IndexingStatus:
        """Collapse the remote status vocabulary into the three states we act on."""

        normalized = str(value or "").strip().lower()
        if normalized == "succeeded":
            return cls.SUCCEEDED
        if normalized == "failed":
            return cls.FAILED
        return cls.PENDING


class UsageMode(str, Enum):
    FULL = "prompt"
    RETRIEVAL = "auto"


class IngestionStatus(str, Enum):
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class IndexingState(str, Enum):
    TRIGGERED = "triggered"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in {IndexingState.SUCCEEDED, IndexingState.FAILED, IndexingState.TIMED_OUT}


class IngestionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner_id: str
    document_name: str
    content: str
    category: str | None = None


class RemoteDocument(BaseModel):
    id: str
    name: str = ""
    indexing_status: IndexingStatus = IndexingStatus.PENDING
    progress_percent: int = Field(default=0, ge=0, le=100)


class KnowledgeEntry(BaseModel):
    """One item of an agent's knowledge list.

    Entries read from the remote agent keep their original payload in
    ``remote_payload`` and are written back exactly as read, including fields
    this service does not model and entries that carry no id.
    """

    model_config = ConfigDict(frozen=True)

    type: str = "file"
    id: str | None = None
    name: str = ""
    usage_mode: UsageMode = UsageMode.RETRIEVAL
    remote_payload: dict[str, Any] | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_remote(cls, payload: dict[str, Any]) -> KnowledgeEntry:
        raw_mode = payload.get("usage_mode")
        usage_mode = UsageMode.FULL if raw_mode == UsageMode.FULL.value else UsageMode.RETRIEVAL
        raw_id = payload.get("id")
        return cls(
            type=str(payload.get("type") or "file"),
            id=str(raw_id) if raw_id is not None else None,
            name=str(payload.get("name") or ""),
            usage_mode=usage_mode,
            remote_payload=dict(payload),
        )

    def to_remote(self) -> dict[str, Any]:
        if self.remote_payload is not None:
            return dict(self.remote_payload)
        return {"type": self.type, "name": self.name, "id": self.id, "usage_mode": self.usage_mode.value}


class AgentKnowledgeConfig(BaseModel):
    entries: list[KnowledgeEntry] = Field(default_factory=list)
    retrieval_enabled: bool = False
    embedding_model: str = ""
    max_documents_length: int = 0

    def entry_ids(self) -> list[str]:
        return [entry.id for entry in self.entries if entry.id is not None]

    def has_entry(self, document_id: str) -> bool:
        return any(entry.id == document_id for entry in self.entries)


class IndexingOutcome(BaseModel):
    document_id: str
    state: IndexingState
    attempts: int
    progress_percent: int = 0


class IngestionResult(BaseModel):
    document_id: str | None = None
    status: IngestionStatus
    reason: str | None = None
    indexing_state: IndexingState | None = None

    @classmethod
    def succeeded(cls, document_id: str, indexing_state: IndexingState | None = None) -> IngestionResult:
        return cls(document_id=document_id, status=IngestionStatus.SUCCEEDED, indexing_state=indexing_state)

    @classmethod
    def failed(
        cls,
        reason: str,
        *,
        document_id: str | None = None,
        indexing_state: IndexingState | None = None,
    ) -> IngestionResult:
        return cls(
            document_id=document_id,
            status=IngestionStatus.FAILED,
            reason=reason,
            indexing_state=indexing_state,
        )


class OrphanRecord(BaseModel):
    document_id: str
    agent_id: str
    name: str
    owner_id: str
    stage: str
    detail: str | None = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ReconciliationReport(BaseModel):
    linked: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    remaining: list[str] = Field(default_factory=list)
