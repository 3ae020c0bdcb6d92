from __future__ import annotations

from dataclasses import dataclass


class KnowledgeSyncError(RuntimeError):
    """Base error for failures inside the knowledge synchronization pipeline."""

    stage = "unknown"


@dataclass
class RemoteStatusError(KnowledgeSyncError):
    """Raised when the remote knowledge service answers with a non-2xx status."""

    status_code: int
    message: str

    def __str__(self) -> str:
        return f"remote service returned {self.status_code}: {self.message}"

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class RemoteCallError(KnowledgeSyncError):
    """Raised when a retryable remote call still fails after every attempt."""

    def __init__(self, attempts: int, cause: BaseException) -> None:
        super().__init__(f"remote call failed after {attempts} attempt(s): {cause}")
        self.attempts = attempts
        self.cause = cause


class UploadError(KnowledgeSyncError):
    stage = "upload"


class IndexTriggerError(KnowledgeSyncError):
    stage = "index"


class IndexPollFailure(KnowledgeSyncError):
    stage = "index"


class IndexTimeout(KnowledgeSyncError):
    stage = "index"


class ConfigFetchError(KnowledgeSyncError):
    stage = "link"


class ConfigWriteError(KnowledgeSyncError):
    stage = "link"


class DocumentDeleteError(KnowledgeSyncError):
    stage = "cleanup"
