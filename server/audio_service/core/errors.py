from __future__ import annotations

from typing import Literal

RejectReason = Literal["empty", "count", "size", "type"]


class AudioServiceError(Exception):
    """Base error rendered to callers as ``{"detail": message, "code": code}``."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BatchRejected(AudioServiceError):
    """The batch failed admission before anything was written."""

    status_code = 400

    def __init__(self, reason: RejectReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.code = f"batch_rejected_{reason}"


class PerFileIngestFailed(AudioServiceError):
    """One file of a batch could not be committed. Handled inside the orchestrator."""

    stage: str = "ingest"


class BlobWriteError(PerFileIngestFailed):
    stage = "storage"
    code = "blob_write_failed"


class CatalogWriteError(PerFileIngestFailed):
    stage = "catalog"
    code = "catalog_write_failed"


class BatchFullyFailed(AudioServiceError):
    status_code = 500
    code = "batch_failed"


class RecordNotFound(AudioServiceError):
    status_code = 404
    code = "not_found"
