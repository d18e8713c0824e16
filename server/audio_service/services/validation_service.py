from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Sequence

from fastapi import UploadFile

from ..core.config import IngestSettings
from ..core.errors import BatchRejected

logger = logging.getLogger(__name__)


@dataclass
class UploadCandidate:
    """One multipart part as declared by the client."""

    original_filename: str
    mime_type: str
    size: int
    upload: UploadFile | None = None


@dataclass
class Rejection:
    candidate: UploadCandidate
    reason: str


@dataclass
class ValidationOutcome:
    accepted: list[UploadCandidate] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)


def _declared_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def describe_upload(upload: UploadFile) -> UploadCandidate:
    return UploadCandidate(
        original_filename=upload.filename or "audio",
        mime_type=upload.content_type or "application/octet-stream",
        size=_declared_size(upload),
        upload=upload,
    )


def normalize_mime(mime_type: str) -> str:
    return mime_type.split(";", 1)[0].strip().lower()


class UploadValidator:
    def __init__(self, settings: IngestSettings) -> None:
        self.max_files = settings.max_files
        self.max_file_size = settings.max_file_size
        self.allowed_types = frozenset(normalize_mime(mime) for mime in settings.allowed_types)

    def validate(self, candidates: Sequence[UploadCandidate]) -> ValidationOutcome:
        """Screen a whole batch. Raises ``BatchRejected`` for batch-level breaches."""
        if not candidates:
            raise BatchRejected("empty", "No audio files provided")

        if len(candidates) > self.max_files:
            logger.warning(f"[validate] Batch of {len(candidates)} files exceeds limit of {self.max_files}")
            raise BatchRejected("count", f"Too many files. Maximum {self.max_files} files allowed.")

        for candidate in candidates:
            if candidate.size > self.max_file_size:
                logger.warning(
                    f"[validate] {candidate.original_filename} declares {candidate.size} bytes, "
                    f"limit is {self.max_file_size}"
                )
                raise BatchRejected(
                    "size",
                    f"File too large. Maximum size is {self.max_file_size // (1024 * 1024)}MB.",
                )

        outcome = ValidationOutcome()
        for candidate in candidates:
            if normalize_mime(candidate.mime_type) in self.allowed_types:
                outcome.accepted.append(candidate)
            else:
                logger.info(f"[validate] Rejecting {candidate.original_filename}: type {candidate.mime_type}")
                outcome.rejected.append(
                    Rejection(candidate, f"Invalid file type. Only audio files are allowed. Received: {candidate.mime_type}")
                )

        if not outcome.accepted:
            raise BatchRejected("type", "Invalid file type. Only audio files are allowed.")
        return outcome
