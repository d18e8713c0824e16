"""Multi-file ingestion.

Each admitted file goes through blob write, metadata extraction and catalog
insert in submission order. A failing file is compensated and skipped; the
rest of the batch carries on. Only a batch where nothing committed is an
error for the caller.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import BatchFullyFailed, BlobWriteError, CatalogWriteError, PerFileIngestFailed
from ..models.audio_record import AudioRecord
from .catalog_service import CatalogService
from .metadata_service import MetadataService
from .orphans import OrphanRegistry
from .storage_service import StorageService, StoredBlob
from .validation_service import UploadCandidate, UploadValidator, describe_upload

logger = logging.getLogger(__name__)


class FileState(str, enum.Enum):
    validated = "validated"
    blob_written = "blob_written"
    metadata_extracted = "metadata_extracted"
    cataloged = "cataloged"


@dataclass
class FileFailure:
    original_filename: str
    stage: str
    reason: str


@dataclass
class IngestResult:
    committed: list[AudioRecord] = field(default_factory=list)
    failed: list[FileFailure] = field(default_factory=list)


class IngestionService:
    def __init__(
        self,
        validator: UploadValidator,
        storage: StorageService,
        metadata: MetadataService,
        catalog: CatalogService,
        orphans: OrphanRegistry,
    ) -> None:
        self.validator = validator
        self.storage = storage
        self.metadata = metadata
        self.catalog = catalog
        self.orphans = orphans

    async def ingest_uploads(self, db: AsyncSession, owner_id: int, uploads: Sequence[UploadFile]) -> IngestResult:
        return await self.ingest(db, owner_id, [describe_upload(upload) for upload in uploads])

    async def ingest(self, db: AsyncSession, owner_id: int, candidates: Sequence[UploadCandidate]) -> IngestResult:
        # Raises BatchRejected before anything touches storage.
        outcome = self.validator.validate(candidates)
        logger.info(
            f"[ingest] Owner {owner_id} batch: {len(outcome.accepted)} accepted, {len(outcome.rejected)} rejected"
        )

        result = IngestResult(
            failed=[
                FileFailure(rejection.candidate.original_filename, "validation", rejection.reason)
                for rejection in outcome.rejected
            ]
        )

        for candidate in outcome.accepted:
            try:
                record = await self._ingest_one(db, owner_id, candidate)
            except PerFileIngestFailed as exc:
                logger.error(f"[ingest] {candidate.original_filename} failed at {exc.stage}: {exc.message}")
                result.failed.append(FileFailure(candidate.original_filename, exc.stage, exc.message))
                continue
            result.committed.append(record)

        if result.committed and len(result.failed) > len(outcome.rejected):
            # A failed insert rolls back the session, which expires rows committed earlier in the batch.
            for record in result.committed:
                await db.refresh(record)

        if not result.committed:
            logger.error(f"[ingest] Owner {owner_id} batch committed nothing ({len(result.failed)} failures)")
            raise BatchFullyFailed("Failed to process any audio files")

        logger.info(f"[ingest] Owner {owner_id} committed {len(result.committed)} file(s)")
        return result

    async def _ingest_one(self, db: AsyncSession, owner_id: int, candidate: UploadCandidate) -> AudioRecord:
        if candidate.upload is None:
            raise BlobWriteError(f"{candidate.original_filename} has no payload")

        blob = await self.storage.save_upload(owner_id, candidate.upload, candidate.original_filename)
        state = FileState.blob_written
        stored_at = datetime.now(timezone.utc)

        try:
            metadata = await self.metadata.extract(blob.absolute_path)
            state = FileState.metadata_extracted
            if metadata.is_empty:
                logger.info(f"[ingest] No metadata found in {candidate.original_filename}")

            record = await self.catalog.create_record(
                db,
                owner_id,
                blob,
                metadata,
                original_filename=candidate.original_filename,
                mime_type=candidate.mime_type,
                stored_at=stored_at,
            )
            state = FileState.cataloged
        except PerFileIngestFailed:
            logger.warning(f"[ingest] {candidate.original_filename} failed after {state.value}")
            self._compensate(owner_id, blob, "catalog insert failed")
            raise
        except Exception as exc:
            logger.error(
                f"[ingest] Unexpected error for {candidate.original_filename} after {state.value}", exc_info=True
            )
            self._compensate(owner_id, blob, "catalog insert failed")
            raise CatalogWriteError(f"Could not catalog {candidate.original_filename}") from exc
        except asyncio.CancelledError:
            # Cancelled before the row committed: the blob must not outlive the request.
            self._compensate(owner_id, blob, "request cancelled")
            raise

        logger.info(f"[ingest] {candidate.original_filename} -> record {record.id} ({state.value})")
        return record

    def _compensate(self, owner_id: int, blob: StoredBlob, reason: str) -> None:
        if self.storage.remove(blob.absolute_path):
            logger.info(f"[ingest] Removed blob {blob.relative_path} after {reason}")
            return
        self.orphans.record(blob.relative_path, owner_id, reason)
