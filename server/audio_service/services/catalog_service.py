from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import CatalogWriteError, RecordNotFound
from ..models.audio_record import AudioRecord
from .metadata_service import AudioMetadata
from .storage_service import StorageService, StoredBlob

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, storage: StorageService) -> None:
        self.storage = storage

    async def create_record(
        self,
        db: AsyncSession,
        owner_id: int,
        blob: StoredBlob,
        metadata: AudioMetadata,
        original_filename: str,
        mime_type: str,
        stored_at: datetime,
    ) -> AudioRecord:
        record = AudioRecord(
            owner_id=owner_id,
            filename=blob.filename,
            file_path=blob.relative_path,
            original_filename=original_filename[:255],
            mime_type=mime_type,
            file_size=blob.size,
            duration_seconds=metadata.duration,
            bitrate=metadata.bitrate,
            sample_rate=metadata.sample_rate,
            title=metadata.title,
            artist=metadata.artist,
            album=metadata.album,
            genre=metadata.genre,
            year=metadata.year,
            description=metadata.comment,
            created_at=stored_at,
            uploaded_at=datetime.now(timezone.utc),
        )
        # No refresh after commit; every column is set client-side.
        try:
            db.add(record)
            await db.commit()
        except SQLAlchemyError as exc:
            logger.error(f"[catalog] Insert failed for {blob.filename}: {exc}")
            await db.rollback()
            raise CatalogWriteError(f"Could not catalog {original_filename}") from exc
        return record

    async def list_records(self, db: AsyncSession, owner_id: int) -> list[AudioRecord]:
        stmt = (
            select(AudioRecord)
            .where(AudioRecord.owner_id == owner_id)
            .order_by(AudioRecord.uploaded_at.desc(), AudioRecord.id.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def find_record(self, db: AsyncSession, owner_id: int, record_id: int) -> AudioRecord:
        stmt = select(AudioRecord).where(AudioRecord.id == record_id, AudioRecord.owner_id == owner_id)
        record = await db.scalar(stmt)
        if record is None:
            # Foreign records look exactly like missing ones.
            raise RecordNotFound("Audio file not found")
        return record

    async def get_record(self, db: AsyncSession, owner_id: int, record_id: int) -> AudioRecord:
        record = await self.find_record(db, owner_id, record_id)
        await self._touch(db, record)
        return record

    async def _touch(self, db: AsyncSession, record: AudioRecord) -> None:
        record_id = record.id
        record.last_accessed_at = datetime.now(timezone.utc)
        try:
            await db.commit()
        except SQLAlchemyError as exc:
            # The read still succeeds with the stored state.
            logger.warning(f"[catalog] Could not update last access for record {record_id}: {exc}")
            await db.rollback()
            await db.refresh(record)

    async def update_record(
        self,
        db: AsyncSession,
        owner_id: int,
        record_id: int,
        changes: dict[str, object],
    ) -> AudioRecord:
        record = await self.find_record(db, owner_id, record_id)
        for field, value in changes.items():
            if field not in AudioRecord.DESCRIPTIVE_FIELDS:
                raise ValueError(f"{field} is not an editable field")
            setattr(record, field, value)
        await db.commit()
        await db.refresh(record)
        logger.info(f"[catalog] Updated record {record.id} fields {sorted(changes)}")
        return record

    async def delete_record(self, db: AsyncSession, owner_id: int, record_id: int) -> AudioRecord:
        record = await self.find_record(db, owner_id, record_id)

        # Blob removal is best-effort; the row goes regardless.
        if not self.storage.remove(record.file_path):
            logger.warning(f"[catalog] Blob for record {record.id} at {record.file_path} was not removed")

        await db.delete(record)
        await db.commit()
        logger.info(f"[catalog] Deleted record {record.id} ({record.filename})")
        return record
