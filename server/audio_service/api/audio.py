from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.deps import Owner, get_app_state, get_current_owner, get_db_session
from ..schemas.audio import (
    AudioListResponse,
    AudioRecordRead,
    AudioRecordResponse,
    AudioRecordUpdate,
    DeleteResponse,
    IngestFailure,
    UploadResponse,
)
from ..services.catalog_service import CatalogService
from ..services.ingestion_service import IngestionService

logger = logging.getLogger(__name__)


def get_catalog_service(request: Request) -> CatalogService:
    return get_app_state(request).catalog_service


def get_ingestion_service(request: Request) -> IngestionService:
    return get_app_state(request).ingestion_service


router = APIRouter(prefix="/audio", tags=["audio"])


@router.get("", response_model=AudioListResponse)
async def list_audio(
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db_session),
    catalog: CatalogService = Depends(get_catalog_service),
) -> AudioListResponse:
    records = await catalog.list_records(db, owner.id)
    return AudioListResponse(data=[AudioRecordRead.model_validate(record) for record in records])


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_audio(
    audio: list[UploadFile] | None = File(default=None),
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db_session),
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> UploadResponse:
    uploads = audio or []
    logger.info(f"[upload] Owner {owner.id} submitted {len(uploads)} file(s)")
    result = await ingestion.ingest_uploads(db, owner.id, uploads)
    return UploadResponse(
        message=f"Successfully uploaded {len(result.committed)} audio file(s)",
        data=[AudioRecordRead.model_validate(record) for record in result.committed],
        failed=[
            IngestFailure(original_filename=failure.original_filename, stage=failure.stage, reason=failure.reason)
            for failure in result.failed
        ],
    )


@router.get("/{record_id}", response_model=AudioRecordResponse)
async def get_audio(
    record_id: int,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db_session),
    catalog: CatalogService = Depends(get_catalog_service),
) -> AudioRecordResponse:
    record = await catalog.get_record(db, owner.id, record_id)
    return AudioRecordResponse(data=AudioRecordRead.model_validate(record))


@router.patch("/{record_id}", response_model=AudioRecordResponse)
async def update_audio(
    record_id: int,
    payload: AudioRecordUpdate,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db_session),
    catalog: CatalogService = Depends(get_catalog_service),
) -> AudioRecordResponse:
    record = await catalog.update_record(db, owner.id, record_id, payload.changes())
    return AudioRecordResponse(data=AudioRecordRead.model_validate(record))


@router.delete("/{record_id}", response_model=DeleteResponse)
async def delete_audio(
    record_id: int,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db_session),
    catalog: CatalogService = Depends(get_catalog_service),
) -> DeleteResponse:
    record = await catalog.delete_record(db, owner.id, record_id)
    return DeleteResponse(message=f'Audio file "{record.filename}" deleted successfully')
