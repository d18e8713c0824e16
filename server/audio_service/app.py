from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import audio
from .core.config import Settings, get_settings
from .core.db import Database
from .core.errors import AudioServiceError
from .services.catalog_service import CatalogService
from .services.ingestion_service import IngestionService
from .services.metadata_service import MetadataService
from .services.orphans import OrphanRegistry
from .services.storage_service import StorageService
from .services.validation_service import UploadValidator

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    settings: Settings
    database: Database
    storage_service: StorageService
    metadata_service: MetadataService
    catalog_service: CatalogService
    ingestion_service: IngestionService
    orphan_registry: OrphanRegistry


def build_state(settings: Settings) -> AppState:
    database = Database(settings.database_url)
    orphan_registry = OrphanRegistry()
    storage_service = StorageService(settings.storage(), orphan_registry)
    metadata_service = MetadataService()
    catalog_service = CatalogService(storage_service)
    ingestion_service = IngestionService(
        validator=UploadValidator(settings.ingest()),
        storage=storage_service,
        metadata=metadata_service,
        catalog=catalog_service,
        orphans=orphan_registry,
    )
    return AppState(
        settings=settings,
        database=database,
        storage_service=storage_service,
        metadata_service=metadata_service,
        catalog_service=catalog_service,
        ingestion_service=ingestion_service,
        orphan_registry=orphan_registry,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Audio Catalog API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.container = build_state(settings)
    app.include_router(audio.router)

    @app.exception_handler(AudioServiceError)
    async def handle_service_error(request: Request, exc: AudioServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.on_event("shutdown")
    async def release_resources() -> None:
        state: AppState = app.state.container
        pending = state.orphan_registry.pending()
        if pending:
            logger.warning(f"Shutting down with {len(pending)} orphaned blob(s) awaiting cleanup")
        await state.database.dispose()

    return app
