from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ALLOWED_AUDIO_TYPES = (
    "audio/mpeg",
    "audio/wav",
    "audio/flac",
    "audio/ogg",
    "audio/aac",
    "audio/mp4",
    "audio/webm",
)


class JwtSettings(BaseModel):
    secret_key: str
    access_expires_minutes: int = Field(default=60, ge=1)
    algorithm: str = "HS256"


class StorageSettings(BaseModel):
    provider: Literal["local"] = "local"
    media_root: Path = Path("./media")
    chunk_size: int = Field(default=1024 * 1024, ge=1)


class IngestSettings(BaseModel):
    max_files: int = Field(default=10, ge=1)
    max_file_size: int = Field(default=100 * 1024 * 1024, ge=1)
    allowed_types: tuple[str, ...] = DEFAULT_ALLOWED_AUDIO_TYPES


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field(alias="DATABASE_URL")
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_expires_min: int = Field(default=60, alias="ACCESS_EXPIRES_MIN")
    storage_provider: Literal["local"] = Field(default="local", alias="STORAGE_PROVIDER")
    media_root: Path = Field(default=Path("./media"), alias="MEDIA_ROOT")
    upload_chunk_size: int = Field(default=1024 * 1024, ge=1, alias="UPLOAD_CHUNK_SIZE")
    max_files_per_upload: int = Field(default=10, ge=1, alias="MAX_FILES_PER_UPLOAD")
    max_file_size_bytes: int = Field(default=100 * 1024 * 1024, ge=1, alias="MAX_FILE_SIZE_BYTES")
    allowed_audio_types: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_ALLOWED_AUDIO_TYPES,
        alias="ALLOWED_AUDIO_TYPES",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("allowed_audio_types", mode="before")
    @classmethod
    def _split_types(cls, value: object) -> object:
        # Accept "audio/mpeg,audio/wav" from the environment.
        if isinstance(value, str):
            return tuple(item.strip().lower() for item in value.split(",") if item.strip())
        return value

    def jwt(self) -> JwtSettings:
        return JwtSettings(
            secret_key=self.jwt_secret,
            access_expires_minutes=self.access_expires_min,
            algorithm=self.jwt_algorithm,
        )

    def storage(self) -> StorageSettings:
        return StorageSettings(
            provider=self.storage_provider,
            media_root=self.media_root,
            chunk_size=self.upload_chunk_size,
        )

    def ingest(self) -> IngestSettings:
        return IngestSettings(
            max_files=self.max_files_per_upload,
            max_file_size=self.max_file_size_bytes,
            allowed_types=tuple(self.allowed_audio_types),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
