from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import ConfigDict, Field, PlainSerializer, field_validator

from .base import CamelModel


def _stringify(value: int | None) -> str | None:
    return None if value is None else str(value)


# Serialized as strings so JSON clients never lose precision on wide integers.
WideInt = Annotated[int, PlainSerializer(lambda value: str(value), return_type=str)]
OptionalWideInt = Annotated[int | None, PlainSerializer(_stringify, return_type=str | None)]


class AudioRecordRead(CamelModel):
    id: int
    filename: str
    original_filename: str
    mime_type: str
    file_size: WideInt
    duration_seconds: OptionalWideInt = None
    bitrate: OptionalWideInt = None
    sample_rate: OptionalWideInt = None
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    year: OptionalWideInt = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    uploaded_at: datetime
    last_accessed_at: datetime | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value: object) -> object:
        return [] if value is None else value


class AudioRecordUpdate(CamelModel):
    """Descriptive fields only; anything else in the body is refused."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=255)
    artist: str | None = Field(default=None, max_length=255)
    album: str | None = Field(default=None, max_length=255)
    genre: str | None = Field(default=None, max_length=255)
    year: int | None = Field(default=None, ge=0, le=9999)
    description: str | None = None
    tags: list[str] | None = None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        seen: dict[str, None] = {}
        for tag in value:
            cleaned = tag.strip()
            if cleaned:
                seen.setdefault(cleaned, None)
        return list(seen)

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)


class IngestFailure(CamelModel):
    original_filename: str
    stage: Literal["validation", "storage", "catalog"]
    reason: str


class AudioListResponse(CamelModel):
    success: bool = True
    data: list[AudioRecordRead]


class AudioRecordResponse(CamelModel):
    success: bool = True
    data: AudioRecordRead


class UploadResponse(CamelModel):
    success: bool = True
    message: str
    data: list[AudioRecordRead]
    failed: list[IngestFailure] = Field(default_factory=list)


class DeleteResponse(CamelModel):
    success: bool = True
    message: str
