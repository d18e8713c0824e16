from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import mutagen
from mutagen.id3 import ID3

logger = logging.getLogger(__name__)

_YEAR = re.compile(r"^\s*(\d{4})")

# Easy-tag names for the ID3 text frames that containers like WAV and AIFF expose raw.
_ID3_TEXT_FRAMES = {"title": "TIT2", "artist": "TPE1", "album": "TALB", "date": "TDRC", "year": "TYER"}


@dataclass(frozen=True)
class AudioMetadata:
    duration: int | None = None
    bitrate: int | None = None
    sample_rate: int | None = None
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    year: int | None = None
    comment: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.__dict__.values())


def _first(tags: Any, *keys: str) -> str | None:
    if not tags:
        return None
    for key in keys:
        try:
            values = tags.get(key)
        except (KeyError, ValueError):
            continue
        if values is None:
            continue
        if isinstance(values, (list, tuple)):
            values = values[0] if values else None
        if values is None:
            continue
        text = str(values).strip()
        if text:
            return text
    return None


def _round(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def _year(raw: str | None) -> int | None:
    if raw is None:
        return None
    match = _YEAR.match(raw)
    return int(match.group(1)) if match else None


def _id3_values(tags: ID3) -> dict[str, list[str]]:
    values: dict[str, list[str]] = {}
    for key, frame_id in _ID3_TEXT_FRAMES.items():
        frames = tags.getall(frame_id)
        if frames:
            values[key] = [str(text) for text in frames[0].text]
    genres = tags.getall("TCON")
    if genres:
        # Resolves numeric "(17)" references to genre names.
        values["genre"] = list(genres[0].genres)
    comments = tags.getall("COMM")
    if comments:
        values["comment"] = [str(text) for text in comments[0].text]
    return values


def read_metadata(path: Path) -> AudioMetadata:
    """Parse a file with mutagen. Raises on unreadable or unrecognized input."""
    audio = mutagen.File(str(path), easy=True)
    if audio is None:
        raise ValueError(f"Unrecognized audio container: {path.name}")

    info = audio.info
    sample_rate = getattr(info, "sample_rate", None)
    tags = audio.tags
    if isinstance(tags, ID3):
        tags = _id3_values(tags)
    return AudioMetadata(
        duration=_round(getattr(info, "length", None)),
        bitrate=_round(getattr(info, "bitrate", None)) or None,
        sample_rate=int(sample_rate) if sample_rate else None,
        title=_first(tags, "title"),
        artist=_first(tags, "artist"),
        album=_first(tags, "album"),
        genre=_first(tags, "genre"),
        year=_year(_first(tags, "date", "year", "originaldate")),
        comment=_first(tags, "comment", "description"),
    )


class MetadataService:
    async def extract(self, path: Path) -> AudioMetadata:
        """Best-effort extraction; malformed audio yields empty metadata."""
        try:
            return await asyncio.to_thread(read_metadata, path)
        except Exception as exc:
            logger.warning(f"[metadata] Failed to extract metadata from {path}: {exc}")
            return AudioMetadata()
