from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from ..core.config import StorageSettings
from ..core.errors import BlobWriteError
from .orphans import OrphanRegistry

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_EXTENSION = re.compile(r"\.[A-Za-z0-9]{1,10}")
_MAX_BASENAME = 100


@dataclass(frozen=True)
class StoredBlob:
    filename: str
    relative_path: str
    absolute_path: Path
    size: int


def sanitize_basename(original_filename: str) -> tuple[str, str]:
    """Split a client filename into a filesystem-safe stem and lower-cased extension."""
    # Clients may send Windows paths; only the last component is kept.
    name = Path(original_filename.replace("\\", "/")).name
    path = Path(name)
    extension = path.suffix.lower() if _EXTENSION.fullmatch(path.suffix) else ""
    stem = path.stem if extension else name
    stem = _UNSAFE_CHARS.sub("_", stem).strip("._")[:_MAX_BASENAME]
    return stem or "audio", extension


class StorageService:
    def __init__(self, settings: StorageSettings, orphans: OrphanRegistry | None = None) -> None:
        self.media_root = settings.media_root
        self.media_root.mkdir(parents=True, exist_ok=True)
        # Always work with an absolute media root path for consistency across OSes.
        self.media_root = self.media_root.resolve()
        self.chunk_size = settings.chunk_size
        self.orphans = orphans if orphans is not None else OrphanRegistry()

    def build_filename(self, owner_id: int, original_filename: str) -> str:
        stem, extension = sanitize_basename(original_filename)
        timestamp_us = time.time_ns() // 1000
        return f"{owner_id}_{timestamp_us}_{secrets.token_hex(4)}_{stem}{extension}"

    def resolve_path(self, stored_path: str) -> Path:
        """Normalize a stored path (relative, absolute or Windows-style) to an absolute location."""
        normalized = (stored_path or "").strip().replace("\\", "/")
        if normalized.startswith("./"):
            normalized = normalized[2:]

        path = Path(normalized) if normalized else Path()
        if path.is_absolute():
            try:
                parts = list(path.relative_to(self.media_root).parts)
            except ValueError:
                return path.resolve()
        else:
            parts = list(path.parts)
            if parts and parts[0] == self.media_root.name:
                parts = parts[1:]
        return self.media_root.joinpath(*parts).resolve()

    def to_relative(self, path: Path) -> str:
        return "/".join(path.relative_to(self.media_root).parts)

    async def save_upload(self, owner_id: int, upload: UploadFile, original_filename: str) -> StoredBlob:
        filename = self.build_filename(owner_id, original_filename)
        target_dir = self.media_root / str(owner_id)
        path = target_dir / filename
        logger.info(f"[storage] Saving {original_filename} for owner {owner_id} to {path}")

        size = 0
        created = False
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            await upload.seek(0)
            # Exclusive create: never overwrite another upload's blob.
            with path.open("xb") as outfile:
                created = True
                while True:
                    chunk = await upload.read(self.chunk_size)
                    if not chunk:
                        break
                    outfile.write(chunk)
                    size += len(chunk)

            actual_size = path.stat().st_size
            if actual_size != size:
                raise OSError(f"size mismatch: wrote {size} bytes but file is {actual_size} bytes")
        except asyncio.CancelledError:
            if created:
                self._discard_partial(owner_id, path, "write cancelled")
            raise
        except Exception as exc:
            logger.error(f"[storage] Failed to write {path}: {exc}", exc_info=True)
            if created:
                self._discard_partial(owner_id, path, "write failed")
            raise BlobWriteError(f"Could not store {original_filename}") from exc

        logger.info(f"[storage] Wrote {size} bytes to {path}")
        return StoredBlob(filename=filename, relative_path=self.to_relative(path), absolute_path=path, size=size)

    def _discard_partial(self, owner_id: int, path: Path, reason: str) -> None:
        if not self.remove(path):
            self.orphans.record(self.to_relative(path), owner_id, reason)

    def remove(self, path: Path | str) -> bool:
        """Best-effort delete. A blob that is already gone counts as removed."""
        target = path if isinstance(path, Path) else self.resolve_path(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(f"[storage] Could not delete {target}: {exc}")
            return False
        return True
