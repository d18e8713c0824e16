from __future__ import annotations

import io
import os
import struct
import wave
from typing import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import UploadFile
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import Headers

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_audio.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ACCESS_EXPIRES_MIN", "15")

from audio_service.app import AppState, create_app  # noqa: E402
from audio_service.core.config import Settings  # noqa: E402
from audio_service.core.security import create_access_token  # noqa: E402


def make_wav(seconds: float = 1.0, sample_rate: int = 8000) -> bytes:
    """A small valid mono 16-bit PCM file."""
    frames = int(seconds * sample_rate)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(struct.pack(f"<{frames}h", *([0] * frames)))
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        JWT_SECRET="test-secret",
        MEDIA_ROOT=str(tmp_path / "media"),
        UPLOAD_CHUNK_SIZE=4096,
    )


@pytest_asyncio.fixture
async def app(settings):
    application = create_app(settings)
    state: AppState = application.state.container
    await state.database.create_all()
    yield application
    await state.database.dispose()


@pytest.fixture
def state(app) -> AppState:
    return app.state.container


@pytest_asyncio.fixture
async def async_client(app) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def db(state):
    async for session in state.database.session():
        yield session


@pytest.fixture
def auth_headers(settings):
    def _headers(owner_id: int = 1, role: str = "USER") -> dict[str, str]:
        token = create_access_token(str(owner_id), role=role, settings=settings.jwt())
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def stored_blobs(state):
    def _blobs() -> list:
        return sorted(path for path in state.storage_service.media_root.rglob("*") if path.is_file())

    return _blobs


@pytest.fixture
def wav_bytes() -> bytes:
    return make_wav()


@pytest.fixture
def make_upload():
    def _upload(data: bytes, filename: str = "track.mp3", content_type: str = "audio/mpeg") -> UploadFile:
        return UploadFile(
            file=io.BytesIO(data),
            size=len(data),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    return _upload
