from __future__ import annotations

from datetime import timedelta

import pytest

from audio_service.core.security import create_access_token, decode_token


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(async_client) -> None:
    resp = await async_client.get("/audio")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_bad_signature_is_forbidden(async_client, settings) -> None:
    forged = settings.jwt().model_copy(update={"secret_key": "someone-else"})
    token = create_access_token("1", settings=forged)

    resp = await async_client.get("/audio", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_expired_token_is_forbidden(async_client, settings) -> None:
    token = create_access_token("1", expires_delta=timedelta(minutes=-5), settings=settings.jwt())

    resp = await async_client.post(
        "/audio", files=[("audio", ("a.mp3", b"abc", "audio/mpeg"))], headers={"Authorization": f"Bearer {token}"}
    )

    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_garbage_token_is_forbidden(async_client) -> None:
    resp = await async_client.get("/audio", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 403


def test_decode_token_round_trips_owner_and_role(settings) -> None:
    token = create_access_token("42", role="ADMIN", settings=settings.jwt())

    payload = decode_token(token, settings=settings.jwt())

    assert payload["sub"] == "42"
    assert payload["role"] == "ADMIN"


def test_decode_token_rejects_non_numeric_subject(settings) -> None:
    token = create_access_token("alice", settings=settings.jwt())

    with pytest.raises(ValueError):
        decode_token(token, settings=settings.jwt())


@pytest.mark.asyncio
async def test_health_needs_no_token(async_client) -> None:
    resp = await async_client.get("/health")
    assert resp.json() == {"status": "ok"}
