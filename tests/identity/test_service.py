"""Tests for app/identity/service.py - LINE ID token verification."""

from urllib.parse import parse_qs

import httpx
import pytest

from app.core.exceptions import ExternalServiceError, InvalidTokenError
from app.identity.service import LineIdentityVerifier

CHANNEL_ID = "1234567890"


def _verifier(handler) -> LineIdentityVerifier:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.line.me"
    )
    return LineIdentityVerifier(channel_id=CHANNEL_ID, client=client)


@pytest.mark.asyncio
async def test_verify_returns_claims():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "iss": "https://access.line.me",
                "sub": "U1234",
                "aud": CHANNEL_ID,
                "name": "Taro",
                "picture": "https://profile.line-scdn.net/taro",
                "email": "taro@example.com",
            },
        )

    claims = await _verifier(handler).verify("id-token")

    assert claims.subject_id == "U1234"
    assert claims.name == "Taro"
    assert claims.email == "taro@example.com"
    assert seen[0].url.path == "/oauth2/v2.1/verify"
    assert parse_qs(seen[0].content.decode()) == {
        "id_token": ["id-token"],
        "client_id": [CHANNEL_ID],
    }


@pytest.mark.asyncio
async def test_verify_rejects_empty_token_without_calling_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("provider must not be called")

    with pytest.raises(InvalidTokenError):
        await _verifier(handler).verify("   ")


@pytest.mark.asyncio
async def test_verify_rejected_token():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": "invalid_request", "error_description": "IdToken expired."},
        )

    with pytest.raises(InvalidTokenError):
        await _verifier(handler).verify("expired")


@pytest.mark.asyncio
async def test_verify_missing_subject():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"aud": CHANNEL_ID})

    with pytest.raises(InvalidTokenError):
        await _verifier(handler).verify("id-token")


@pytest.mark.asyncio
async def test_verify_other_channel_audience():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"sub": "U1234", "aud": "999"})

    with pytest.raises(InvalidTokenError):
        await _verifier(handler).verify("id-token")


@pytest.mark.asyncio
async def test_verify_upstream_error_is_external_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(ExternalServiceError):
        await _verifier(handler).verify("id-token")


@pytest.mark.asyncio
async def test_verify_retries_network_error_once():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"sub": "U1234", "aud": CHANNEL_ID})

    claims = await _verifier(handler).verify("id-token")

    assert claims.subject_id == "U1234"
    assert calls == 2


@pytest.mark.asyncio
async def test_verify_unreachable_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError):
        await _verifier(handler).verify("id-token")
