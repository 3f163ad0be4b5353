"""Tests for app/notification/service.py - LINE Messaging API gateway."""

import base64
import hashlib
import hmac
import json

import anyio
import httpx
import pytest

from app.core.exceptions import DeliveryError
from app.notification.service import (
    MAX_TEXT_LENGTH,
    LineNotificationDispatcher,
    deliver_best_effort,
    verify_signature,
)


def _dispatcher(handler, access_token: str | None = "token", attempts: int = 3):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.line.me"
    )
    return LineNotificationDispatcher(
        access_token=access_token, attempts=attempts, client=client, base_delay=0
    )


@pytest.mark.asyncio
async def test_send_pushes_text_message():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    await _dispatcher(handler).send("U1", "hello")

    request = seen[0]
    assert request.url.path == "/v2/bot/message/push"
    assert request.headers["Authorization"] == "Bearer token"
    assert request.headers["X-Line-Retry-Key"]
    assert json.loads(request.content) == {
        "to": "U1",
        "messages": [{"type": "text", "text": "hello"}],
    }


@pytest.mark.asyncio
async def test_send_truncates_long_text():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    await _dispatcher(handler).send("U1", "x" * (MAX_TEXT_LENGTH + 10))

    text = json.loads(seen[0].content)["messages"][0]["text"]
    assert len(text) == MAX_TEXT_LENGTH


@pytest.mark.asyncio
async def test_send_retries_with_same_retry_key():
    retry_keys: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        retry_keys.append(request.headers["X-Line-Retry-Key"])
        if len(retry_keys) == 1:
            return httpx.Response(500)
        return httpx.Response(200, json={})

    await _dispatcher(handler).send("U1", "hello")

    assert len(retry_keys) == 2
    assert retry_keys[0] == retry_keys[1]


@pytest.mark.asyncio
async def test_send_accepts_conflict_on_retry():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(409, json={"message": "The retry key is already accepted"})

    await _dispatcher(handler).send("U1", "hello")

    assert calls == 2


@pytest.mark.asyncio
async def test_send_conflict_on_first_attempt_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409)

    with pytest.raises(DeliveryError):
        await _dispatcher(handler).send("U1", "hello")


@pytest.mark.asyncio
async def test_send_gives_up_after_bounded_attempts():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(429)

    with pytest.raises(DeliveryError):
        await _dispatcher(handler, attempts=3).send("U1", "hello")

    assert calls == 3


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(400)

    with pytest.raises(DeliveryError):
        await _dispatcher(handler).send("U1", "hello")

    assert calls == 1


@pytest.mark.asyncio
async def test_missing_token_raises_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("API must not be called")

    with pytest.raises(DeliveryError):
        await _dispatcher(handler, access_token=None).send("U1", "hello")


@pytest.mark.asyncio
async def test_set_channel_menu():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    await _dispatcher(handler).set_channel_menu("U1", "richmenu-member")

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/v2/bot/user/U1/richmenu/richmenu-member"


@pytest.mark.asyncio
async def test_get_profile():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v2/bot/profile/U1"
        return httpx.Response(
            200,
            json={
                "userId": "U1",
                "displayName": "Taro",
                "pictureUrl": "https://profile.line-scdn.net/taro",
            },
        )

    profile = await _dispatcher(handler).get_profile("U1")

    assert profile.display_name == "Taro"
    assert profile.picture_url == "https://profile.line-scdn.net/taro"
    assert profile.status_message is None


@pytest.mark.asyncio
async def test_get_profile_rejects_non_object_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["U1"])

    with pytest.raises(DeliveryError):
        await _dispatcher(handler).get_profile("U1")


@pytest.mark.asyncio
async def test_user_ids_are_escaped_in_paths():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"userId": "U1"})

    dispatcher = _dispatcher(handler)
    await dispatcher.get_profile("../../v2/bot/info")
    await dispatcher.set_channel_menu("U1/x", "richmenu/all")

    assert seen[0].url.raw_path == b"/v2/bot/profile/..%2F..%2Fv2%2Fbot%2Finfo"
    assert seen[1].url.raw_path == b"/v2/bot/user/U1%2Fx/richmenu/richmenu%2Fall"


# deliver_best_effort


@pytest.mark.asyncio
async def test_deliver_best_effort_returns_result():
    async def fn():
        return "ok"

    assert await deliver_best_effort("op", fn, timeout=1.0) == "ok"


@pytest.mark.asyncio
async def test_deliver_best_effort_swallows_delivery_error(caplog):
    async def fn():
        raise DeliveryError("push failed")

    with caplog.at_level("WARNING", logger="app.notification.service"):
        result = await deliver_best_effort("welcome_message", fn, timeout=1.0, user_id="u1")

    assert result is None
    record = next(r for r in caplog.records if r.name == "app.notification.service")
    assert record.operation == "welcome_message"
    assert record.identifiers == {"user_id": "u1"}


@pytest.mark.asyncio
async def test_deliver_best_effort_times_out(caplog):
    async def fn():
        await anyio.sleep(5)
        return "late"

    with caplog.at_level("WARNING", logger="app.notification.service"):
        result = await deliver_best_effort("check_in_message", fn, timeout=0.05)

    assert result is None
    assert any("timed out" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_deliver_best_effort_swallows_unexpected_errors(caplog):
    async def fn():
        raise AttributeError("profile has no display_name")

    with caplog.at_level("WARNING", logger="app.notification.service"):
        result = await deliver_best_effort("get_profile", fn, timeout=1.0, user_id="u1")

    assert result is None
    record = next(r for r in caplog.records if r.name == "app.notification.service")
    assert "failed unexpectedly" in record.getMessage()
    assert record.exc_info is not None
    assert record.identifiers == {"user_id": "u1"}


# Webhook signatures


def _sign(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def test_verify_signature():
    body = b'{"events":[]}'

    assert verify_signature(body, _sign(body, "secret"), "secret") is True
    assert verify_signature(body, _sign(body, "other"), "secret") is False
    assert verify_signature(body + b" ", _sign(body, "secret"), "secret") is False
