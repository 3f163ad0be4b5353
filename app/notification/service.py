"""Messaging channel gateway.

Wraps the LINE Messaging API for push messages, per-user rich menus and
profile lookups:
https://developers.line.biz/en/reference/messaging-api/

Everything here is best-effort from the caller's point of view: failures
raise ``DeliveryError`` and orchestrators hand calls to
``deliver_best_effort`` so they can never fail a request.
"""

import base64
import hashlib
import hmac
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import quote

import anyio
import httpx

from app.core.exceptions import DeliveryError
from app.core.http import get_line_client
from app.core.retry import with_retry

logger = logging.getLogger(__name__)

PUSH_MESSAGE_PATH = "/v2/bot/message/push"
USER_RICH_MENU_PATH = "/v2/bot/user/{user_id}/richmenu/{rich_menu_id}"
PROFILE_PATH = "/v2/bot/profile/{user_id}"

# LINE caps text messages at 5000 characters.
MAX_TEXT_LENGTH = 5000


@dataclass(frozen=True)
class MessagingProfile:
    """Public profile of a messaging-channel user."""

    user_id: str
    display_name: str | None = None
    picture_url: str | None = None
    status_message: str | None = None


class NotificationDispatcher(Protocol):
    """Protocol for messaging-channel side effects."""

    async def send(self, external_id: str, content: str) -> None:
        """Push a text message to the user."""
        ...

    async def set_channel_menu(self, external_id: str, menu_id: str) -> None:
        """Link a rich menu to the user."""
        ...

    async def get_profile(self, external_id: str) -> MessagingProfile:
        """Fetch the user's public profile."""
        ...


class _RetryableStatusError(Exception):
    """Upstream answered with a status worth retrying (429, 5xx)."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"status {status_code}")


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class LineNotificationDispatcher:
    """Notification dispatcher backed by the LINE Messaging API."""

    def __init__(
        self,
        access_token: str | None,
        attempts: int = 3,
        client: httpx.AsyncClient | None = None,
        base_delay: float = 0.2,
    ):
        self._access_token = access_token
        self._attempts = attempts
        self._client = client
        self._base_delay = base_delay

    def _headers(self) -> dict[str, str]:
        if not self._access_token:
            raise DeliveryError("LINE Messaging API token not configured")
        return {"Authorization": f"Bearer {self._access_token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        accept_conflict_on_retry: bool = False,
    ) -> httpx.Response:
        """Send a request with bounded retry on network errors, 429 and 5xx.

        With ``accept_conflict_on_retry`` a 409 after the first attempt is
        treated as success: LINE answers 409 when a retry key was already
        accepted.
        """
        request_headers = {**self._headers(), **(headers or {})}
        client = self._client or get_line_client()
        attempt = 0

        async def do_request() -> httpx.Response:
            nonlocal attempt
            attempt += 1
            response = await client.request(
                method, path, json=json, headers=request_headers
            )
            if _is_retryable_status(response.status_code):
                raise _RetryableStatusError(response.status_code)
            return response

        try:
            response = await with_retry(
                do_request,
                attempts=self._attempts,
                exceptions=(httpx.RequestError, _RetryableStatusError),
                base_delay=self._base_delay,
                operation=operation,
            )
        except (httpx.RequestError, _RetryableStatusError) as e:
            raise DeliveryError(f"{operation} failed: {e}") from e

        if response.status_code == 409 and accept_conflict_on_retry and attempt > 1:
            return response
        if response.status_code != 200:
            raise DeliveryError(f"{operation} failed: status {response.status_code}")
        return response

    async def send(self, external_id: str, content: str) -> None:
        """Push a text message.

        The same ``X-Line-Retry-Key`` is sent on every attempt so a retried
        push is delivered at most once.
        """
        await self._request(
            "POST",
            PUSH_MESSAGE_PATH,
            operation="push_message",
            json={
                "to": external_id,
                "messages": [{"type": "text", "text": content[:MAX_TEXT_LENGTH]}],
            },
            headers={"X-Line-Retry-Key": str(uuid.uuid4())},
            accept_conflict_on_retry=True,
        )

    async def set_channel_menu(self, external_id: str, menu_id: str) -> None:
        await self._request(
            "POST",
            USER_RICH_MENU_PATH.format(
                user_id=quote(external_id, safe=""),
                rich_menu_id=quote(menu_id, safe=""),
            ),
            operation="link_rich_menu",
        )

    async def get_profile(self, external_id: str) -> MessagingProfile:
        response = await self._request(
            "GET",
            PROFILE_PATH.format(user_id=quote(external_id, safe="")),
            operation="get_profile",
        )
        try:
            data = response.json()
        except ValueError as e:
            raise DeliveryError("get_profile returned an invalid response") from e
        if not isinstance(data, dict):
            raise DeliveryError("get_profile returned an invalid response")
        return MessagingProfile(
            user_id=data.get("userId", external_id),
            display_name=data.get("displayName"),
            picture_url=data.get("pictureUrl"),
            status_message=data.get("statusMessage"),
        )


async def deliver_best_effort[T](
    operation: str,
    fn: Callable[[], Awaitable[T]],
    *,
    timeout: float,
    **identifiers: Any,
) -> T | None:
    """Run a messaging call without letting it fail or stall the caller.

    Returns the call's result, or None when it raised, or ran past
    ``timeout`` seconds. Every such outcome is logged at warning level.
    """
    result: T | None = None
    with anyio.move_on_after(timeout) as scope:
        try:
            result = await fn()
        except DeliveryError as e:
            logger.warning(
                "Best-effort %s failed: %s",
                operation,
                e.message,
                extra={
                    "operation": operation,
                    "error_type": e.error_type,
                    "identifiers": identifiers,
                },
            )
            return None
        except Exception:
            logger.warning(
                "Best-effort %s failed unexpectedly",
                operation,
                exc_info=True,
                extra={"operation": operation, "identifiers": identifiers},
            )
            return None
    if scope.cancelled_caught:
        logger.warning(
            "Best-effort %s timed out after %.1fs",
            operation,
            timeout,
            extra={"operation": operation, "identifiers": identifiers},
        )
    return result


def verify_signature(body: bytes, signature: str, channel_secret: str) -> bool:
    """Check a webhook ``x-line-signature`` (base64 HMAC-SHA256 of the body)."""
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, signature)


@lru_cache
def get_notification_dispatcher() -> LineNotificationDispatcher:
    """Get cached notification dispatcher instance."""
    from app.core.settings import get_settings

    settings = get_settings()
    return LineNotificationDispatcher(
        access_token=settings.line_messaging_api_token,
        attempts=settings.notification_attempts,
    )
