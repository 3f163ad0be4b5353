"""Identity assertion verification.

Verifies LINE Login ID tokens against the LINE Platform verify endpoint:
https://developers.line.biz/en/reference/line-login/#verify-id-token
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

import httpx

from app.core.exceptions import AppException, ExternalServiceError, InvalidTokenError
from app.core.http import get_line_client
from app.core.retry import with_retry

logger = logging.getLogger(__name__)

VERIFY_ID_TOKEN_PATH = "/oauth2/v2.1/verify"


@dataclass(frozen=True)
class IdentityClaims:
    """Claims extracted from a verified identity assertion."""

    subject_id: str
    name: str | None = None
    picture: str | None = None
    email: str | None = None


class IdentityVerifier(Protocol):
    """Protocol for identity assertion verification."""

    async def verify(self, token: str) -> IdentityClaims:
        """Verify the token and return its claims, or raise InvalidTokenError."""
        ...


class LineIdentityVerifier:
    """Verifies LINE Login ID tokens issued for one login channel."""

    def __init__(self, channel_id: str | None, client: httpx.AsyncClient | None = None):
        self._channel_id = channel_id
        self._client = client

    def _ensure_channel_id(self) -> str:
        if not self._channel_id:
            raise AppException("LINE Login channel ID not configured")
        return self._channel_id

    async def verify(self, token: str) -> IdentityClaims:
        """Verify a LINE ID token.

        Raises:
            InvalidTokenError: If the token is empty, expired, malformed or
                issued for another channel
            ExternalServiceError: If the LINE Platform is unreachable
        """
        if not token or not token.strip():
            raise InvalidTokenError("Identity token is required")

        channel_id = self._ensure_channel_id()
        client = self._client or get_line_client()

        async def do_request() -> httpx.Response:
            return await client.post(
                VERIFY_ID_TOKEN_PATH,
                data={"id_token": token, "client_id": channel_id},
            )

        try:
            response = await with_retry(
                do_request,
                exceptions=(httpx.RequestError,),
                operation="verify_id_token",
            )
        except httpx.RequestError as e:
            raise ExternalServiceError("Identity provider unavailable") from e

        if 400 <= response.status_code < 500:
            logger.info("ID token rejected: status=%s", response.status_code)
            raise InvalidTokenError()
        if response.status_code != 200:
            raise ExternalServiceError(
                f"Identity provider returned status {response.status_code}"
            )

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                "Identity provider returned an invalid response"
            ) from e

        return self._extract_claims(data, channel_id)

    @staticmethod
    def _extract_claims(data: dict[str, Any], channel_id: str) -> IdentityClaims:
        subject_id = data.get("sub")
        if not subject_id:
            raise InvalidTokenError("Invalid identity token: missing subject")
        if data.get("aud") not in (None, channel_id):
            raise InvalidTokenError("Identity token was issued for another channel")
        return IdentityClaims(
            subject_id=subject_id,
            name=data.get("name"),
            picture=data.get("picture"),
            email=data.get("email"),
        )


@lru_cache
def get_identity_verifier() -> LineIdentityVerifier:
    """Get cached identity verifier instance."""
    from app.core.settings import get_settings

    settings = get_settings()
    return LineIdentityVerifier(channel_id=settings.line_login_channel_id)
