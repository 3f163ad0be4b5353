import hmac
import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqladmin.authentication import AuthenticationBackend
from starlette.requests import Request

from app.core.exceptions import AuthError
from app.core.settings import get_settings

logger = logging.getLogger(__name__)

http_basic = HTTPBasic(auto_error=False)


def check_admin_credentials(username: str, password: str) -> bool:
    """Constant-time comparison against ADMIN_USERNAME / ADMIN_PASSWORD."""
    settings = get_settings()
    username_ok = hmac.compare_digest(
        username.encode(), settings.admin_username.encode()
    )
    password_ok = hmac.compare_digest(
        password.encode(), settings.admin_password.encode()
    )
    return username_ok and password_ok


def require_admin(
    credentials: Annotated[HTTPBasicCredentials | None, Depends(http_basic)],
) -> str:
    """Guard staff-only API routes with the admin account (HTTP Basic).

    Raises:
        AuthError: If credentials are missing or wrong
    """
    if credentials is None:
        raise AuthError("Admin credentials required")
    if not check_admin_credentials(credentials.username, credentials.password):
        logger.warning("Admin API login failed", extra={"operation": "admin_api"})
        raise AuthError("Invalid admin credentials")
    return credentials.username


AdminDep = Annotated[str, Depends(require_admin)]


class AdminAuth(AuthenticationBackend):
    """SQLAdmin auth for store staff, using Starlette sessions.

    A single operator account comes from ADMIN_USERNAME / ADMIN_PASSWORD.
    """

    def __init__(self) -> None:
        # Must be stable across restarts; SQLAdmin signs its session with it.
        settings = get_settings()
        super().__init__(secret_key=settings.session_secret_key)

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = str(form.get("username", "")).strip()
        password = str(form.get("password", ""))

        ok = check_admin_credentials(username, password)
        if ok:
            request.session["admin_user"] = username
        else:
            logger.warning("Admin login failed", extra={"operation": "admin_login"})
        return ok

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return bool(request.session.get("admin_user"))
