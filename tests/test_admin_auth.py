"""Tests for app/admin/auth.py - SQLAdmin authentication."""

from unittest.mock import MagicMock

import pytest

from app.admin.auth import AdminAuth
from app.core.settings import get_settings


@pytest.fixture
def admin_auth():
    """Create AdminAuth instance."""
    return AdminAuth()


@pytest.fixture
def mock_request():
    """Create a mock Starlette request with session."""
    request = MagicMock()
    request.session = {}
    return request


def _form(**fields: str):
    async def mock_form():
        return fields

    return mock_form


@pytest.mark.asyncio
async def test_admin_login_success(admin_auth, mock_request):
    """Test AdminAuth.login() with valid credentials returns True."""
    settings = get_settings()
    mock_request.form = _form(
        username=settings.admin_username, password=settings.admin_password
    )

    result = await admin_auth.login(mock_request)

    assert result is True
    assert mock_request.session["admin_user"] == settings.admin_username


@pytest.mark.asyncio
async def test_admin_login_strips_whitespace(admin_auth, mock_request):
    """Test AdminAuth.login() strips whitespace from username."""
    settings = get_settings()
    mock_request.form = _form(
        username=f"  {settings.admin_username}  ", password=settings.admin_password
    )

    result = await admin_auth.login(mock_request)

    assert result is True
    assert mock_request.session["admin_user"] == settings.admin_username


@pytest.mark.asyncio
async def test_admin_login_invalid_password(admin_auth, mock_request, caplog):
    """Test AdminAuth.login() with invalid password returns False and logs it."""
    settings = get_settings()
    mock_request.form = _form(username=settings.admin_username, password="wrong")

    with caplog.at_level("WARNING", logger="app.admin.auth"):
        result = await admin_auth.login(mock_request)

    assert result is False
    assert "admin_user" not in mock_request.session
    assert any("Admin login failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_admin_login_invalid_username(admin_auth, mock_request):
    settings = get_settings()
    mock_request.form = _form(username="staff", password=settings.admin_password)

    result = await admin_auth.login(mock_request)

    assert result is False


@pytest.mark.asyncio
async def test_admin_logout(admin_auth, mock_request):
    """Test AdminAuth.logout() clears session and returns True."""
    mock_request.session["admin_user"] = "admin"

    result = await admin_auth.logout(mock_request)

    assert result is True
    assert mock_request.session == {}


@pytest.mark.asyncio
async def test_admin_authenticate(admin_auth, mock_request):
    """Test AdminAuth.authenticate() follows the session flag."""
    assert await admin_auth.authenticate(mock_request) is False

    mock_request.session["admin_user"] = "admin"

    assert await admin_auth.authenticate(mock_request) is True
