"""Tests for app/core/http.py - HTTP client factory."""

import anyio
import httpx
import pytest

from app.core import http as http_module


async def _close_and_reset_clients_async() -> None:
    """Close and reset the upstream client singletons (async implementation)."""
    await http_module.close_http_clients()


def _close_and_reset_clients() -> None:
    """Close and reset the upstream client singletons (for test cleanup)."""
    anyio.run(_close_and_reset_clients_async)


class TestCreateHttpClient:
    """Unit tests for create_http_client factory."""

    @pytest.mark.asyncio
    async def test_returns_async_client(self):
        """Test that factory returns an httpx.AsyncClient instance."""
        client = http_module.create_http_client(base_url="https://example.com")
        try:
            assert isinstance(client, httpx.AsyncClient)
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_default_timeouts(self):
        """Test that default timeout values are applied."""
        client = http_module.create_http_client(base_url="https://example.com")
        try:
            timeout = client.timeout

            assert timeout.connect == http_module.DEFAULT_CONNECT_TIMEOUT
            assert timeout.read == http_module.DEFAULT_READ_TIMEOUT
            assert timeout.write == http_module.DEFAULT_WRITE_TIMEOUT
            assert timeout.pool == http_module.DEFAULT_POOL_TIMEOUT
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_custom_connection_limits(self):
        """Test that custom connection limits are applied."""
        client = http_module.create_http_client(
            base_url="https://example.com",
            max_connections=50,
            max_keepalive_connections=25,
        )
        try:
            limits = client._transport._pool._max_connections  # type: ignore[union-attr]

            assert limits == 50
        finally:
            await client.aclose()


class TestGetLineClient:
    """Unit tests for get_line_client singleton getter."""

    @pytest.fixture(autouse=True)
    def reset_clients(self):
        _close_and_reset_clients()
        yield
        _close_and_reset_clients()

    @pytest.mark.asyncio
    async def test_has_line_base_url(self):
        client = http_module.get_line_client()
        assert client.base_url == httpx.URL("https://api.line.me")

    @pytest.mark.asyncio
    async def test_uses_short_timeouts(self):
        """Messaging calls give up quickly."""
        client = http_module.get_line_client()
        assert client.timeout.connect == http_module.LINE_CONNECT_TIMEOUT
        assert client.timeout.read == http_module.LINE_READ_TIMEOUT

    @pytest.mark.asyncio
    async def test_is_singleton(self):
        assert http_module.get_line_client() is http_module.get_line_client()


class TestGetStripeClient:
    @pytest.fixture(autouse=True)
    def reset_clients(self):
        _close_and_reset_clients()
        yield
        _close_and_reset_clients()

    @pytest.mark.asyncio
    async def test_has_stripe_base_url(self):
        client = http_module.get_stripe_client()
        assert client.base_url == httpx.URL("https://api.stripe.com")

    @pytest.mark.asyncio
    async def test_is_separate_from_line_client(self):
        assert http_module.get_stripe_client() is not http_module.get_line_client()


class TestCloseHttpClients:
    """Unit tests for close_http_clients cleanup function."""

    @pytest.fixture(autouse=True)
    def reset_clients(self):
        _close_and_reset_clients()
        yield
        _close_and_reset_clients()

    @pytest.mark.asyncio
    async def test_closes_all_clients(self):
        line_client = http_module.get_line_client()
        stripe_client = http_module.get_stripe_client()

        await http_module.close_http_clients()

        assert line_client.is_closed
        assert stripe_client.is_closed
        assert http_module._line_client is None
        assert http_module._stripe_client is None

    @pytest.mark.asyncio
    async def test_safe_to_call_when_no_client(self):
        """Test that close_http_clients is safe to call when no client exists."""
        await http_module.close_http_clients()

        assert http_module._line_client is None
        assert http_module._stripe_client is None

    @pytest.mark.asyncio
    async def test_creates_new_client_after_close(self):
        client1 = http_module.get_line_client()
        await http_module.close_http_clients()

        client2 = http_module.get_line_client()

        assert client1 is not client2
        assert not client2.is_closed
