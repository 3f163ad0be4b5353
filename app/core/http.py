"""HTTP client factory for external API calls.

Provides per-upstream HTTP clients with connection pooling, timeouts,
and proper resource management. One client per host is created lazily and
shared for the process lifetime; `close_http_clients()` releases them on
shutdown.
"""

import httpx

# Default timeout configuration (seconds)
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 10.0
DEFAULT_WRITE_TIMEOUT = 10.0
DEFAULT_POOL_TIMEOUT = 5.0

# Messaging calls are best-effort and must give up quickly.
LINE_CONNECT_TIMEOUT = 2.0
LINE_READ_TIMEOUT = 3.0

LINE_API_BASE_URL = "https://api.line.me"
STRIPE_API_BASE_URL = "https://api.stripe.com"

# Module-level client storage for singleton pattern
_line_client: httpx.AsyncClient | None = None
_stripe_client: httpx.AsyncClient | None = None


def create_http_client(
    base_url: str = "",
    max_connections: int = 20,
    max_keepalive_connections: int = 10,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: float = DEFAULT_READ_TIMEOUT,
    write_timeout: float = DEFAULT_WRITE_TIMEOUT,
    pool_timeout: float = DEFAULT_POOL_TIMEOUT,
) -> httpx.AsyncClient:
    """Create a configured async HTTP client.

    Args:
        base_url: Base URL for all requests (empty string for none)
        max_connections: Maximum number of concurrent connections
        max_keepalive_connections: Maximum idle connections to keep alive
        connect_timeout: Timeout for establishing connection
        read_timeout: Timeout for reading response
        write_timeout: Timeout for sending request
        pool_timeout: Timeout for acquiring connection from pool

    Returns:
        Configured httpx.AsyncClient instance
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=write_timeout,
            pool=pool_timeout,
        ),
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive_connections,
        ),
    )


def get_line_client() -> httpx.AsyncClient:
    """Get singleton HTTP client for the LINE Platform API.

    Shared by ID token verification and the Messaging API. Timeouts are
    short because messaging is best-effort.
    """
    global _line_client
    if _line_client is None:
        _line_client = create_http_client(
            base_url=LINE_API_BASE_URL,
            max_connections=50,
            max_keepalive_connections=10,
            connect_timeout=LINE_CONNECT_TIMEOUT,
            read_timeout=LINE_READ_TIMEOUT,
        )
    return _line_client


def get_stripe_client() -> httpx.AsyncClient:
    """Get singleton HTTP client for the Stripe REST API."""
    global _stripe_client
    if _stripe_client is None:
        _stripe_client = create_http_client(base_url=STRIPE_API_BASE_URL)
    return _stripe_client


async def close_http_clients() -> None:
    """Close all upstream HTTP clients and release resources.

    Should be called during application shutdown. Safe to call when no
    client was ever created.
    """
    global _line_client, _stripe_client
    if _line_client is not None:
        await _line_client.aclose()
        _line_client = None
    if _stripe_client is not None:
        await _stripe_client.aclose()
        _stripe_client = None
