"""Access log middleware.

One line per request on the ``app.request`` logger with method, path, status
and duration. Member identifiers travel in query strings (``lineUserId``), so
their values are masked before the query is logged.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any
from urllib.parse import parse_qsl, urlencode

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REDACTED_QUERY_PARAMS = frozenset({"lineUserId"})
REDACTED_VALUE = "redacted"


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def redact_query(query: str) -> str:
    """Mask the values of identifying query parameters."""
    pairs = parse_qsl(query, keep_blank_values=True)
    if not any(key in REDACTED_QUERY_PARAMS for key, _ in pairs):
        return query
    return urlencode(
        [
            (key, REDACTED_VALUE if key in REDACTED_QUERY_PARAMS else value)
            for key, value in pairs
        ]
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("app.request")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self._log(request, status_code, (time.perf_counter() - start) * 1000.0)

    def _log(self, request: Request, status_code: int | None, duration_ms: float) -> None:
        query = redact_query(request.url.query)
        extra: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "query": query,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }
        # No status means the handler raised past every exception handler.
        failed = status_code is None or status_code >= 500
        (self.logger.error if failed else self.logger.info)(
            "%s %s%s -> %s (%.2fms)",
            request.method,
            request.url.path,
            f"?{query}" if query else "",
            status_code,
            duration_ms,
            extra=extra,
        )


def add_request_logging_middleware(app: FastAPI) -> None:
    """Attach the middleware unless LOG_REQUESTS is false."""
    if _env_bool("LOG_REQUESTS", default=True):
        app.add_middleware(RequestLoggingMiddleware)
