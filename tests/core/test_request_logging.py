"""Tests for app/core/request_logging.py - access log middleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.request_logging import RequestLoggingMiddleware, redact_query


def test_redact_query_masks_member_identifier():
    assert redact_query("lineUserId=U123&page=2") == "lineUserId=redacted&page=2"


def test_redact_query_leaves_other_queries_untouched():
    assert redact_query("") == ""
    assert redact_query("page=2&q=a%20b") == "page=2&q=a%20b"


def test_middleware_logs_redacted_request(caplog):
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/api/visit-history")
    async def history():
        return {"visits": []}

    with caplog.at_level("INFO", logger="app.request"):
        response = TestClient(app).get("/api/visit-history?lineUserId=U123")

    assert response.status_code == 200
    record = next(r for r in caplog.records if r.name == "app.request")
    assert "U123" not in record.getMessage()
    assert record.query == "lineUserId=redacted"
    assert record.status_code == 200
