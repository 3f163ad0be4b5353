"""Tests for app/core/exception_handlers.py - unified error responses."""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.exception_handlers import register_exception_handlers
from app.core.exceptions import (
    DeliveryError,
    PaymentError,
    StorageError,
    ValidationError,
)
from app.member.exceptions import EmailExistsError, UserNotFoundError


class _Body(BaseModel):
    amount: int


def _make_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise UserNotFoundError()

    @app.get("/conflict")
    async def conflict():
        raise EmailExistsError()

    @app.get("/validation")
    async def validation():
        raise ValidationError("Invalid registration data", errors=["email: bad"])

    @app.get("/payment")
    async def payment():
        raise PaymentError(
            "card_declined",
            operation="create_customer",
            upstream_code="card_declined",
            identifiers={"email": "a@x.com"},
        )

    @app.get("/storage")
    async def storage():
        raise StorageError("Database operation failed", operation="create_user")

    @app.get("/delivery")
    async def delivery():
        raise DeliveryError()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    @app.post("/body")
    async def body(data: _Body):
        return data

    return app


client = TestClient(_make_app(), raise_server_exceptions=False)


def test_not_found_exposes_type_and_message():
    response = client.get("/not-found")

    assert response.status_code == 404
    assert response.json() == {"type": "user_not_found", "message": "User not found"}


def test_conflict_exposes_type():
    response = client.get("/conflict")

    assert response.status_code == 409
    assert response.json()["type"] == "email_exists"


def test_validation_error_joins_field_errors():
    response = client.get("/validation")

    assert response.status_code == 400
    assert response.json() == {
        "type": "validation_error",
        "message": "Invalid registration data: email: bad",
    }


def test_payment_error_is_reported_as_generic_internal_error(caplog):
    with caplog.at_level("ERROR", logger="app.exception"):
        response = client.get("/payment")

    assert response.status_code == 500
    assert response.json() == {
        "type": "internal_error",
        "message": "An internal error occurred",
    }
    record = next(r for r in caplog.records if r.name == "app.exception")
    assert record.operation == "create_customer"
    assert record.upstream_code == "card_declined"
    assert record.identifiers == {"email": "a@x.com"}


def test_storage_error_is_reported_as_generic_internal_error():
    response = client.get("/storage")

    assert response.status_code == 500
    assert response.json()["type"] == "internal_error"
    assert "Database" not in response.json()["message"]


def test_delivery_error_maps_to_bad_gateway():
    response = client.get("/delivery")

    assert response.status_code == 502
    assert response.json()["type"] == "delivery_error"


def test_unhandled_exception_returns_internal_error():
    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {
        "type": "internal_error",
        "message": "An unexpected error occurred",
    }


def test_request_validation_error_returns_422():
    response = client.post("/body", json={"amount": "lots"})

    assert response.status_code == 422
    body = response.json()
    assert body["type"] == "validation_error"
    assert body["message"].startswith("amount:")


def test_unknown_route_uses_error_body():
    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json() == {"type": "http_error", "message": "Not Found"}
