"""Tests for store domain router."""

import json

from fastapi.testclient import TestClient
from sqlmodel import Session

from app.store.models import Store


def test_list_stores(client: TestClient, shop: Store, other_shop: Store):
    """Test GET /api/stores lists stores by name."""
    response = client.get("/api/stores")

    assert response.status_code == 200
    stores = response.json()["stores"]
    assert [s["id"] for s in stores] == ["store2", "store1"]
    assert stores[1] == {
        "id": "store1",
        "name": "Yoake Shibuya",
        "address": "1-1 Shibuya, Tokyo",
        "latitude": None,
        "longitude": None,
        "qrData": '{"app":"yoake","type":"check-in","store_id":"store1"}',
    }


def test_list_stores_empty(client: TestClient):
    response = client.get("/api/stores")

    assert response.json() == {"stores": []}


def test_validate_qr(client: TestClient, shop: Store):
    qr_data = json.dumps({"app": "yoake", "type": "check-in", "store_id": "store1"})

    response = client.post("/api/validate-qr", json={"qrData": qr_data})

    assert response.status_code == 200
    assert response.json() == {
        "storeId": "store1",
        "storeName": "Yoake Shibuya",
        "storeAddress": "1-1 Shibuya, Tokyo",
        "isValid": True,
    }


def test_validate_qr_unknown_store(client: TestClient):
    qr_data = json.dumps({"app": "yoake", "type": "check-in", "store_id": "gone"})

    response = client.post("/api/validate-qr", json={"qrData": qr_data})

    assert response.status_code == 404
    assert response.json()["type"] == "store_not_found"


def test_validate_qr_invalid_payload(client: TestClient):
    response = client.post("/api/validate-qr", json={"qrData": "hello"})

    assert response.status_code == 400
    assert response.json() == {"type": "validation_error", "message": "Invalid QR code"}


def test_list_stores_shows_issued_qr_payload(client: TestClient, session: Session, shop: Store):
    shop.qr_data = json.dumps({"app": "yoake", "type": "check-in", "store_id": "store1", "v": 2})
    session.add(shop)
    session.commit()

    response = client.get("/api/stores")

    assert response.json()["stores"][0]["qrData"] == shop.qr_data


def test_validate_qr_accepts_issued_payload(client: TestClient, session: Session, shop: Store):
    shop.qr_data = json.dumps({"app": "yoake", "type": "check-in", "store_id": "store1", "v": 2})
    session.add(shop)
    session.commit()
    scanned = json.dumps({"v": 2, "store_id": "store1", "type": "check-in", "app": "yoake"})

    response = client.post("/api/validate-qr", json={"qrData": scanned})

    assert response.status_code == 200
    assert response.json()["storeId"] == "store1"


def test_validate_qr_rejects_superseded_payload(
    client: TestClient, session: Session, shop: Store
):
    shop.qr_data = json.dumps({"app": "yoake", "type": "check-in", "store_id": "store1", "v": 2})
    session.add(shop)
    session.commit()
    old_code = json.dumps({"app": "yoake", "type": "check-in", "store_id": "store1"})

    response = client.post("/api/validate-qr", json={"qrData": old_code})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid QR code"
