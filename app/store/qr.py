"""Check-in QR payloads.

Store QR codes encode a small JSON object:

    {"app": "yoake", "type": "check-in", "store_id": "store1"}
"""

import json
from dataclasses import dataclass

from app.core.exceptions import ValidationError

CHECK_IN_TYPE = "check-in"


@dataclass(frozen=True)
class CheckInQr:
    store_id: str


def parse_check_in_qr(raw: str, app_name: str) -> CheckInQr:
    """Parse and validate a scanned QR payload.

    Raises:
        ValidationError: If the payload is not a check-in code for this app
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid QR code") from e

    if not isinstance(data, dict):
        raise ValidationError("Invalid QR code")
    if data.get("app") != app_name or data.get("type") != CHECK_IN_TYPE:
        raise ValidationError("Invalid QR code")

    store_id = data.get("store_id")
    if not isinstance(store_id, str) or not store_id.strip():
        raise ValidationError("Invalid QR code", errors=["store_id is required"])
    return CheckInQr(store_id=store_id.strip())


def build_check_in_qr(store_id: str, app_name: str) -> str:
    """Default payload printed on a store's check-in code."""
    return json.dumps(
        {"app": app_name, "type": CHECK_IN_TYPE, "store_id": store_id},
        separators=(",", ":"),
    )


def matches_store_qr(raw: str, stored: str) -> bool:
    """Compare a scanned payload with the one issued to the store.

    Payloads are compared as JSON objects, so key order and spacing do not
    matter.
    """
    try:
        return json.loads(raw) == json.loads(stored)
    except (TypeError, ValueError):
        return False
