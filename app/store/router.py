"""Store domain router.

Read-only store listing and check-in QR validation.
"""

from fastapi import APIRouter

from app.core.constants import CommonResponses, Routes
from app.core.deps import SettingsDep, UserStoreDep
from app.core.exceptions import ValidationError
from app.store.exceptions import StoreNotFoundError
from app.store.models import Store
from app.store.qr import build_check_in_qr, matches_store_qr, parse_check_in_qr
from app.store.schemas import (
    StoreListResponse,
    StoreRead,
    ValidateQrRequest,
    ValidateQrResponse,
)

router = APIRouter(
    prefix=Routes.STORE.prefix,
    tags=[Routes.STORE.tag],
    responses={**CommonResponses.INTERNAL_ERROR},
)


def _store_read(store: Store, app_name: str) -> StoreRead:
    return StoreRead(
        id=store.id,
        name=store.name,
        address=store.address,
        latitude=store.latitude,
        longitude=store.longitude,
        qr_data=store.qr_data or build_check_in_qr(store.id, app_name),
    )


@router.get("/stores", response_model=StoreListResponse)
async def list_stores(store: UserStoreDep, settings: SettingsDep):
    """List stores ordered by name."""
    stores = store.list_stores()
    return StoreListResponse(
        stores=[_store_read(s, settings.qr_app_name) for s in stores]
    )


@router.post(
    "/validate-qr",
    response_model=ValidateQrResponse,
    responses={**CommonResponses.BAD_REQUEST, **CommonResponses.NOT_FOUND},
)
async def validate_qr(
    data: ValidateQrRequest, store: UserStoreDep, settings: SettingsDep
):
    """Check that a scanned QR code points at a known store.

    A store with an issued payload only accepts that exact code.
    """
    qr = parse_check_in_qr(data.qr_data, settings.qr_app_name)
    store_row = store.get_store_by_id(qr.store_id)
    if store_row is None:
        raise StoreNotFoundError()
    if store_row.qr_data and not matches_store_qr(data.qr_data, store_row.qr_data):
        raise ValidationError("Invalid QR code")
    return ValidateQrResponse(
        store_id=store_row.id,
        store_name=store_row.name,
        store_address=store_row.address,
    )
