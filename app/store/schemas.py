"""Store domain schemas."""

from pydantic import Field

from app.core.schemas import CamelModel


class StoreRead(CamelModel):
    id: str
    name: str
    address: str
    latitude: float | None = None
    longitude: float | None = None
    qr_data: str


class StoreListResponse(CamelModel):
    stores: list[StoreRead]


class ValidateQrRequest(CamelModel):
    qr_data: str = Field(min_length=1, max_length=2048)


class ValidateQrResponse(CamelModel):
    store_id: str
    store_name: str
    store_address: str
    is_valid: bool = True
