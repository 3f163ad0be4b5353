"""Store reference data.

Stores are maintained from the admin panel; request handlers only read them.
"""

from sqlmodel import Field, SQLModel

from app.core.mixins import CreatedAtMixin


class Store(CreatedAtMixin, SQLModel, table=True):
    __tablename__: str = "stores"

    id: str = Field(primary_key=True, max_length=64)
    name: str = Field(index=True, max_length=255)
    address: str = Field(default="", max_length=512)
    latitude: float | None = Field(default=None)
    longitude: float | None = Field(default=None)
    # Payload of the printed code. None means the default built from the id.
    qr_data: str | None = Field(default=None, max_length=512)
