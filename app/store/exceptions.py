"""Store domain exceptions."""

from app.core.exceptions import NotFoundError


class StoreNotFoundError(NotFoundError):
    error_type = "store_not_found"

    def __init__(self, message: str = "Store not found"):
        super().__init__(message)
