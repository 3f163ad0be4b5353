"""Visit domain exceptions."""

from app.core.exceptions import ConflictError, NotFoundError


class VisitNotFoundError(NotFoundError):
    error_type = "visit_not_found"

    def __init__(self, message: str = "Visit not found"):
        super().__init__(message)


class DuplicateCheckInError(ConflictError):
    """Raised when the member already checked in at the store within the window."""

    error_type = "duplicate_check_in"

    def __init__(self, message: str = "Already checked in at this store recently"):
        super().__init__(message)
