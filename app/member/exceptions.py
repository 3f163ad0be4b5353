"""Member domain exceptions.

Member lookup and identity-binding conflicts.
"""

from app.core.exceptions import ConflictError, NotFoundError


class UserNotFoundError(NotFoundError):
    """Raised when a member cannot be resolved."""

    error_type = "user_not_found"

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class EmailExistsError(ConflictError):
    """Raised when attempting to register with an existing email."""

    error_type = "email_exists"

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


class IdentityAlreadyLinkedError(ConflictError):
    """Raised when an identity binding would move to a different account."""

    error_type = "identity_already_linked"

    def __init__(self, message: str = "Identity is already linked to another account"):
        super().__init__(message)
