"""Payment domain exceptions."""

from app.core.exceptions import AuthError, ConflictError, NotFoundError


class PaymentConflictError(ConflictError):
    """Raised when an idempotent payment request collides with another one.

    Stripe rejects a reused ``Idempotency-Key`` while the first request is
    still running, or when it arrives with different parameters.
    """

    error_type = "payment_conflict"

    def __init__(self, message: str = "A matching payment request is already in progress"):
        super().__init__(message)


class PaymentCustomerNotFoundError(NotFoundError):
    error_type = "payment_customer_not_found"

    def __init__(self, message: str = "Payment customer not found"):
        super().__init__(message)


class PaymentIntentNotFoundError(NotFoundError):
    error_type = "payment_intent_not_found"

    def __init__(self, message: str = "Payment not found"):
        super().__init__(message)


class WebhookSignatureError(AuthError):
    """Raised when a Stripe-Signature header does not match the payload."""

    error_type = "invalid_signature"

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message)
