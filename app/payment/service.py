"""Payment provider gateway.

Talks to the Stripe REST API directly over the shared httpx client:
https://docs.stripe.com/api

Customer creation is the one irreversible external write in registration, so
it is only ever retried together with an ``Idempotency-Key``. Stripe replays
the original response for a repeated key, which makes the retry safe.
"""

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from app.core.exceptions import PaymentError, ValidationError
from app.core.http import get_stripe_client
from app.core.retry import with_retry
from app.payment.exceptions import PaymentConflictError, WebhookSignatureError

logger = logging.getLogger(__name__)

CUSTOMERS_PATH = "/v1/customers"
PAYMENT_INTENTS_PATH = "/v1/payment_intents"
SETUP_INTENTS_PATH = "/v1/setup_intents"
SUBSCRIPTIONS_PATH = "/v1/subscriptions"
PAYMENT_METHODS_PATH = "/v1/payment_methods"
BILLING_PORTAL_SESSIONS_PATH = "/v1/billing_portal/sessions"
REFUNDS_PATH = "/v1/refunds"

# Stripe's own SDKs reject webhook timestamps older than five minutes.
DEFAULT_WEBHOOK_TOLERANCE = 300

IDEMPOTENCY_ERROR_TYPE = "idempotency_error"


@dataclass(frozen=True)
class PaymentCustomer:
    """Provider-side billable party."""

    id: str
    email: str | None = None
    name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str | None
    amount: int
    currency: str
    status: str | None = None
    customer_id: str | None = None


@dataclass(frozen=True)
class SetupIntent:
    id: str
    client_secret: str


@dataclass(frozen=True)
class Subscription:
    id: str
    status: str
    # Secret of the first invoice's payment intent, confirmed client-side.
    client_secret: str | None = None


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None


@dataclass(frozen=True)
class BillingPortalSession:
    id: str
    url: str


@dataclass(frozen=True)
class Refund:
    id: str
    amount: int
    status: str


@dataclass(frozen=True)
class WebhookEvent:
    """A verified Stripe event."""

    id: str
    type: str
    object: dict[str, Any]


class PaymentProvisioner(Protocol):
    """Protocol for payment customer provisioning."""

    async def create_customer(
        self,
        email: str,
        name: str | None,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> str:
        """Create a customer and return its id."""
        ...

    async def get_customer(self, customer_id: str) -> PaymentCustomer | None:
        """Return the customer, or None if it is missing or deleted."""
        ...

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        """Create a payment intent for the customer."""
        ...

    async def get_payment_intent(self, payment_intent_id: str) -> PaymentIntent | None:
        ...

    async def create_setup_intent(self, customer_id: str) -> SetupIntent:
        """Prepare saving a card for off-session charges."""
        ...

    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: dict[str, str] | None = None,
    ) -> Subscription:
        ...

    async def list_payment_methods(self, customer_id: str) -> list[PaymentMethod]:
        """List the customer's saved cards."""
        ...

    async def create_billing_portal_session(
        self, customer_id: str, return_url: str
    ) -> BillingPortalSession:
        ...

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Refund:
        ...


def registration_idempotency_key(email: str) -> str:
    """Idempotency key for the registration customer of ``email``."""
    digest = hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()
    return f"register-customer-{digest}"


def _form_metadata(metadata: dict[str, str] | None) -> dict[str, str]:
    return {f"metadata[{key}]": str(value) for key, value in (metadata or {}).items()}


def _resource_path(collection: str, resource_id: str) -> str:
    return f"{collection}/{quote(resource_id, safe='')}"


class StripePaymentProvisioner:
    """Payment provisioner backed by the Stripe REST API."""

    def __init__(self, secret_key: str | None, client: httpx.AsyncClient | None = None):
        self._secret_key = secret_key
        self._client = client

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        if not self._secret_key:
            raise PaymentError(
                "Payment provider not configured", operation="configure_payment"
            )
        headers = {"Authorization": f"Bearer {self._secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        data: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        idempotency_key: str | None = None,
        identifiers: dict[str, Any] | None = None,
    ) -> httpx.Response:
        headers = self._headers(idempotency_key)
        client = self._client or get_stripe_client()

        async def do_request() -> httpx.Response:
            return await client.request(
                method, path, data=data, params=params, headers=headers
            )

        # Writes are only repeated when the provider can deduplicate them.
        retryable = method == "GET" or idempotency_key is not None
        try:
            return await with_retry(
                do_request,
                attempts=2 if retryable else 1,
                exceptions=(httpx.RequestError,),
                operation=operation,
            )
        except httpx.RequestError as e:
            raise PaymentError(
                "Payment provider unavailable",
                operation=operation,
                upstream_code=type(e).__name__,
                identifiers=identifiers,
            ) from e

    @staticmethod
    def _raise_for_error(
        response: httpx.Response,
        operation: str,
        identifiers: dict[str, Any] | None = None,
    ) -> None:
        """Translate a Stripe error body into PaymentError.

        Raises:
            PaymentConflictError: If the idempotency key is in use or was
                sent with different parameters
            PaymentError: For any other rejection
        """
        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            error = {}
        upstream_code = (
            error.get("code") or error.get("type") or str(response.status_code)
        )
        logger.info(
            "Payment provider error: status=%s, code=%s",
            response.status_code,
            upstream_code,
        )
        if error.get("type") == IDEMPOTENCY_ERROR_TYPE:
            raise PaymentConflictError()
        raise PaymentError(
            error.get("message") or "Payment provider rejected the request",
            operation=operation,
            upstream_code=upstream_code,
            identifiers=identifiers,
        )

    @staticmethod
    def _json_object(
        response: httpx.Response,
        operation: str,
        identifiers: dict[str, Any] | None = None,
        required: tuple[str, ...] = ("id",),
    ) -> dict[str, Any]:
        """Parse a success body, which must be an object carrying ``required``."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or any(not body.get(key) for key in required):
            raise PaymentError(
                "Payment provider returned an unexpected response",
                operation=operation,
                upstream_code=str(response.status_code),
                identifiers=identifiers,
            )
        return body

    async def _call(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        identifiers: dict[str, Any],
        required: tuple[str, ...] = ("id",),
        **kwargs: Any,
    ) -> dict[str, Any]:
        response = await self._request(
            method, path, operation=operation, identifiers=identifiers, **kwargs
        )
        if response.status_code != 200:
            self._raise_for_error(response, operation, identifiers)
        return self._json_object(response, operation, identifiers, required)

    async def _retrieve(
        self, path: str, *, operation: str, identifiers: dict[str, Any]
    ) -> dict[str, Any] | None:
        """GET a single resource; None when Stripe reports it missing."""
        response = await self._request(
            "GET", path, operation=operation, identifiers=identifiers
        )
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            self._raise_for_error(response, operation, identifiers)
        return self._json_object(response, operation, identifiers)

    async def create_customer(
        self,
        email: str,
        name: str | None,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> str:
        """Create a Stripe customer.

        Returns:
            The new customer id (``cus_...``)

        Raises:
            PaymentConflictError: If a request with the same key is in flight
            PaymentError: If Stripe rejects the request or is unreachable
        """
        data = {"email": email, **_form_metadata(metadata)}
        if name:
            data["name"] = name

        body = await self._call(
            "POST",
            CUSTOMERS_PATH,
            operation="create_customer",
            identifiers={"email": email},
            data=data,
            idempotency_key=idempotency_key,
        )
        return body["id"]

    async def get_customer(self, customer_id: str) -> PaymentCustomer | None:
        data = await self._retrieve(
            _resource_path(CUSTOMERS_PATH, customer_id),
            operation="get_customer",
            identifiers={"payment_customer_id": customer_id},
        )
        if data is None or data.get("deleted"):
            return None
        return PaymentCustomer(
            id=data["id"],
            email=data.get("email"),
            name=data.get("name"),
            metadata=data.get("metadata") or {},
        )

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        data = {
            "amount": str(amount),
            "currency": currency,
            "customer": customer_id,
            "automatic_payment_methods[enabled]": "true",
            **_form_metadata(metadata),
        }
        body = await self._call(
            "POST",
            PAYMENT_INTENTS_PATH,
            operation="create_payment_intent",
            identifiers={"payment_customer_id": customer_id},
            required=("id", "client_secret"),
            data=data,
        )
        return PaymentIntent(
            id=body["id"],
            client_secret=body["client_secret"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            status=body.get("status"),
            customer_id=customer_id,
        )

    async def get_payment_intent(self, payment_intent_id: str) -> PaymentIntent | None:
        data = await self._retrieve(
            _resource_path(PAYMENT_INTENTS_PATH, payment_intent_id),
            operation="get_payment_intent",
            identifiers={"payment_intent_id": payment_intent_id},
        )
        if data is None:
            return None
        return PaymentIntent(
            id=data["id"],
            client_secret=data.get("client_secret"),
            amount=data.get("amount", 0),
            currency=data.get("currency", ""),
            status=data.get("status"),
            customer_id=data.get("customer"),
        )

    async def create_setup_intent(self, customer_id: str) -> SetupIntent:
        body = await self._call(
            "POST",
            SETUP_INTENTS_PATH,
            operation="create_setup_intent",
            identifiers={"payment_customer_id": customer_id},
            required=("id", "client_secret"),
            data={
                "customer": customer_id,
                "payment_method_types[]": "card",
                "usage": "off_session",
            },
        )
        return SetupIntent(id=body["id"], client_secret=body["client_secret"])

    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: dict[str, str] | None = None,
    ) -> Subscription:
        """Start a subscription that waits for its first invoice to be paid.

        ``latest_invoice.payment_intent`` is expanded so the client can
        confirm the first payment with the returned secret.
        """
        body = await self._call(
            "POST",
            SUBSCRIPTIONS_PATH,
            operation="create_subscription",
            identifiers={"payment_customer_id": customer_id, "price_id": price_id},
            data={
                "customer": customer_id,
                "items[0][price]": price_id,
                "payment_behavior": "default_incomplete",
                "payment_settings[save_default_payment_method]": "on_subscription",
                "expand[]": "latest_invoice.payment_intent",
                **_form_metadata(metadata),
            },
        )
        invoice = body.get("latest_invoice")
        intent = invoice.get("payment_intent") if isinstance(invoice, dict) else None
        return Subscription(
            id=body["id"],
            status=body.get("status", "incomplete"),
            client_secret=intent.get("client_secret") if isinstance(intent, dict) else None,
        )

    async def list_payment_methods(self, customer_id: str) -> list[PaymentMethod]:
        body = await self._call(
            "GET",
            PAYMENT_METHODS_PATH,
            operation="list_payment_methods",
            identifiers={"payment_customer_id": customer_id},
            required=(),
            params={"customer": customer_id, "type": "card"},
        )
        methods = []
        for item in body.get("data") or []:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            card = item.get("card") or {}
            methods.append(
                PaymentMethod(
                    id=item["id"],
                    brand=card.get("brand"),
                    last4=card.get("last4"),
                    exp_month=card.get("exp_month"),
                    exp_year=card.get("exp_year"),
                )
            )
        return methods

    async def create_billing_portal_session(
        self, customer_id: str, return_url: str
    ) -> BillingPortalSession:
        body = await self._call(
            "POST",
            BILLING_PORTAL_SESSIONS_PATH,
            operation="create_billing_portal_session",
            identifiers={"payment_customer_id": customer_id},
            required=("id", "url"),
            data={"customer": customer_id, "return_url": return_url},
        )
        return BillingPortalSession(id=body["id"], url=body["url"])

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Refund:
        data = {"payment_intent": payment_intent_id, **_form_metadata(metadata)}
        if amount is not None:
            data["amount"] = str(amount)
        if reason:
            data["reason"] = reason

        body = await self._call(
            "POST",
            REFUNDS_PATH,
            operation="create_refund",
            identifiers={"payment_intent_id": payment_intent_id},
            data=data,
        )
        return Refund(
            id=body["id"],
            amount=body.get("amount", amount or 0),
            status=body.get("status", "pending"),
        )


def _parse_signature_header(header: str) -> tuple[int, list[str]]:
    timestamp: int | None = None
    signatures = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as e:
                raise WebhookSignatureError("Invalid signature timestamp") from e
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed Stripe-Signature header")
    return timestamp, signatures


def construct_webhook_event(
    payload: bytes,
    signature_header: str,
    secret: str,
    *,
    tolerance: int = DEFAULT_WEBHOOK_TOLERANCE,
    now: float | None = None,
) -> WebhookEvent:
    """Verify a Stripe webhook delivery and parse its event.

    The ``v1`` scheme signs ``"{timestamp}.{payload}"`` with HMAC-SHA256 of
    the endpoint secret:
    https://docs.stripe.com/webhooks#verify-manually

    Raises:
        WebhookSignatureError: If the header is malformed, no signature
            matches or the timestamp is outside ``tolerance`` seconds
        ValidationError: If a correctly signed body is not a Stripe event
    """
    timestamp, signatures = _parse_signature_header(signature_header)
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(
        secret.encode("utf-8"), signed_payload, hashlib.sha256
    ).hexdigest().encode("ascii")
    if not any(
        hmac.compare_digest(expected, sig.encode("utf-8")) for sig in signatures
    ):
        raise WebhookSignatureError("No signature matches the payload")

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside the tolerance zone")

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise ValidationError("Webhook body is not valid JSON") from e
    data = event.get("data") if isinstance(event, dict) else None
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict) or not isinstance(event.get("type"), str):
        raise ValidationError("Webhook body is not a Stripe event")
    return WebhookEvent(id=str(event.get("id", "")), type=event["type"], object=obj)


@lru_cache
def get_payment_provisioner() -> StripePaymentProvisioner:
    """Get cached payment provisioner instance."""
    from app.core.settings import get_settings

    settings = get_settings()
    return StripePaymentProvisioner(secret_key=settings.stripe_secret_key)
