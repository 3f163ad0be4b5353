"""Payment domain routers.

``router`` serves the LIFF payment pages: the membership fee intent, saved
cards, the recurring subscription and the billing portal. Refunds are
staff-only. ``webhook_router`` receives Stripe event deliveries.
"""

from typing import Annotated

from fastapi import APIRouter, Header, Path, Request

from app.admin.auth import AdminDep
from app.core.clock import isoformat_z, utc_now
from app.core.constants import CommonResponses, Routes
from app.core.deps import PaymentProvisionerDep, SettingsDep
from app.core.exceptions import AppException, ValidationError
from app.payment.dependencies import PaymentEventHandlerDep
from app.payment.exceptions import (
    PaymentCustomerNotFoundError,
    PaymentIntentNotFoundError,
)
from app.payment.schemas import (
    PAYMENT_CUSTOMER_ID_PATTERN,
    BillingPortalRequest,
    BillingPortalResponse,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    PaymentMethodResponse,
    PaymentMethodsResponse,
    RefundRequest,
    RefundResponse,
    SetupIntentRequest,
    SetupIntentResponse,
    WebhookAck,
)
from app.payment.service import (
    PaymentCustomer,
    PaymentProvisioner,
    construct_webhook_event,
)

router = APIRouter(
    prefix=Routes.PAYMENT.prefix,
    tags=[Routes.PAYMENT.tag],
    responses={**CommonResponses.BAD_REQUEST, **CommonResponses.INTERNAL_ERROR},
)

webhook_router = APIRouter(
    prefix=Routes.WEBHOOK.prefix,
    tags=[Routes.WEBHOOK.tag],
    responses={**CommonResponses.BAD_REQUEST, **CommonResponses.UNAUTHORIZED},
)

MEMBERSHIP_FEE_PURPOSE = "monthly_membership_fee"
SUBSCRIPTION_PURPOSE = "membership_subscription"


async def _require_customer(
    payments: PaymentProvisioner, customer_id: str
) -> PaymentCustomer:
    customer = await payments.get_customer(customer_id)
    if customer is None:
        raise PaymentCustomerNotFoundError()
    return customer


@router.post(
    "/intent",
    response_model=CreatePaymentIntentResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def create_payment_intent(
    data: CreatePaymentIntentRequest,
    payments: PaymentProvisionerDep,
    settings: SettingsDep,
):
    """Create a payment intent for a registered payment customer."""
    if data.amount <= 0:
        raise ValidationError("Amount must be greater than zero")

    customer = await _require_customer(payments, data.payment_customer_id)
    if (customer.email or "").lower() != data.email.lower():
        raise ValidationError("Customer details do not match")

    intent = await payments.create_payment_intent(
        amount=data.amount,
        currency=settings.payment_currency,
        customer_id=customer.id,
        metadata={"email": data.email, "purpose": MEMBERSHIP_FEE_PURPOSE},
    )
    return CreatePaymentIntentResponse(
        client_secret=intent.client_secret, payment_intent_id=intent.id
    )


@router.post(
    "/setup-intent",
    response_model=SetupIntentResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def create_setup_intent(
    data: SetupIntentRequest, payments: PaymentProvisionerDep
):
    """Prepare saving a card for the monthly charge."""
    customer = await _require_customer(payments, data.customer_id)
    intent = await payments.create_setup_intent(customer.id)
    return SetupIntentResponse(
        client_secret=intent.client_secret, setup_intent_id=intent.id
    )


@router.post(
    "/subscription",
    response_model=CreateSubscriptionResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def create_subscription(
    data: CreateSubscriptionRequest, payments: PaymentProvisionerDep
):
    """Start the recurring membership subscription."""
    customer = await _require_customer(payments, data.customer_id)
    subscription = await payments.create_subscription(
        customer_id=customer.id,
        price_id=data.price_id,
        metadata={"purpose": SUBSCRIPTION_PURPOSE},
    )
    return CreateSubscriptionResponse(
        subscription_id=subscription.id,
        status=subscription.status,
        client_secret=subscription.client_secret,
    )


@router.get(
    "/payment-methods/{customer_id}",
    response_model=PaymentMethodsResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def list_payment_methods(
    customer_id: Annotated[str, Path(pattern=PAYMENT_CUSTOMER_ID_PATTERN)],
    payments: PaymentProvisionerDep,
):
    """List the customer's saved cards."""
    customer = await _require_customer(payments, customer_id)
    methods = await payments.list_payment_methods(customer.id)
    return PaymentMethodsResponse(
        payment_methods=[
            PaymentMethodResponse(
                id=m.id,
                brand=m.brand,
                last4=m.last4,
                exp_month=m.exp_month,
                exp_year=m.exp_year,
            )
            for m in methods
        ]
    )


@router.post(
    "/billing-portal",
    response_model=BillingPortalResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def create_billing_portal(
    data: BillingPortalRequest, payments: PaymentProvisionerDep
):
    """Open a Stripe billing portal session for the customer."""
    customer = await _require_customer(payments, data.customer_id)
    session = await payments.create_billing_portal_session(
        customer_id=customer.id, return_url=str(data.return_url)
    )
    return BillingPortalResponse(url=session.url)


@router.post(
    "/refund",
    response_model=RefundResponse,
    responses={**CommonResponses.UNAUTHORIZED, **CommonResponses.NOT_FOUND},
)
async def create_refund(
    data: RefundRequest, payments: PaymentProvisionerDep, admin_user: AdminDep
):
    """Refund a payment in full, or partially when ``amount`` is given."""
    intent = await payments.get_payment_intent(data.payment_intent_id)
    if intent is None:
        raise PaymentIntentNotFoundError()
    if data.amount is not None and data.amount > intent.amount:
        raise ValidationError("Refund amount exceeds the payment amount")

    refund = await payments.create_refund(
        payment_intent_id=intent.id,
        amount=data.amount,
        reason=data.reason,
        metadata={
            "refunded_by": admin_user,
            "refund_date": isoformat_z(utc_now()),
        },
    )
    return RefundResponse(
        refund_id=refund.id, amount=refund.amount, status=refund.status
    )


@webhook_router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    settings: SettingsDep,
    handler: PaymentEventHandlerDep,
    stripe_signature: str | None = Header(default=None),
):
    """Verify and process a Stripe event delivery."""
    if not stripe_signature:
        raise ValidationError("Missing Stripe-Signature header")
    if not settings.stripe_webhook_secret:
        raise AppException("Stripe webhook secret not configured")

    body = await request.body()
    event = construct_webhook_event(
        body,
        stripe_signature,
        settings.stripe_webhook_secret,
        tolerance=settings.stripe_webhook_tolerance_seconds,
    )
    await handler.handle(event)
    return WebhookAck()
