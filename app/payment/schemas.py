"""Payment domain schemas."""

from typing import Annotated, Literal

from pydantic import EmailStr, Field, HttpUrl

from app.core.schemas import CamelModel

PAYMENT_CUSTOMER_ID_PATTERN = r"^cus_[A-Za-z0-9]+$"
PAYMENT_INTENT_ID_PATTERN = r"^pi_[A-Za-z0-9]+$"
PRICE_ID_PATTERN = r"^price_[A-Za-z0-9]+$"

PaymentCustomerId = Annotated[
    str, Field(pattern=PAYMENT_CUSTOMER_ID_PATTERN, max_length=255)
]


class CreatePaymentIntentRequest(CamelModel):
    # Amount range is checked by the handler so it reports a 400.
    amount: int
    email: EmailStr
    payment_customer_id: PaymentCustomerId


class CreatePaymentIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str


class SetupIntentRequest(CamelModel):
    customer_id: PaymentCustomerId


class SetupIntentResponse(CamelModel):
    client_secret: str
    setup_intent_id: str


class CreateSubscriptionRequest(CamelModel):
    customer_id: PaymentCustomerId
    price_id: str = Field(pattern=PRICE_ID_PATTERN, max_length=255)


class CreateSubscriptionResponse(CamelModel):
    subscription_id: str
    status: str
    client_secret: str | None = None


class PaymentMethodResponse(CamelModel):
    id: str
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None


class PaymentMethodsResponse(CamelModel):
    payment_methods: list[PaymentMethodResponse]


class BillingPortalRequest(CamelModel):
    customer_id: PaymentCustomerId
    return_url: HttpUrl


class BillingPortalResponse(CamelModel):
    url: str


class RefundRequest(CamelModel):
    payment_intent_id: str = Field(pattern=PAYMENT_INTENT_ID_PATTERN, max_length=255)
    amount: int | None = Field(default=None, gt=0)
    reason: Literal["duplicate", "fraudulent", "requested_by_customer"] = (
        "requested_by_customer"
    )


class RefundResponse(CamelModel):
    refund_id: str
    amount: int
    status: str


class WebhookAck(CamelModel):
    received: bool = True
