"""Payment domain dependencies."""

from typing import Annotated

from fastapi import Depends

from app.core.deps import NotificationDispatcherDep, SettingsDep, UserStoreDep
from app.payment.webhooks import PaymentEventHandler


def get_payment_event_handler(
    store: UserStoreDep,
    notifications: NotificationDispatcherDep,
    settings: SettingsDep,
) -> PaymentEventHandler:
    return PaymentEventHandler(store=store, notifications=notifications, settings=settings)


PaymentEventHandlerDep = Annotated[
    PaymentEventHandler, Depends(get_payment_event_handler)
]
