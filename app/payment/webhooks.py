"""Stripe webhook event handling.

Events arrive after ``construct_webhook_event`` has verified the signature.
Payment outcomes are matched to the member through ``payment_customer_id``
and reported over the messaging channel on a best-effort basis. Every other
event type is acknowledged and logged.
"""

import logging
from collections.abc import Callable

from app.core.settings import Settings
from app.db.repository import UserStore
from app.notification.messages import payment_failed_message, payment_succeeded_message
from app.notification.service import NotificationDispatcher, deliver_best_effort
from app.payment.service import WebhookEvent

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class PaymentEventHandler:
    def __init__(
        self,
        store: UserStore,
        notifications: NotificationDispatcher,
        settings: Settings,
    ):
        self._store = store
        self._notifications = notifications
        self._settings = settings

    async def handle(self, event: WebhookEvent) -> bool:
        """Process one event.

        Returns:
            True if the event type is handled, False if it was only logged
        """
        if event.type == PAYMENT_SUCCEEDED:
            amount = event.object.get("amount_received") or event.object.get("amount")
            currency = event.object.get("currency") or self._settings.payment_currency
            await self._notify_member(
                event,
                lambda: payment_succeeded_message(int(amount or 0), str(currency)),
            )
            return True
        if event.type == PAYMENT_FAILED:
            last_error = event.object.get("last_payment_error")
            reason = last_error.get("message") if isinstance(last_error, dict) else None
            await self._notify_member(event, lambda: payment_failed_message(reason))
            return True

        logger.info(
            "Unhandled payment event: %s",
            event.type,
            extra={"operation": "stripe_webhook", "identifiers": {"event_id": event.id}},
        )
        return False

    async def _notify_member(
        self, event: WebhookEvent, render: Callable[[], str]
    ) -> None:
        payment_intent_id = event.object.get("id")
        customer_id = event.object.get("customer")
        identifiers = {
            "event_id": event.id,
            "payment_intent_id": payment_intent_id,
            "payment_customer_id": customer_id,
        }

        user = None
        if isinstance(customer_id, str) and customer_id:
            user = self._store.get_user_by_payment_customer_id(customer_id)
        if user is not None:
            identifiers["user_id"] = str(user.id)

        logger.info(
            "Payment event: %s",
            event.type,
            extra={"operation": "stripe_webhook", "identifiers": identifiers},
        )
        if user is None or not user.external_identity_id:
            return

        await deliver_best_effort(
            "payment_status_message",
            lambda: self._notifications.send(user.external_identity_id, render()),
            timeout=self._settings.notification_timeout_seconds,
            user_id=str(user.id),
        )
