"""Messaging webhook router.

Receives LINE Messaging API webhook deliveries. The body is only trusted
after its ``x-line-signature`` matches the channel secret.
"""

import json
import logging

from fastapi import APIRouter, Header, Request

from app.core.constants import CommonResponses, Routes
from app.core.deps import SettingsDep
from app.core.exceptions import AppException, AuthError, ValidationError
from app.notification.service import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=Routes.WEBHOOK.prefix,
    tags=[Routes.WEBHOOK.tag],
    responses={**CommonResponses.BAD_REQUEST, **CommonResponses.UNAUTHORIZED},
)


@router.post("/line")
async def line_webhook(
    request: Request,
    settings: SettingsDep,
    x_line_signature: str | None = Header(default=None),
):
    """Validate and acknowledge a webhook delivery."""
    if not x_line_signature:
        raise ValidationError("Missing x-line-signature header")
    if not settings.line_messaging_channel_secret:
        raise AppException("LINE Messaging channel secret not configured")

    body = await request.body()
    secret = settings.line_messaging_channel_secret
    if not verify_signature(body, x_line_signature, secret):
        raise AuthError("Invalid webhook signature")

    try:
        payload = json.loads(body or b"{}")
    except ValueError as e:
        raise ValidationError("Webhook body is not valid JSON") from e

    events = payload.get("events", []) if isinstance(payload, dict) else None
    if not isinstance(events, list) or not all(isinstance(item, dict) for item in events):
        raise ValidationError("Webhook body is not a LINE event delivery")

    for event in events:
        source = event.get("source")
        if not isinstance(source, dict):
            source = {}
        logger.info(
            "Webhook event: %s",
            event.get("type", "unknown"),
            extra={
                "operation": "line_webhook",
                "identifiers": {"source_type": source.get("type")},
            },
        )
    return {"status": "ok"}
