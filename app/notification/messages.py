"""Text notifications sent through the messaging channel."""

from datetime import datetime

from app.core.clock import as_utc
from app.core.constants import JinjaMessageTemplatesEnv


def _render_template(template_name: str, **context: object) -> str:
    """Render a plain-text message template.

    Args:
        template_name: Name of the template file
        **context: Template variables

    Returns:
        Rendered message text
    """
    template = JinjaMessageTemplatesEnv.get_template(template_name)
    return template.render(**context).strip()


def complete_linking_message(name: str | None, linking_url: str) -> str:
    """Sent after registration, pointing the member at the linking page."""
    return _render_template("complete_linking.txt", name=name, linking_url=linking_url)


def welcome_message(name: str | None = None) -> str:
    return _render_template("welcome.txt", name=name)


def check_in_message(store_name: str, checked_in_at: datetime) -> str:
    return _render_template(
        "check_in.txt",
        store_name=store_name,
        checked_in_at=as_utc(checked_in_at).strftime("%Y-%m-%d %H:%M UTC"),
    )


def format_amount(amount: int, currency: str) -> str:
    """Render a Stripe minor-unit amount. JPY has no minor unit."""
    currency = currency.lower()
    if currency == "jpy":
        return f"¥{amount:,}"
    return f"{amount / 100:,.2f} {currency.upper()}"


def payment_succeeded_message(amount: int, currency: str, name: str | None = None) -> str:
    return _render_template(
        "payment_succeeded.txt", name=name, amount=format_amount(amount, currency)
    )


def payment_failed_message(reason: str | None = None) -> str:
    return _render_template("payment_failed.txt", reason=reason)
