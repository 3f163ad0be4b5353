from datetime import UTC, datetime

from app.notification.messages import (
    check_in_message,
    complete_linking_message,
    format_amount,
    payment_failed_message,
    payment_succeeded_message,
    welcome_message,
)


def test_complete_linking_message_includes_name_and_url():
    text = complete_linking_message("Taro", "https://liff.line.me/123-link")

    assert "Taro" in text
    assert text.endswith("https://liff.line.me/123-link")


def test_complete_linking_message_without_name():
    text = complete_linking_message(None, "https://liff.line.me/123-link")

    assert text.startswith("Thank you for registering!")


def test_welcome_message():
    assert welcome_message().startswith("Welcome to the membership!")
    assert welcome_message("Taro").startswith("Welcome to the membership, Taro!")


def test_check_in_message_formats_utc_time():
    text = check_in_message("Yoake Shibuya", datetime(2026, 1, 19, 12, 34, tzinfo=UTC))

    assert "Yoake Shibuya (2026-01-19 12:34 UTC)" in text


def test_format_amount():
    assert format_amount(3000, "jpy") == "¥3,000"
    assert format_amount(123456, "USD") == "1,234.56 USD"


def test_payment_succeeded_message():
    text = payment_succeeded_message(3000, "jpy", name="Taro")

    assert text.startswith("Thank you, Taro!")
    assert "¥3,000" in text


def test_payment_failed_message_with_and_without_reason():
    assert "(Your card was declined.)" in payment_failed_message("Your card was declined.")
    assert "()" not in payment_failed_message()
