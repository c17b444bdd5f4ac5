"""Tests for SMTP token delivery."""

from urllib.parse import parse_qs, urlparse
from uuid import uuid4

import aiosmtplib
import pytest

from identity_service.db.models import Account
from identity_service.services.email.service import EmailService


@pytest.fixture
def account() -> Account:
    return Account(
        id=uuid4(),
        username="alice",
        email="a@x.com",
        password="not-a-real-hash",
        phone_number="1234567890",
        role="user",
    )


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def fake_send(message, **kwargs):
        sent.append((message, kwargs))
        return {}, "OK"

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    return sent


def _link_token(message) -> str:
    text = message.get_payload()[0].get_payload(decode=True).decode()
    link = next(line for line in text.splitlines() if line.startswith("http"))
    return parse_qs(urlparse(link).query)["token"][0]


@pytest.mark.asyncio
async def test_password_reset_email(settings, account, outbox):
    service = EmailService(settings)

    assert await service.send_password_reset(account, "tok.en-123") is True

    message, kwargs = outbox[0]
    assert message["To"] == "a@x.com"
    assert message["Subject"] == "Reset your password"
    assert kwargs["hostname"] == settings.SMTP_HOST
    assert _link_token(message) == "tok.en-123"


@pytest.mark.asyncio
async def test_verification_email(settings, account, outbox):
    service = EmailService(settings)

    assert await service.send_verification(account, "verify-me") is True

    message, _ = outbox[0]
    assert message["Subject"] == "Confirm your account"
    assert _link_token(message) == "verify-me"


@pytest.mark.asyncio
async def test_smtp_failure_returns_false(settings, account, monkeypatch):
    async def failing_send(message, **kwargs):
        raise aiosmtplib.SMTPConnectError("connection refused")

    monkeypatch.setattr(aiosmtplib, "send", failing_send)

    assert await EmailService(settings).send_password_reset(account, "token") is False
