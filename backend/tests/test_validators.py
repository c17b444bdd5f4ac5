"""Tests for password, username and phone-number validation."""

import pytest

from identity_service.core.errors import ErrorCode, ErrorKind, ValidationError
from identity_service.services.identity import (
    validate_password,
    validate_phone_number,
    validate_username,
)


@pytest.mark.parametrize("password", ["Passw0rd!", "abcdefg1", "12345678a", "A1@$!%*#?&"])
def test_accepts_strong_passwords(password):
    validate_password(password)


@pytest.mark.parametrize(
    "password",
    [
        "Pass0!",          # too short
        "abcdefgh",        # no digit
        "12345678",        # no letter
        "Passw0rd^",       # symbol outside the allowed set
        "Passw0rd ",       # whitespace
        "",
    ],
)
def test_rejects_weak_passwords(password):
    with pytest.raises(ValidationError) as exc_info:
        validate_password(password)
    assert exc_info.value.code is ErrorCode.WEAK_PASSWORD
    assert exc_info.value.kind is ErrorKind.VALIDATION


@pytest.mark.parametrize("username", ["abc", "alice", "alice_1", "A" * 20, "___"])
def test_accepts_valid_usernames(username):
    validate_username(username)


@pytest.mark.parametrize("username", ["ab", "a" * 21, "alice-1", "alice@x", "al ice", ""])
def test_rejects_invalid_usernames(username):
    with pytest.raises(ValidationError) as exc_info:
        validate_username(username)
    assert exc_info.value.code is ErrorCode.INVALID_USERNAME


@pytest.mark.parametrize("phone", ["1234567890", "123456789012345"])
def test_accepts_valid_phone_numbers(phone):
    validate_phone_number(phone)


@pytest.mark.parametrize(
    "phone",
    ["123456789", "1234567890123456", "+1234567890", "123-456-7890", "١٢٣٤٥٦٧٨٩٠"],
)
def test_rejects_invalid_phone_numbers(phone):
    with pytest.raises(ValidationError) as exc_info:
        validate_phone_number(phone)
    assert exc_info.value.code is ErrorCode.INVALID_PHONE_NUMBER


def test_validation_messages_are_actionable():
    with pytest.raises(ValidationError) as exc_info:
        validate_password("short")
    assert "8 characters" in exc_info.value.message
