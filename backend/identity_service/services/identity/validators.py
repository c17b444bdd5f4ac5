"""
Input shape checks for registration and password changes.
"""

import re

from identity_service.core.errors import invalid_phone_number, invalid_username, weak_password

PASSWORD_SYMBOLS = "@$!%*#?&"

_PASSWORD_RE = re.compile(
    r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d" + re.escape(PASSWORD_SYMBOLS) + r"]{8,}$"
)
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,20}$")
_PHONE_RE = re.compile(r"^[0-9]{10,15}$")


def validate_password(password: str) -> None:
    if not isinstance(password, str) or not _PASSWORD_RE.fullmatch(password):
        raise weak_password()


def validate_username(username: str) -> None:
    if not isinstance(username, str) or not _USERNAME_RE.fullmatch(username):
        raise invalid_username()


def validate_phone_number(phone_number: str) -> None:
    # [0-9] rather than \d: \d also accepts non-ASCII digits
    if not isinstance(phone_number, str) or not _PHONE_RE.fullmatch(phone_number):
        raise invalid_phone_number()
