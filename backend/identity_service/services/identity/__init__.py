"""Identity service: credential verification and token lifecycle."""

from .accounts import AccountStore, AccountView
from .delivery import TokenDelivery
from .passwords import PasswordHasher
from .resolver import (
    IdentifierResolver,
    is_email_or_username,
    normalize_email,
    normalize_phone_number,
)
from .service import RECOVERY_MESSAGE, IdentityService, RecoveryResponse
from .tokens import (
    AccessClaims,
    PurposeClaims,
    RefreshClaims,
    TokenIssuer,
    TokenLifetimes,
    TokenPair,
    TokenVerifier,
)
from .validators import validate_password, validate_phone_number, validate_username

__all__ = [
    "AccountStore",
    "AccountView",
    "TokenDelivery",
    "PasswordHasher",
    "IdentifierResolver",
    "is_email_or_username",
    "normalize_email",
    "normalize_phone_number",
    "IdentityService",
    "RecoveryResponse",
    "RECOVERY_MESSAGE",
    "AccessClaims",
    "PurposeClaims",
    "RefreshClaims",
    "TokenIssuer",
    "TokenLifetimes",
    "TokenPair",
    "TokenVerifier",
    "validate_password",
    "validate_phone_number",
    "validate_username",
]
