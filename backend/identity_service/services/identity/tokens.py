"""
JWT token issuing and verification.

Access and refresh tokens are signed with different secrets so a token from
one family can never pass as the other. Password-reset and verification
tokens share the access secret and are kept apart by their ``type`` claim.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal

import jwt
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from identity_service.core.config import Settings, SigningSecrets
from identity_service.core.logging import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"

ACCESS_TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(days=7)
PASSWORD_RESET_TOKEN_TTL = timedelta(minutes=15)
VERIFICATION_TOKEN_TTL = timedelta(hours=1)

Purpose = Literal["password_reset", "verification"]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenPair(BaseModel):
    """Access/refresh token pair handed to the caller."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class _Claims(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    exp: datetime
    iat: datetime


class AccessClaims(_Claims):
    """Decoded access token."""
    role: str


class RefreshClaims(_Claims):
    """Decoded refresh token. Carries no role."""


class PurposeClaims(_Claims):
    """Decoded single-purpose token (password reset, verification)."""
    purpose: str


class TokenLifetimes(BaseModel):
    model_config = ConfigDict(frozen=True)

    access: timedelta = ACCESS_TOKEN_TTL
    refresh: timedelta = REFRESH_TOKEN_TTL
    password_reset: timedelta = PASSWORD_RESET_TOKEN_TTL
    verification: timedelta = VERIFICATION_TOKEN_TTL

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenLifetimes":
        return cls(
            access=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            password_reset=timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
            verification=timedelta(minutes=settings.VERIFICATION_EXPIRE_MINUTES),
        )


class TokenIssuer:
    """Mints signed, time-bounded tokens."""

    def __init__(
        self,
        secrets: SigningSecrets,
        clock: Clock = utc_now,
        lifetimes: TokenLifetimes | None = None,
    ):
        self._secrets = secrets
        self._clock = clock
        self.lifetimes = lifetimes or TokenLifetimes()

    def _encode(self, claims: dict[str, Any], key: str, ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, key, algorithm=ALGORITHM)

    def create_access_token(self, account_id: str, role: str) -> str:
        return self._encode(
            {"id": account_id, "role": role, "type": "access"},
            self._secrets.access_key,
            self.lifetimes.access,
        )

    def create_refresh_token(self, account_id: str) -> str:
        # Role is left out on purpose: it is re-read from the store on refresh.
        return self._encode(
            {"id": account_id, "type": "refresh"},
            self._secrets.refresh_key,
            self.lifetimes.refresh,
        )

    def issue(self, account_id: str, role: str) -> TokenPair:
        """Create both access and refresh tokens."""
        return TokenPair(
            access_token=self.create_access_token(account_id, role),
            refresh_token=self.create_refresh_token(account_id),
        )

    def issue_password_reset(self, account_id: str) -> str:
        return self._encode(
            {"id": account_id, "type": "password_reset"},
            self._secrets.access_key,
            self.lifetimes.password_reset,
        )

    def issue_verification(self, account_id: str) -> str:
        return self._encode(
            {"id": account_id, "type": "verification"},
            self._secrets.access_key,
            self.lifetimes.verification,
        )


class TokenVerifier:
    """
    Validates tokens and decodes their claims.

    Every ``verify_*`` method returns ``None`` on any failure. The cause is
    logged here and nowhere else, so callers cannot tell an expired token
    from a forged one.
    """

    def __init__(self, secrets: SigningSecrets, clock: Clock = utc_now):
        self._secrets = secrets
        self._clock = clock

    def _decode(self, token: str, key: str, token_type: str) -> dict[str, Any] | None:
        try:
            # Expiry is checked against the injected clock below.
            payload = jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["id", "type", "iat", "exp"],
                },
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid {token_type} token: {e}")
            return None

        if payload.get("type") != token_type:
            logger.warning(f"Token type mismatch: expected {token_type}, got {payload.get('type')}")
            return None

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or exp <= self._clock().timestamp():
            logger.debug(f"{token_type} token has expired")
            return None

        return payload

    @staticmethod
    def _claims(model: type[_Claims], payload: dict[str, Any], **extra: Any) -> Any:
        try:
            return model(
                id=payload["id"],
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                **extra,
            )
        except (PydanticValidationError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Malformed token claims: {e}")
            return None

    def verify_access(self, token: str) -> AccessClaims | None:
        payload = self._decode(token, self._secrets.access_key, "access")
        if payload is None:
            return None
        return self._claims(AccessClaims, payload, role=payload.get("role"))

    def verify_refresh(self, token: str) -> RefreshClaims | None:
        payload = self._decode(token, self._secrets.refresh_key, "refresh")
        if payload is None:
            return None
        return self._claims(RefreshClaims, payload)

    def verify_purpose(self, token: str, purpose: Purpose) -> PurposeClaims | None:
        payload = self._decode(token, self._secrets.access_key, purpose)
        if payload is None:
            return None
        return self._claims(PurposeClaims, payload, purpose=purpose)
