"""
Error taxonomy for the identity core.

Every failure crossing the public surface is an ``IdentityError`` carrying
an ``ErrorKind`` (what class of problem) and an ``ErrorCode`` (which one).
Messages are caller-safe: internal detail is logged, never attached.
"""

import enum


class ErrorKind(str, enum.Enum):
    """Broad failure categories callers can branch on."""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    INTEGRITY = "integrity"
    INFRASTRUCTURE = "infrastructure"


class ErrorCode(str, enum.Enum):
    """Specific failure identifiers."""
    WEAK_PASSWORD = "weak_password"
    INVALID_USERNAME = "invalid_username"
    INVALID_PHONE_NUMBER = "invalid_phone_number"
    EMAIL_TAKEN = "email_taken"
    USERNAME_TAKEN = "username_taken"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_REFRESH_TOKEN = "invalid_refresh_token"
    INVALID_RECOVERY_TOKEN = "invalid_recovery_token"
    AMBIGUOUS_IDENTIFIER = "ambiguous_identifier"
    LOOKUP_FAILED = "lookup_failed"
    REGISTRATION_FAILED = "registration_failed"
    REQUEST_FAILED = "request_failed"


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class IdentityError(Exception):
    """Base class for all caller-facing identity failures."""

    kind: ErrorKind

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class ValidationError(IdentityError):
    kind = ErrorKind.VALIDATION


class ConflictError(IdentityError):
    kind = ErrorKind.CONFLICT


class AuthenticationError(IdentityError):
    kind = ErrorKind.AUTHENTICATION


class IntegrityError(IdentityError):
    kind = ErrorKind.INTEGRITY


class InfrastructureError(IdentityError):
    kind = ErrorKind.INFRASTRUCTURE


# Caller-facing messages. Authentication and infrastructure messages are
# deliberately identical across root causes.
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_REFRESH_TOKEN_MESSAGE = "Invalid or expired refresh token"
INVALID_RECOVERY_TOKEN_MESSAGE = "Invalid or expired token"


def weak_password() -> ValidationError:
    return ValidationError(
        ErrorCode.WEAK_PASSWORD,
        "Password must be at least 8 characters and contain at least one letter "
        "and one digit; allowed symbols are @$!%*#?&",
    )


def invalid_username() -> ValidationError:
    return ValidationError(
        ErrorCode.INVALID_USERNAME,
        "Username must be 3-20 characters of letters, digits or underscores",
    )


def invalid_phone_number() -> ValidationError:
    return ValidationError(
        ErrorCode.INVALID_PHONE_NUMBER,
        "Phone number must contain 10-15 digits only",
    )


def email_taken() -> ConflictError:
    return ConflictError(ErrorCode.EMAIL_TAKEN, "Email already registered")


def username_taken() -> ConflictError:
    return ConflictError(ErrorCode.USERNAME_TAKEN, "Username already taken")


def invalid_credentials() -> AuthenticationError:
    return AuthenticationError(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)


def invalid_refresh_token() -> AuthenticationError:
    return AuthenticationError(ErrorCode.INVALID_REFRESH_TOKEN, INVALID_REFRESH_TOKEN_MESSAGE)


def invalid_recovery_token() -> AuthenticationError:
    return AuthenticationError(ErrorCode.INVALID_RECOVERY_TOKEN, INVALID_RECOVERY_TOKEN_MESSAGE)


def ambiguous_identifier() -> IntegrityError:
    return IntegrityError(
        ErrorCode.AMBIGUOUS_IDENTIFIER,
        "Identifier matches more than one account; contact support",
    )


def lookup_failed() -> InfrastructureError:
    return InfrastructureError(ErrorCode.LOOKUP_FAILED, "Account lookup failed")


def registration_failed() -> InfrastructureError:
    return InfrastructureError(ErrorCode.REGISTRATION_FAILED, "Registration failed")


def request_failed() -> InfrastructureError:
    return InfrastructureError(ErrorCode.REQUEST_FAILED, "Request could not be processed")
