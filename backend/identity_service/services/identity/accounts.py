"""
Account persistence: registration and the few mutations the recovery
flows need.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_service.core.errors import (
    IdentityError,
    email_taken,
    registration_failed,
    request_failed,
    username_taken,
)
from identity_service.core.logging import get_logger
from identity_service.db.errors import STORE_ERRORS, is_unique_violation, violated_column
from identity_service.db.models import DEFAULT_ROLE, Account
from .passwords import PasswordHasher
from .resolver import normalize_email
from .validators import validate_password, validate_phone_number, validate_username

logger = get_logger(__name__)


class AccountView(BaseModel):
    """Public-safe projection of an account. Never carries the hash."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    username: str
    email: str
    phone_number: str
    role: str


class AccountStore:
    """Transactional account creation and updates."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: PasswordHasher,
    ):
        self._session_factory = session_factory
        self._hasher = hasher

    async def register(
        self,
        username: str,
        password: str,
        email: str,
        phone_number: str,
        role: str = DEFAULT_ROLE,
    ) -> AccountView:
        """
        Create an account inside a single transaction.

        The existence checks give precise errors in the common case; the
        unique constraints on email and username decide races between
        concurrent registrations.

        Raises:
            ValidationError: weak password, bad username or phone number
            ConflictError: email or username already registered
            InfrastructureError: anything else went wrong in the store
        """
        validate_password(password)
        validate_username(username)
        validate_phone_number(phone_number)
        normalized_email = normalize_email(email)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await session.execute(
                        select(Account.id).where(Account.email == normalized_email).limit(1)
                    )
                    if existing.scalar_one_or_none() is not None:
                        raise email_taken()

                    existing = await session.execute(
                        select(Account.id).where(Account.username == username).limit(1)
                    )
                    if existing.scalar_one_or_none() is not None:
                        raise username_taken()

                    account = Account(
                        username=username,
                        email=normalized_email,
                        password=await self._hasher.hash_async(password),
                        phone_number=phone_number,
                        role=role,
                    )
                    session.add(account)
                    await session.flush()
                    view = AccountView.model_validate(account)
        except IdentityError:
            raise
        except IntegrityError as exc:
            if is_unique_violation(exc):
                column = violated_column(exc, ("email", "username"))
                logger.info(f"Registration lost a uniqueness race on {column or 'unknown column'}")
                raise (email_taken() if column == "email" else username_taken()) from None
            logger.error("Registration failed on integrity error", exc_info=True)
            raise registration_failed() from None
        except Exception:
            logger.error("Registration failed", exc_info=True)
            raise registration_failed() from None

        logger.info_with_data("Account registered", {"account_id": str(view.id), "role": view.role})
        return view

    async def update_password(self, account_id: UUID, password: str) -> bool:
        """Store a new hash. Returns False when the account no longer exists."""
        validate_password(password)
        password_hash = await self._hasher.hash_async(password)
        return await self._update(account_id, password=password_hash)

    async def mark_verified(self, account_id: UUID) -> bool:
        return await self._update(account_id, is_verified=True)

    async def _update(self, account_id: UUID, **values) -> bool:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(Account).where(Account.id == account_id).values(**values)
                    )
        except STORE_ERRORS:
            logger.error("Account update failed", exc_info=True)
            raise request_failed() from None
        return result.rowcount > 0
