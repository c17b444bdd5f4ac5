"""
Identifier resolution: email, username or phone number to an account.
"""

import re
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_service.core.errors import ambiguous_identifier, lookup_failed
from identity_service.core.logging import get_logger
from identity_service.db.errors import STORE_ERRORS
from identity_service.db.models import Account

logger = get_logger(__name__)

_ALPHANUMERIC_RE = re.compile(r"^[A-Za-z0-9]+$")
_PHONE_FORMATTING_RE = re.compile(r"[\s\-().]|^\+")


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_phone_number(value: str) -> str:
    """Strip typed formatting (spaces, dashes, dots, parentheses, leading +)."""
    return _PHONE_FORMATTING_RE.sub("", value.strip())


def is_email_or_username(identifier: str) -> bool:
    """Shape rule: anything with '@' or purely alphanumeric is not a phone."""
    return "@" in identifier or bool(_ALPHANUMERIC_RE.fullmatch(identifier))


class IdentifierResolver:
    """
    Looks up accounts by a user-supplied identifier.

    A miss is ``None``, never an error. Store failures are logged in full
    and surfaced as ``LookupFailed`` without the underlying cause.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def resolve(self, identifier: str) -> Account | None:
        if is_email_or_username(identifier):
            return await self._by_email_or_username(identifier)
        return await self._by_phone_number(identifier)

    async def get_by_id(self, account_id: UUID | str) -> Account | None:
        try:
            account_uuid = account_id if isinstance(account_id, UUID) else UUID(str(account_id))
        except ValueError:
            return None

        try:
            async with self._session_factory() as session:
                return await session.get(Account, account_uuid)
        except STORE_ERRORS:
            logger.error("Account lookup by id failed", exc_info=True)
            raise lookup_failed() from None

    async def _by_email_or_username(self, identifier: str) -> Account | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Account)
                    .where(
                        or_(
                            Account.email == normalize_email(identifier),
                            Account.username == identifier,
                        )
                    )
                    .order_by(Account.created_at, Account.id)
                )
                # Email and username are each unique, but one identifier can
                # be one account's email and another's username; prefer the
                # email match.
                candidates = result.scalars().all()
        except STORE_ERRORS:
            logger.error("Account lookup by email/username failed", exc_info=True)
            raise lookup_failed() from None

        if not candidates:
            return None
        normalized = normalize_email(identifier)
        for candidate in candidates:
            if candidate.email == normalized:
                return candidate
        return candidates[0]

    async def _by_phone_number(self, identifier: str) -> Account | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Account)
                    .where(Account.phone_number == normalize_phone_number(identifier))
                    .limit(2)
                )
                matches = result.scalars().all()
        except STORE_ERRORS:
            logger.error("Account lookup by phone number failed", exc_info=True)
            raise lookup_failed() from None

        if len(matches) > 1:
            logger.error_with_data(
                "Phone number matches multiple accounts",
                {"account_ids": [str(m.id) for m in matches]},
            )
            raise ambiguous_identifier()
        return matches[0] if matches else None
