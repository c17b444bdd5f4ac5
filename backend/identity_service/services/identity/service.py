"""
Identity service: the public operation surface.

Constructed once at startup with its collaborators and shared by
reference. Its only mutable state is the set of in-flight recovery
deliveries, which run outside the request that triggered them.
"""

import asyncio
from typing import Awaitable, Callable

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_service.core.config import Settings, SigningSecrets
from identity_service.core.errors import (
    IdentityError,
    InfrastructureError,
    invalid_credentials,
    invalid_recovery_token,
    invalid_refresh_token,
    request_failed,
)
from identity_service.core.logging import get_logger
from identity_service.core.metrics import (
    MetricsCollector,
    track_login,
    track_recovery_request,
    track_registration,
    track_token_refresh,
)
from identity_service.db.models import DEFAULT_ROLE, Account
from .accounts import AccountStore, AccountView
from .delivery import TokenDelivery
from .passwords import PasswordHasher
from .resolver import IdentifierResolver
from .tokens import (
    AccessClaims,
    Clock,
    TokenIssuer,
    TokenLifetimes,
    TokenPair,
    TokenVerifier,
    utc_now,
)

logger = get_logger(__name__)

RECOVERY_MESSAGE = "If the account exists, an action has been sent"


class RecoveryResponse(BaseModel):
    """Answer to a recovery request. Identical whether or not the account exists."""
    message: str = RECOVERY_MESSAGE


class IdentityService:
    """Registration, login, token rotation and account recovery."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        secrets: SigningSecrets,
        delivery: TokenDelivery,
        *,
        clock: Clock = utc_now,
        hasher: PasswordHasher | None = None,
        lifetimes: TokenLifetimes | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.hasher = hasher or PasswordHasher()
        self.resolver = IdentifierResolver(session_factory)
        self.accounts = AccountStore(session_factory, self.hasher)
        self.issuer = TokenIssuer(secrets, clock=clock, lifetimes=lifetimes)
        self.verifier = TokenVerifier(secrets, clock=clock)
        self.delivery = delivery
        self.metrics = metrics or MetricsCollector()
        self._deliveries: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        delivery: TokenDelivery,
        metrics: MetricsCollector | None = None,
    ) -> "IdentityService":
        """Build the service from validated settings. Fails closed on missing secrets."""
        return cls(
            session_factory,
            SigningSecrets.from_settings(settings),
            delivery,
            hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
            lifetimes=TokenLifetimes.from_settings(settings),
            metrics=metrics,
        )

    async def register(
        self,
        username: str,
        password: str,
        email: str,
        phone_number: str,
        role: str = DEFAULT_ROLE,
    ) -> AccountView:
        """Create a new account. See ``AccountStore.register``."""
        try:
            account = await self.accounts.register(username, password, email, phone_number, role)
        except IdentityError as e:
            await track_registration(self.metrics, e.code.value)
            raise
        await track_registration(self.metrics, "success")
        return account

    async def login(self, identifier: str, password: str) -> TokenPair:
        """
        Authenticate by identifier and password.

        An unknown identifier and a wrong password fail with the same
        ``InvalidCredentials`` error and cost one bcrypt comparison each.
        """
        account = await self.resolver.resolve(identifier)

        if account is None:
            await self.hasher.burn_verification(password)
            await track_login(self.metrics, "failure")
            raise invalid_credentials()

        if not await self.hasher.verify_async(password, account.password):
            await track_login(self.metrics, "failure")
            raise invalid_credentials()

        await track_login(self.metrics, "success")
        logger.info_with_data("Login succeeded", {"account_id": str(account.id)})
        return self.issuer.issue(str(account.id), account.role)

    async def refresh_access_token(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        The role in the new access token is read from the store, not from
        any earlier token.
        """
        claims = self.verifier.verify_refresh(refresh_token)
        if claims is None:
            await track_token_refresh(self.metrics, "rejected")
            raise invalid_refresh_token()

        account = await self.resolver.get_by_id(claims.id)
        if account is None:
            logger.warning_with_data("Refresh token for missing account", {"account_id": claims.id})
            await track_token_refresh(self.metrics, "rejected")
            raise invalid_refresh_token()

        await track_token_refresh(self.metrics, "success")
        return self.issuer.issue(str(account.id), account.role)

    def verify_token(self, token: str) -> AccessClaims | None:
        """Decode an access token; ``None`` for any kind of invalid token."""
        return self.verifier.verify_access(token)

    async def forgot_password(self, identifier: str) -> RecoveryResponse:
        return await self._recover(
            identifier,
            "password_reset",
            self.issuer.issue_password_reset,
            self.delivery.send_password_reset,
        )

    async def resend_verification_token(self, identifier: str) -> RecoveryResponse:
        return await self._recover(
            identifier,
            "verification",
            self.issuer.issue_verification,
            self.delivery.send_verification,
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using a password-reset token."""
        claims = self.verifier.verify_purpose(token, "password_reset")
        if claims is None:
            raise invalid_recovery_token()
        account = await self._recovery_target(claims.id)
        if not await self.accounts.update_password(account.id, new_password):
            raise invalid_recovery_token()
        logger.info_with_data("Password reset", {"account_id": str(account.id)})

    async def confirm_verification(self, token: str) -> None:
        """Mark the account named by a verification token as verified."""
        claims = self.verifier.verify_purpose(token, "verification")
        if claims is None:
            raise invalid_recovery_token()
        account = await self._recovery_target(claims.id)
        if not await self.accounts.mark_verified(account.id):
            raise invalid_recovery_token()
        logger.info_with_data("Account verified", {"account_id": str(account.id)})

    async def _recovery_target(self, account_id: str) -> Account:
        try:
            account = await self.resolver.get_by_id(account_id)
        except InfrastructureError:
            raise request_failed() from None
        if account is None:
            raise invalid_recovery_token()
        return account

    async def _recover(
        self,
        identifier: str,
        flow: str,
        mint: Callable[[str], str],
        send: Callable[[Account, str], Awaitable[bool]],
    ) -> RecoveryResponse:
        try:
            account = await self.resolver.resolve(identifier)
        except InfrastructureError:
            raise request_failed() from None

        await track_recovery_request(self.metrics, flow)
        if account is not None:
            # Detached: both branches return after the same work.
            task = asyncio.create_task(self._deliver(flow, send, account, mint(str(account.id))))
            self._deliveries.add(task)
            task.add_done_callback(self._deliveries.discard)
        return RecoveryResponse()

    async def _deliver(
        self,
        flow: str,
        send: Callable[[Account, str], Awaitable[bool]],
        account: Account,
        token: str,
    ) -> None:
        data = {"flow": flow, "account_id": str(account.id)}
        try:
            sent = await send(account, token)
        except Exception:
            logger.error_with_data("Recovery token delivery raised", data, exc_info=True)
            return
        if not sent:
            logger.warning_with_data("Recovery token delivery failed", data)

    async def wait_for_deliveries(self) -> None:
        """Wait until every dispatched recovery delivery has finished."""
        if self._deliveries:
            await asyncio.gather(*self._deliveries, return_exceptions=True)
