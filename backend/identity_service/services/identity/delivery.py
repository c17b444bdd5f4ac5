"""Outbound delivery of recovery tokens."""

from typing import Protocol

from identity_service.db.models import Account


class TokenDelivery(Protocol):
    """
    Sends single-purpose tokens to an account holder.

    Implementations report failure by returning False; the recovery flows
    log it and still answer with the non-disclosing response.
    """

    async def send_password_reset(self, account: Account, token: str) -> bool:
        ...

    async def send_verification(self, account: Account, token: str) -> bool:
        ...
