"""
Password hashing with bcrypt.
"""

import asyncio

import bcrypt

from identity_service.core.logging import get_logger

logger = get_logger(__name__)

# bcrypt work factor (higher = more secure but slower)
BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Hashes and verifies passwords with bcrypt.

    The async variants push the work to a thread so a slow hash does not
    stall other requests on the event loop.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds
        # Compared against when no account matched, so a miss costs the
        # same as a wrong password.
        self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=rounds))

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt."""
        password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a hash."""
        try:
            password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
            return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
        except ValueError as e:
            # Malformed stored hash
            logger.warning(f"Password verification error: {e}")
            return False

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, plain_password: str, hashed_password: str) -> bool:
        return await asyncio.to_thread(self.verify, plain_password, hashed_password)

    async def burn_verification(self, plain_password: str) -> None:
        """Spend one verification's worth of time against a dummy hash."""
        await asyncio.to_thread(
            bcrypt.checkpw,
            plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            self._dummy_hash,
        )
