"""
Create an administrator account.
Run with: python -m scripts.create_admin <username> <email> <phone_number>

The password is read interactively so it never lands in shell history.
"""

import argparse
import asyncio
import getpass

from identity_service.core.config import Settings, get_settings
from identity_service.core.errors import IdentityError
from identity_service.db.session import close_db, create_engine, create_session_factory, init_db
from identity_service.services.email.service import EmailService
from identity_service.services.identity import AccountView, IdentityService

ADMIN_ROLE = "admin"


async def create_admin(
    settings: Settings,
    username: str,
    password: str,
    email: str,
    phone_number: str,
) -> AccountView:
    """Register an account with the admin role."""
    engine = create_engine(settings)
    try:
        await init_db(engine)
        service = IdentityService.from_settings(
            settings,
            create_session_factory(engine),
            EmailService(settings),
        )
        return await service.register(username, password, email, phone_number, role=ADMIN_ROLE)
    finally:
        await close_db(engine)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an administrator account.")
    parser.add_argument("username")
    parser.add_argument("email")
    parser.add_argument("phone_number")
    args = parser.parse_args(argv)

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("Passwords do not match")
        return 1

    try:
        account = asyncio.run(
            create_admin(get_settings(), args.username, password, args.email, args.phone_number)
        )
    except IdentityError as e:
        print(f"Failed: {e.message}")
        return 1

    print(f"Created admin {account.username} ({account.id})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
