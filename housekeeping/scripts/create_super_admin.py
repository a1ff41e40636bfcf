"""
Bootstrap a super admin account

Super admins cannot register through the API, so the first one is created
from the command line:

    python -m housekeeping.scripts.create_super_admin --email root@example.com --name "Root"

The password is read from --password or prompted for.
"""

import argparse
import asyncio
import getpass
import sys

import structlog

from housekeeping.core.database import async_session_maker, init_db
from housekeeping.core.errors import HousekeepingError
from housekeeping.models.company import SYSTEM_COMPANY_ID
from housekeeping.models.user import Account, UserRole
from housekeeping.services.companies import CompanyService
from housekeeping.services.identity import DatabaseIdentityProvider
from housekeeping.services.users import UserService

logger = structlog.get_logger(__name__)


async def create_super_admin(email: str, password: str, name: str, create_tables: bool = False) -> Account:
    """Create identity and account for a super admin in the system tenant"""
    if create_tables:
        await init_db()

    async with async_session_maker() as session:
        users = UserService(session, CompanyService(session), DatabaseIdentityProvider(async_session_maker))
        return await users.create_account(
            email=email,
            password=password,
            name=name,
            role=UserRole.SUPER_ADMIN,
            company_id=SYSTEM_COMPANY_ID,
            must_change_password=False,
        )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a Housekeeping OS super admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables first (development databases without migrations)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        logger.error("La contraseña debe tener al menos 6 caracteres")
        sys.exit(1)

    try:
        account = asyncio.run(create_super_admin(args.email, password, args.name, args.create_tables))
    except HousekeepingError as e:
        logger.error("super_admin_creation_failed", error=e.message)
        sys.exit(1)

    logger.info("super_admin_created", user_id=str(account.id), email=account.email)


if __name__ == "__main__":
    main()
