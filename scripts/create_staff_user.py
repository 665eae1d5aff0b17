"""
Provision a staff account from the command line.

Creates the identity account and its profile row with the same rollback
behaviour as ``POST /api/admin/users``. Useful for bootstrapping the first
admin before anyone can log in to the dashboard.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from casework.accounts import create_staff_user
from casework.dependencies import get_identity_provider, get_service_db_client
from casework.errors import CaseworkError
from casework.schemas import CreateUserRequest


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a staff user")
    parser.add_argument("email", help="Login email for the new account")
    parser.add_argument("full_name", help="Display name shown in the dashboard")
    parser.add_argument(
        "--role",
        default="field_worker",
        help="Profile role, e.g. admin, staff, volunteer or field_worker",
    )
    parser.add_argument(
        "--password",
        default=None,
        help="Initial password; prompted for when omitted",
    )
    parser.add_argument(
        "--dashboard",
        action="store_true",
        help="Grant dashboard access",
    )
    parser.add_argument(
        "--no-field-intake",
        action="store_true",
        help="Withhold field intake access",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    password = args.password or getpass.getpass("Password: ")

    request = CreateUserRequest(
        email=args.email,
        password=password,
        full_name=args.full_name,
        role=args.role,
        can_field_intake=not args.no_field_intake,
        can_access_dashboard=args.dashboard,
    )
    try:
        profile = create_staff_user(get_identity_provider(), get_service_db_client(), request)
    except CaseworkError as exc:
        logger.error("%s (%s)", exc.message, exc.details or "no details")
        return 1

    logger.info("Created %s user %s (%s)", profile["role"], profile["email"], profile["id"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
