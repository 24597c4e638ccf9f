"""
Grant the admin role to an account, creating the account first if needed.

    python -m tools.create_admin admin@college.edu --password s3cret --name "Admissions Office"
"""

from __future__ import annotations

import argparse
import logging

from core.config import settings
from core.logging import configure_logging
from domain.models import AppRole
from services.identity import IdentityService
from services.persistence.platform import DataPlatform, build_platform

logger = logging.getLogger(__name__)


def ensure_admin(platform: DataPlatform, email: str, password: str | None, name: str) -> str:
    """Returns the admin's user id."""
    user = platform.db.get_user_by_email(email.strip().lower())
    if user is None:
        if not password:
            raise SystemExit(f"{email} has no account; pass --password to create one")
        user = IdentityService(platform.db).sign_up(email, password, name)
        logger.info("created account %s", email)
    platform.db.grant_role(user.id, AppRole.ADMIN)
    logger.info("granted admin to %s (%s)", email, user.id)
    return user.id


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    ap.add_argument("email")
    ap.add_argument("--password", help="only used when the account does not exist yet")
    ap.add_argument("--name", default="Administrator")
    args = ap.parse_args(argv)

    configure_logging()
    platform = build_platform(settings)
    try:
        ensure_admin(platform, args.email, args.password, args.name)
    finally:
        platform.close()


if __name__ == "__main__":
    main()
