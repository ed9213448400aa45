"""Create the first admin account.

Reads ADMIN_EMAIL / ADMIN_PASSWORD from the environment (or .env) unless
given on the command line. Does nothing if the email is already registered.

    python scripts/create_admin.py --email admin@health.com --password s3cret
"""
import argparse
import logging
import sys

from care_portal.core.config import settings
from care_portal.core.database import SessionLocal, init_db
from care_portal.core.exceptions import DuplicateEmail
from care_portal.services.auth_service import AuthService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("create_admin")


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the first admin account")
    parser.add_argument("--email", default=settings.ADMIN_EMAIL)
    parser.add_argument("--password", default=settings.ADMIN_PASSWORD)
    parser.add_argument("--first-name", default=settings.ADMIN_FIRST_NAME)
    parser.add_argument("--last-name", default=settings.ADMIN_LAST_NAME)
    args = parser.parse_args()

    if not args.password:
        logger.error("No admin password given; set ADMIN_PASSWORD or pass --password")
        return 1

    init_db()
    db = SessionLocal()
    try:
        admin = AuthService(db).create_admin(
            args.email, args.password, args.first_name, args.last_name
        )
    except DuplicateEmail:
        logger.info(f"Account {args.email} already exists. No action taken.")
        return 0
    finally:
        db.close()

    logger.info(f"Admin account created: id={admin.id} email={admin.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
