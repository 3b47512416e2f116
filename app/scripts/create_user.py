"""
Script to create an already verified user, bypassing the email step.

Useful for seeding local and staging environments where no SMTP server
is available.

Usage:
    python -m app.scripts.create_user "Full Name" user@example.com 'Passw0rd!'
"""

import sys

from app.auth.errors import AuthError
from app.auth.store import create_user, mark_verified
from app.auth.validation import validate_signup
from app.db import SessionLocal
from app.services.auth import hash_password


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 3:
        print(__doc__)
        return 2

    full_name, email, password = args
    db = SessionLocal()
    try:
        validate_signup(full_name, email, password)
        user = create_user(db, full_name, email, hash_password(password))
        mark_verified(db, user)
    except AuthError as exc:
        print(f"Could not create user: {exc.description}")
        for violation in exc.errors or []:
            print(f"  - {violation['field']}: {violation['message']}")
        return 1
    finally:
        db.close()

    print("\n" + "=" * 50)
    print("User Created")
    print("=" * 50)
    print(f"ID: {user.id}")
    print(f"NAME: {user.full_name}")
    print(f"EMAIL: {user.email}")
    print(f"VERIFIED: {user.verified}")
    print("=" * 50 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
