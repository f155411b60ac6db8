# src/huddle/scripts/tokens.py
"""Mint access tokens for local development.

Token issuance belongs to the account service; this helper exists so the
realtime gateway can be exercised without it.

Usage:
    python -m huddle.scripts.tokens <username> [<username> ...]
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy.orm import Session

from huddle.core.security import create_access_token
from huddle.db.session import SessionLocal
from huddle.models import User


def token_for_username(db: Session, username: str) -> str | None:
    """Return a fresh access token for ``username`` or None if unknown."""
    user = db.query(User).filter(User.username == username, User.is_active.is_(True)).first()
    if user is None:
        return None
    return create_access_token(user.id, {"username": user.username})


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("usernames", nargs="+")
    args = parser.parse_args(argv)

    status = 0
    db = SessionLocal()
    try:
        for username in args.usernames:
            token = token_for_username(db, username)
            if token is None:
                print(f"unknown user: {username}", file=sys.stderr)
                status = 1
                continue
            print(f"{username}\t{token}")
    finally:
        db.close()
    return status


if __name__ == "__main__":
    sys.exit(main())
