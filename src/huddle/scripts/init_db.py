# src/huddle/scripts/init_db.py
"""Create the database tables and optionally seed demo accounts.

Usage:
    python -m huddle.scripts.init_db [--seed]
"""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from huddle.core.logging import configure_logging
from huddle.db.session import SessionLocal, create_tables
from huddle.models import User

logger = logging.getLogger(__name__)

DEMO_USERS = (
    ("alice", "Alice"),
    ("bob", "Bob"),
)


def seed_demo_users(db: Session) -> list[User]:
    """Insert the demo accounts that do not exist yet and return all of them."""
    users: list[User] = []
    for username, nickname in DEMO_USERS:
        user = db.query(User).filter(User.username == username).first()
        if user is None:
            user = User(username=username, nickname=nickname)
            db.add(user)
            logger.info("Created demo user %s", username)
        users.append(user)
    db.commit()
    return users


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="insert demo accounts")
    args = parser.parse_args(argv)

    configure_logging()
    create_tables()
    logger.info("Database tables created")

    if args.seed:
        db = SessionLocal()
        try:
            for user in seed_demo_users(db):
                print(f"{user.username}\t{user.id}")
        finally:
            db.close()


if __name__ == "__main__":
    main()
