# tests/test_scripts.py
"""Tests for the development helper scripts."""

from huddle.models import User
from huddle.scripts.init_db import seed_demo_users
from huddle.scripts.tokens import token_for_username
from huddle.services.identity import JwtIdentityVerifier


def test_seed_demo_users_is_idempotent(db_session) -> None:
    first = seed_demo_users(db_session)
    second = seed_demo_users(db_session)

    assert [user.username for user in first] == ["alice", "bob"]
    assert [user.id for user in second] == [user.id for user in first]
    assert db_session.query(User).count() == 2


def test_token_for_username(db_session, alice) -> None:
    token = token_for_username(db_session, "alice")

    assert token is not None
    identity = JwtIdentityVerifier().verify(token)
    assert identity.user_id == alice.id
    assert identity.claims["username"] == "alice"
    assert token_for_username(db_session, "nobody") is None
