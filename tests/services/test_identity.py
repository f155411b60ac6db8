"""Tests for JWT handshake verification."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from huddle.core.security import create_access_token
from huddle.core.settings import settings
from huddle.realtime import AuthenticationFailure, InvalidTokenError
from huddle.services.identity import JwtIdentityVerifier, bearer_token


def test_valid_token_yields_identity():
    token = create_access_token("user-1", {"scope": "chat"})

    identity = JwtIdentityVerifier().verify(token)

    assert identity.user_id == "user-1"
    assert identity.claims["scope"] == "chat"


def test_token_signed_with_other_secret_is_rejected():
    token = jwt.encode({"sub": "user-1"}, "not-the-secret", algorithm=settings.jwt_algorithm)

    with pytest.raises(InvalidTokenError):
        JwtIdentityVerifier().verify(token)


def test_token_without_subject_is_rejected():
    token = jwt.encode({"scope": "chat"}, settings.secret_key, algorithm=settings.jwt_algorithm)

    with pytest.raises(InvalidTokenError):
        JwtIdentityVerifier().verify(token)


def test_expired_token_is_rejected():
    token = jwt.encode(
        {"sub": "user-1", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(AuthenticationFailure):
        JwtIdentityVerifier().verify(token)


def test_garbage_token_is_rejected():
    with pytest.raises(InvalidTokenError):
        JwtIdentityVerifier().verify("definitely.not.a-jwt")


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc", "abc"),
        ("bearer   abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ],
)
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected
