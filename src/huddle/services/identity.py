"""Bearer token verification for realtime handshakes."""

from __future__ import annotations

from jose import JWTError

from huddle.core.security import decode_access_token
from huddle.realtime.contracts import Identity
from huddle.realtime.errors import InvalidTokenError


class JwtIdentityVerifier:
    """Validates access tokens issued by :func:`huddle.core.security.create_access_token`."""

    def verify(self, token: str) -> Identity:
        try:
            payload = decode_access_token(token)
        except JWTError as err:
            raise InvalidTokenError("Could not validate credentials") from err

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            raise InvalidTokenError("Token has no subject")
        return Identity(user_id=subject, claims=payload)


def bearer_token(authorization: str | None) -> str | None:
    """Extract the credential from an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return None
    return credential.strip()
