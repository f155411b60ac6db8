"""Exceptions raised by the realtime layer and its collaborators."""

from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime gateway failures."""


class AuthenticationFailure(RealtimeError):
    """The handshake carried no usable credential."""


class InvalidTokenError(AuthenticationFailure):
    """The identity verifier rejected the presented token."""


class PersistenceError(RealtimeError):
    """The message store could not complete a write or lookup."""


class InvalidConversationId(RealtimeError, ValueError):
    """A conversation identifier is neither a direct pair nor a group id."""
