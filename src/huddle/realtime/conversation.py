"""Conversation identifiers.

Direct chats are keyed by the sorted pair of participant ids joined with
``#`` so both directions map to the same key. Anything without a separator
is a group identifier whose members are resolved elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass

from huddle.realtime.errors import InvalidConversationId

SEPARATOR = "#"


@dataclass(frozen=True)
class DirectConversation:
    """One-to-one conversation between two distinct users."""

    participant_a: str
    participant_b: str

    @property
    def conversation_id(self) -> str:
        return direct_conversation_id(self.participant_a, self.participant_b)

    @property
    def participants(self) -> tuple[str, str]:
        return (self.participant_a, self.participant_b)

    def other(self, user_id: str) -> str | None:
        """Return the participant that is not ``user_id``, or None if not a member."""
        if user_id == self.participant_a:
            return self.participant_b
        if user_id == self.participant_b:
            return self.participant_a
        return None


@dataclass(frozen=True)
class GroupConversation:
    """Multi-participant conversation; membership lives outside the id."""

    group_id: str

    @property
    def conversation_id(self) -> str:
        return self.group_id


Conversation = DirectConversation | GroupConversation


def direct_conversation_id(user_a: str, user_b: str) -> str:
    """Return the canonical conversation id for a pair of users."""
    first, second = sorted((user_a, user_b))
    return f"{first}{SEPARATOR}{second}"


def parse_conversation_id(conversation_id: str) -> Conversation:
    """Classify a conversation identifier.

    Raises:
        InvalidConversationId: For empty ids, empty halves, more than one
            separator, a user paired with themselves, or a pair that is not
            in sorted order.
    """
    if not conversation_id:
        raise InvalidConversationId("Conversation id must not be empty")

    if SEPARATOR not in conversation_id:
        return GroupConversation(conversation_id)

    parts = conversation_id.split(SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise InvalidConversationId(f"Malformed conversation id: {conversation_id!r}")
    if parts[0] == parts[1]:
        raise InvalidConversationId("A direct conversation needs two distinct users")
    if parts[0] > parts[1]:
        # Direct ids are storage keys; only the sorted form addresses the chat.
        raise InvalidConversationId(
            f"Direct conversation id must be {direct_conversation_id(parts[0], parts[1])!r}"
        )
    return DirectConversation(parts[0], parts[1])
