"""Tests for the chat_service query helpers."""

from __future__ import annotations

from datetime import timedelta

from huddle.db.time import utcnow
from huddle.models import Message
from huddle.realtime import direct_conversation_id
from huddle.schemas.message import MessageType, SendMessageRequest
from huddle.services import chat_service


def _send(db, sender, other, content="hello", **extra):
    conversation_id = direct_conversation_id(sender.id, other.id)
    return chat_service.create_message(
        db,
        sender.id,
        SendMessageRequest(conversation_id=conversation_id, content=content, **extra),
    )


def test_create_message_persists_and_loads_sender(db_session, alice, bob):
    message = _send(db_session, alice, bob)

    assert message.id
    assert message.sender.nickname == "Alice"
    assert message.message_type == "text"
    assert message.is_read is False

    read = chat_service.to_message_read(message)
    assert read.sender.username == "alice"
    assert read.message_type is MessageType.TEXT


def test_reply_summary_includes_original_sender(db_session, alice, bob):
    original = _send(db_session, alice, bob, content="first")
    reply = _send(db_session, bob, alice, content="second", reply_to_id=original.id)

    read = chat_service.to_message_read(chat_service.get_message(db_session, reply.id))

    assert read.reply_to is not None
    assert read.reply_to.id == original.id
    assert read.reply_to.content == "first"
    assert read.reply_to.sender_nickname == "Alice"


def test_get_messages_returns_latest_page_oldest_first(db_session, alice, bob):
    base = utcnow()
    conversation_id = direct_conversation_id(alice.id, bob.id)
    for index in range(5):
        db_session.add(
            Message(
                conversation_id=conversation_id,
                sender_id=alice.id,
                content=f"m{index}",
                created_at=base + timedelta(seconds=index),
            )
        )
    db_session.add(
        Message(
            conversation_id=conversation_id,
            sender_id=alice.id,
            content="gone",
            is_deleted=True,
            created_at=base + timedelta(seconds=10),
        )
    )
    db_session.flush()

    page = chat_service.get_messages(db_session, conversation_id, limit=3)
    assert [message.content for message in page] == ["m2", "m3", "m4"]

    earlier = chat_service.get_messages(
        db_session, conversation_id, limit=3, before=page[0].created_at
    )
    assert [message.content for message in earlier] == ["m0", "m1"]


def test_find_readable_message_skips_own_messages(db_session, alice, bob):
    message = _send(db_session, alice, bob)

    assert chat_service.find_readable_message(db_session, message.id, alice.id) is None
    assert chat_service.find_readable_message(db_session, message.id, bob.id).id == message.id
    assert chat_service.find_readable_message(db_session, "missing", bob.id) is None


def test_mark_message_read_sets_flag(db_session, alice, bob):
    message = _send(db_session, alice, bob)

    chat_service.mark_message_read(db_session, message.id)
    chat_service.mark_message_read(db_session, message.id)

    db_session.expire_all()
    assert chat_service.get_message(db_session, message.id).is_read is True


def test_get_conversations_summarises_direct_chats(db_session, alice, bob, carol):
    base = utcnow()
    rows = [
        (bob, alice, "hi alice", 0),
        (bob, alice, "are you there?", 1),
        (carol, alice, "from carol", 2),
        (bob, carol, "not for alice", 3),
    ]
    for sender, other, content, offset in rows:
        db_session.add(
            Message(
                conversation_id=direct_conversation_id(sender.id, other.id),
                sender_id=sender.id,
                content=content,
                created_at=base + timedelta(seconds=offset),
            )
        )
    db_session.flush()

    summaries = chat_service.get_conversations(db_session, alice.id)

    assert [summary.conversation_id for summary in summaries] == [
        direct_conversation_id(alice.id, carol.id),
        direct_conversation_id(alice.id, bob.id),
    ]
    with_bob = summaries[1]
    assert with_bob.conversation_type == "private"
    assert [participant.username for participant in with_bob.participants] == ["bob"]
    assert with_bob.last_message.content == "are you there?"
    assert with_bob.last_message.sender_nickname == "Bob"
    assert with_bob.unread_count == 2


def test_get_conversations_ignores_group_ids(db_session, alice):
    chat_service.create_message(
        db_session,
        alice.id,
        SendMessageRequest(conversation_id=f"group-{alice.id}", content="hey all"),
    )

    assert chat_service.get_conversations(db_session, alice.id) == []
