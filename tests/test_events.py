"""Typed realtime events."""

from typing import get_args

import pytest

from portal.models.chat import Attachment, MessageType
from portal.models.events import (
    INBOUND_EVENTS,
    ChatUpdated,
    Inbound,
    JoinRoom,
    LeaveRoom,
    MessageReceived,
    Outbound,
    SendMessage,
    TypingStart,
    TypingStop,
    UnknownEventError,
    UserStoppedTyping,
    UserTyping,
    parse_inbound,
)

from .fakes import message_payload


def test_outbound_wire_format():
    attachment = Attachment(url="https://files.test/a.png", filename="a.png", size=12)

    assert (JoinRoom.name, JoinRoom(chat_id="c1").payload()) == ("chat:join", "c1")
    assert (LeaveRoom.name, LeaveRoom(chat_id="c1").payload()) == ("chat:leave", "c1")
    assert TypingStop(chat_id="c1").payload() == {"chatId": "c1"}
    assert SendMessage(chat_id="c1", content="a.png", type=MessageType.IMAGE, attachment=attachment).payload() == {
        "chatId": "c1",
        "content": "a.png",
        "type": "image",
        "attachment": {"url": "https://files.test/a.png", "filename": "a.png", "size": 12},
    }


def test_inbound_set_is_closed():
    assert set(INBOUND_EVENTS) == {"message:received", "user:typing", "user:stoppedTyping", "chat:updated"}
    with pytest.raises(UnknownEventError):
        parse_inbound("message:deleted", {})


def test_event_unions_cover_every_variant():
    assert set(get_args(Inbound)) == set(INBOUND_EVENTS.values())
    assert set(get_args(Outbound)) == {JoinRoom, LeaveRoom, SendMessage, TypingStart, TypingStop}


def test_parse_message_received_normalizes_backend_shapes():
    event = parse_inbound("message:received", {
        "_id": 42,
        "chat": {"_id": "c1"},
        "sender": "u2",
        "messageType": "file",
        "content": "report.pdf",
        "attachment": {"url": "https://files.test/r.pdf", "filename": "report.pdf", "size": 100},
    })

    assert isinstance(event, MessageReceived)
    assert event.message.id == "42"
    assert event.message.chat_id == "c1"
    assert event.message.sender.id == "u2"
    assert event.message.type == MessageType.FILE


def test_message_without_body_is_rejected():
    with pytest.raises(ValueError):
        parse_inbound("message:received", message_payload("m1", content="   "))


def test_typing_events_accept_objects_and_bare_ids():
    typing = parse_inbound("user:typing", {"chatId": "c1", "userId": "u2", "userName": "Ravi"})
    stopped = parse_inbound("user:stoppedTyping", "c1")
    updated = parse_inbound("chat:updated", None)

    assert isinstance(typing, UserTyping) and typing.user_name == "Ravi"
    assert isinstance(stopped, UserStoppedTyping) and stopped.chat_id == "c1"
    assert isinstance(updated, ChatUpdated) and updated.chat_id is None
