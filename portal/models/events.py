"""Realtime channel event types.

Outbound and inbound events form closed sets: every wire name the portal
emits or handles is declared here, and anything else is rejected at the
transport boundary.
"""

from typing import Any, ClassVar, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from .chat import Attachment, Message, MessageType


class UnknownEventError(ValueError):
    """Raised for inbound event names outside the declared set."""


class OutboundEvent(BaseModel):
    """Base for events the portal emits."""

    model_config = ConfigDict(frozen=True)

    name: ClassVar[str]

    def payload(self) -> Any:
        raise NotImplementedError


class JoinRoom(OutboundEvent):
    name: ClassVar[str] = "chat:join"
    chat_id: str

    def payload(self) -> Any:
        return self.chat_id


class LeaveRoom(OutboundEvent):
    name: ClassVar[str] = "chat:leave"
    chat_id: str

    def payload(self) -> Any:
        return self.chat_id


class SendMessage(OutboundEvent):
    name: ClassVar[str] = "message:send"
    chat_id: str
    content: str
    type: Optional[MessageType] = None
    attachment: Optional[Attachment] = None

    def payload(self) -> Any:
        data: Dict[str, Any] = {"chatId": self.chat_id, "content": self.content}
        if self.type is not None:
            data["type"] = self.type.value
        if self.attachment is not None:
            data["attachment"] = self.attachment.model_dump()
        return data


class TypingStart(OutboundEvent):
    name: ClassVar[str] = "typing:start"
    chat_id: str

    def payload(self) -> Any:
        return {"chatId": self.chat_id}


class TypingStop(OutboundEvent):
    name: ClassVar[str] = "typing:stop"
    chat_id: str

    def payload(self) -> Any:
        return {"chatId": self.chat_id}


class InboundEvent(BaseModel):
    """Base for events received from the channel."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: ClassVar[str]


class MessageReceived(InboundEvent):
    name: ClassVar[str] = "message:received"
    message: Message


class UserTyping(InboundEvent):
    name: ClassVar[str] = "user:typing"
    chat_id: Optional[str] = Field(default=None, alias="chatId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    user_name: Optional[str] = Field(default=None, alias="userName")


class UserStoppedTyping(InboundEvent):
    name: ClassVar[str] = "user:stoppedTyping"
    chat_id: Optional[str] = Field(default=None, alias="chatId")
    user_id: Optional[str] = Field(default=None, alias="userId")


class ChatUpdated(InboundEvent):
    name: ClassVar[str] = "chat:updated"
    chat_id: Optional[str] = Field(default=None, alias="chatId")


Outbound = Union[JoinRoom, LeaveRoom, SendMessage, TypingStart, TypingStop]
Inbound = Union[MessageReceived, UserTyping, UserStoppedTyping, ChatUpdated]

INBOUND_EVENTS: Dict[str, Type[InboundEvent]] = {
    cls.name: cls for cls in (MessageReceived, UserTyping, UserStoppedTyping, ChatUpdated)
}


def parse_inbound(name: str, data: Any) -> InboundEvent:
    """Build the typed inbound event for a wire name and payload."""

    event_cls = INBOUND_EVENTS.get(name)
    if event_cls is None:
        raise UnknownEventError(f"Unknown inbound event '{name}'")

    if event_cls is MessageReceived:
        return MessageReceived(message=Message.model_validate(data))

    if data is None:
        data = {}
    elif not isinstance(data, dict):
        # Bare chat ids are accepted for the typing and update events
        data = {"chatId": str(data)}
    return event_cls.model_validate(data)


__all__ = [
    "ChatUpdated",
    "INBOUND_EVENTS",
    "Inbound",
    "InboundEvent",
    "JoinRoom",
    "LeaveRoom",
    "MessageReceived",
    "Outbound",
    "OutboundEvent",
    "SendMessage",
    "TypingStart",
    "TypingStop",
    "UnknownEventError",
    "UserStoppedTyping",
    "UserTyping",
    "parse_inbound",
]
