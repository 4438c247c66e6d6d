"""Chat and conversation models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MessageType(str, Enum):
    """Kinds of chat message."""
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    AUDIO = "audio"
    SYSTEM = "system"


class Attachment(BaseModel):
    """Stored attachment descriptor returned by the upload endpoint."""
    url: str
    filename: str
    size: int = 0


class Sender(BaseModel):
    """Message author reference."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class Message(BaseModel):
    """A single chat message; never mutated once appended."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="_id")
    chat_id: str = Field(alias="chatId")
    sender: Sender
    type: MessageType = MessageType.TEXT
    content: str = ""
    attachment: Optional[Attachment] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "chatId" not in data and "chat_id" not in data and "chat" in data:
            chat = data.pop("chat")
            data["chatId"] = chat.get("_id") if isinstance(chat, dict) else chat
        sender = data.get("sender")
        if sender is not None and not isinstance(sender, dict) and not isinstance(sender, Sender):
            data["sender"] = {"_id": sender}
        if "messageType" in data and "type" not in data:
            data["type"] = data.pop("messageType")
        return data

    @field_validator("id", "chat_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return str(value) if value is not None else value

    @model_validator(mode="after")
    def _has_body(self):
        if not self.content.strip() and self.attachment is None:
            raise ValueError("message needs content or an attachment")
        return self


class Counterpart(BaseModel):
    """Display data for the other participant of a conversation."""
    name: str = ""
    image: Optional[str] = None


class Conversation(BaseModel):
    """A two-party thread; identity survives history clearing."""
    chat_id: str
    participant_ids: List[str] = Field(default_factory=list)
    counterpart: Counterpart = Field(default_factory=Counterpart)


class ChatSummary(BaseModel):
    """One row of the conversation list."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    counterpart: Counterpart = Field(default_factory=Counterpart)
    last_message: Optional[str] = Field(default=None, alias="lastMessage")
    last_message_at: Optional[datetime] = Field(default=None, alias="lastMessageAt")
    unread_count: int = Field(default=0, alias="unreadCount")

    @model_validator(mode="before")
    @classmethod
    def _pick_counterpart(cls, data):
        if not isinstance(data, dict) or "counterpart" in data:
            return data
        data = dict(data)
        other = data.get("patient") or data.get("pharmacy") or data.get("doctor") or {}
        if isinstance(other, dict):
            data["counterpart"] = {
                "name": other.get("name", ""),
                "image": other.get("profileImage") or other.get("image"),
            }
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class ChatHistoryResponse(BaseModel):
    """Response containing chat history."""
    chat_id: Optional[str] = None
    conversation: Optional[Conversation] = None
    state: str
    messages: List[Message]
    counterpart_typing: bool = False
    connected: bool = False


class ChatHistoryClearResponse(BaseModel):
    """Response for clearing chat history."""
    ok: bool = True
    message: str = "Chat history cleared"
    chat_id: Optional[str] = None
