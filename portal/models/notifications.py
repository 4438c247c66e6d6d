"""Notification models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Severity of a user-facing event; also selects the toast style."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


def _new_id() -> str:
    return f"notification_{uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDraft(BaseModel):
    """What a producer hands to the notification center."""
    title: str
    message: str = ""
    type: NotificationType = NotificationType.INFO


class Notification(NotificationDraft):
    """A persisted notification entry."""
    id: str = Field(default_factory=_new_id)
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class Toast(BaseModel):
    """A transient, never-persisted alert."""
    title: str
    description: Optional[str] = None
    type: NotificationType = NotificationType.INFO
