"""Notification center - persisted log of user-facing events plus transient toasts."""

from collections import deque
from typing import Any, Deque, Dict, List, Optional, Union

from ...config import NOTIFICATIONS_STORAGE_KEY
from ...logging_config import get_logger
from ...models.notifications import Notification, NotificationDraft, NotificationType, Toast
from ...storage import ClientStorage

logger = get_logger(__name__)

_LOG_LEVELS = {
    NotificationType.INFO: "info",
    NotificationType.SUCCESS: "info",
    NotificationType.WARNING: "warning",
    NotificationType.ERROR: "error",
}


class ToastQueue:
    """Bounded queue of transient alerts waiting to be rendered."""

    def __init__(self, maxlen: int = 50):
        self._items: Deque[Toast] = deque(maxlen=maxlen)

    def push(self, toast: Toast) -> None:
        self._items.append(toast)
        log = getattr(logger, _LOG_LEVELS[toast.type])
        log(f"🔔 {toast.title}" + (f": {toast.description}" if toast.description else ""))

    def drain(self) -> List[Toast]:
        """Return and forget every queued toast, oldest first."""
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


class NotificationCenter:
    """Most-recent-first list of notifications, written through to storage."""

    def __init__(self, storage: ClientStorage, toasts: Optional[ToastQueue] = None):
        self.storage = storage
        self.toasts = toasts or ToastQueue()
        self._items: List[Notification] = []

    @property
    def notifications(self) -> List[Notification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self._items if not item.read)

    def load(self) -> None:
        """Rehydrate persisted entries without raising toasts."""

        try:
            entries = self.storage.get_json(NOTIFICATIONS_STORAGE_KEY)
        except ValueError as e:
            logger.error(f"Error parsing stored notifications: {e}")
            self._items = []
            return

        items = []
        for entry in entries if isinstance(entries, list) else []:
            try:
                items.append(Notification.model_validate(entry))
            except ValueError as e:
                logger.warning(f"Skipping malformed stored notification: {e}")
        self._items = items
        logger.debug(f"Loaded {len(items)} notifications")

    def _persist(self) -> None:
        self.storage.set_json(NOTIFICATIONS_STORAGE_KEY, [item.model_dump(mode="json") for item in self._items])

    def add(self, entry: Union[NotificationDraft, Dict[str, Any]], show_toast: bool = True) -> Notification:
        """Record a new unread notification and optionally surface it as a toast."""

        draft = entry if isinstance(entry, NotificationDraft) else NotificationDraft.model_validate(entry)
        notification = Notification(title=draft.title, message=draft.message, type=draft.type)

        self._items.insert(0, notification)
        self._persist()

        if show_toast:
            self.toasts.push(Toast(title=notification.title, description=notification.message or None, type=notification.type))
        return notification

    def notify(self, title: str, message: str = "", type: NotificationType = NotificationType.INFO) -> Notification:
        return self.add(NotificationDraft(title=title, message=message, type=type))

    def error(self, title: str, message: str = "") -> Notification:
        return self.notify(title, message, NotificationType.ERROR)

    def toast(self, title: str, description: Optional[str] = None, type: NotificationType = NotificationType.INFO) -> None:
        """Show a transient alert without recording a notification."""
        self.toasts.push(Toast(title=title, description=description, type=type))

    def mark_read(self, notification_id: str) -> bool:
        """Flip one entry to read; returns False for unknown ids."""

        for index, item in enumerate(self._items):
            if item.id == notification_id:
                if not item.read:
                    self._items[index] = item.model_copy(update={"read": True})
                    self._persist()
                return True
        return False

    def mark_all_read(self) -> None:
        if all(item.read for item in self._items):
            return
        self._items = [item if item.read else item.model_copy(update={"read": True}) for item in self._items]
        self._persist()

    def remove(self, notification_id: str) -> bool:
        remaining = [item for item in self._items if item.id != notification_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._persist()
        return True

    def clear(self) -> None:
        self._items = []
        self._persist()
