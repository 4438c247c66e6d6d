"""Conversation list kept fresh by realtime activity."""

from typing import Callable, List, Optional

from ...api_client import PortalAPIClient, PortalAPIError
from ...logging_config import get_logger
from ...models.chat import ChatSummary
from ...models.events import ChatUpdated, InboundEvent, MessageReceived
from ..notifications import NotificationCenter
from ..realtime import ChannelManager

logger = get_logger(__name__)


class ChatDirectory:
    """The viewer's conversations, refetched whenever a message or chat update arrives."""

    def __init__(self, api: PortalAPIClient, channel: ChannelManager, notifications: Optional[NotificationCenter] = None):
        self.api = api
        self.channel = channel
        self.notifications = notifications
        self._chats: List[ChatSummary] = []
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def chats(self) -> List[ChatSummary]:
        return list(self._chats)

    def start(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self.channel.subscribe(MessageReceived, self._on_activity),
            self.channel.subscribe(ChatUpdated, self._on_activity),
        ]

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._chats = []

    async def refresh(self) -> List[ChatSummary]:
        try:
            self._chats = await self.api.list_chats()
        except PortalAPIError as e:
            logger.error(f"Error fetching chats: {e.message}")
            if self.notifications is not None:
                self.notifications.error("Failed to load chats", e.message)
        return self.chats

    def search(self, query: str) -> List[ChatSummary]:
        """Case-insensitive match on the counterpart's name."""

        needle = query.strip().lower()
        if not needle:
            return self.chats
        return [chat for chat in self._chats if needle in chat.counterpart.name.lower()]

    async def _on_activity(self, event: InboundEvent) -> None:
        await self.refresh()
