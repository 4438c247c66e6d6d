"""Portal runtime - constructs and owns the long-lived services of one signed-in user."""

import asyncio
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from ..api_client import PortalAPIClient
from ..config import Settings, get_settings
from ..logging_config import get_logger
from ..models.chat import Counterpart
from ..models.session import Identity
from ..storage import ClientStorage
from .chat import AudioRecorder, ChatDirectory, ChatSessionController
from .notifications import NotificationCenter, ToastQueue
from .realtime import ChannelManager
from .session import SessionStore

logger = get_logger(__name__)

RecorderFactory = Callable[[], AudioRecorder]


class PortalRuntime:
    """Wires storage, session, REST client, channel, notifications and chat widgets together."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[ClientStorage] = None,
        api: Optional[PortalAPIClient] = None,
        channel: Optional[ChannelManager] = None,
        recorder_factory: Optional[RecorderFactory] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage or ClientStorage(self.settings.storage_path)
        self.api = api or PortalAPIClient(self.settings.api_base_url, timeout=self.settings.http_timeout)
        self.session = SessionStore(self.storage, self.api)
        self.api.token_provider = lambda: self.session.token

        self.channel = channel or ChannelManager(
            self.settings.socket_url,
            eligible_roles=self.settings.realtime_roles,
            transports=self.settings.socket_transports,
        )
        self.notifications = NotificationCenter(self.storage, ToastQueue(self.settings.toast_queue_size))
        self.directory = ChatDirectory(self.api, self.channel, self.notifications)
        self.recorder_factory = recorder_factory

        self.widgets: Dict[str, ChatSessionController] = {}
        self._session_key: Optional[Tuple[str, str]] = None
        self._unsubscribers: List[Callable[[], None]] = []
        self._running = False

    async def start(self) -> None:
        """Restore the persisted session and bring up dependents."""

        if self._running:
            logger.warning("Portal runtime already running")
            return

        logger.info("Starting portal runtime...")
        self._unsubscribers = [
            self.session.subscribe(self.channel.on_session_changed),
            self.session.subscribe(self._on_session_changed),
        ]
        self.directory.start()

        self.notifications.load()
        self.session.restore()

        self._running = True
        logger.info("Portal runtime started")

    async def stop(self) -> None:
        """Close widgets, tear the channel down and release the HTTP client."""

        if not self._running:
            return

        logger.info("Stopping portal runtime...")
        try:
            await self.close_all_widgets()
            for unsubscribe in self._unsubscribers:
                unsubscribe()
            self._unsubscribers = []
            self.directory.stop()
            await self.channel.close()
        finally:
            await self.api.aclose()
            self._running = False
        logger.info("Portal runtime stopped")

    def is_running(self) -> bool:
        return self._running

    def _on_session_changed(self, identity: Optional[Identity], token: Optional[str]) -> None:
        key = (identity.id, token) if identity is not None and token else None
        if key == self._session_key:
            return
        self._session_key = key

        # Widgets belong to the previous identity
        if self.widgets:
            asyncio.get_running_loop().create_task(self.close_all_widgets())

    # Chat widgets

    async def open_widget(
        self,
        counterpart_id: Optional[str] = None,
        chat_id: Optional[str] = None,
        counterpart: Optional[Counterpart] = None,
    ) -> Tuple[str, ChatSessionController]:
        """Create a chat widget and run its initialization; failures leave it registered but not ready."""

        controller = ChatSessionController(
            self.api,
            self.channel,
            self.notifications,
            counterpart_id=counterpart_id,
            chat_id=chat_id,
            counterpart=counterpart,
            settings=self.settings,
            recorder=self.recorder_factory() if self.recorder_factory else None,
        )
        widget_id = uuid.uuid4().hex
        self.widgets[widget_id] = controller
        await controller.open()
        return widget_id, controller

    def get_widget(self, widget_id: str) -> Optional[ChatSessionController]:
        return self.widgets.get(widget_id)

    async def close_widget(self, widget_id: str) -> bool:
        controller = self.widgets.pop(widget_id, None)
        if controller is None:
            return False
        await controller.close()
        return True

    async def close_all_widgets(self) -> None:
        for widget_id in list(self.widgets):
            await self.close_widget(widget_id)


_runtime: Optional[PortalRuntime] = None


def get_runtime() -> PortalRuntime:
    """Get the process-wide portal runtime."""
    global _runtime
    if _runtime is None:
        _runtime = PortalRuntime()
    return _runtime


def set_runtime(runtime: Optional[PortalRuntime]) -> None:
    """Install a prebuilt runtime (tests, embedding)."""
    global _runtime
    _runtime = runtime
