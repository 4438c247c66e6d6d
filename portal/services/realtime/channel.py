"""Realtime channel manager - owns the single Socket.IO connection per session."""

import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Type, Union

import socketio

from ...logging_config import get_logger
from ...models.events import INBOUND_EVENTS, Inbound, InboundEvent, Outbound, UnknownEventError, parse_inbound
from ...models.session import Identity

logger = get_logger(__name__)

EventHandler = Callable[[Inbound], Union[None, Awaitable[None]]]
ClientFactory = Callable[[], Any]


class ChannelState(str, Enum):
    """Connection lifecycle."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def default_client_factory() -> socketio.AsyncClient:
    # The transport reconnects dropped sessions by itself; the manager never retries.
    return socketio.AsyncClient(reconnection=True, logger=False, engineio_logger=False)


class ChannelManager:
    """Opens, tears down and multiplexes the realtime connection.

    Every session change bumps a generation counter. Work for a generation
    runs under a lock, so the previous connection is fully disconnected
    before the next one is opened, and events arriving from a connection
    that is no longer current are dropped.
    """

    def __init__(
        self,
        url: str,
        eligible_roles: Iterable[str] = ("patient", "pharmacy", "doctor"),
        transports: Optional[List[str]] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.url = url
        self.eligible_roles = {str(role) for role in eligible_roles}
        self.transports = transports or ["websocket", "polling"]
        self._client_factory = client_factory or default_client_factory

        self._client: Optional[Any] = None
        self._client_generation: Optional[int] = None
        self._generation = 0
        self._session_key: Optional[Tuple[str, str]] = None
        self._state = ChannelState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._pending: List[asyncio.Task] = []
        self._handlers: Dict[Type[InboundEvent], List[EventHandler]] = {}

    @property
    def client(self) -> Optional[Any]:
        """The live connection handle, if any."""
        return self._client

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == ChannelState.CONNECTED and self._client is not None

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "connected": self.connected,
            "generation": self._generation,
        }

    # Session wiring

    def on_session_changed(self, identity: Optional[Identity], token: Optional[str]) -> None:
        """Session store listener; schedules teardown and (re)connect."""

        key = (identity.id, token) if identity is not None and token else None
        if key == self._session_key:
            return
        self._session_key = key

        self._generation += 1
        generation = self._generation

        task = asyncio.get_running_loop().create_task(self._apply(generation, identity, token))
        self._pending.append(task)
        task.add_done_callback(self._forget_task)

    def _forget_task(self, task: asyncio.Task) -> None:
        if task in self._pending:
            self._pending.remove(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Channel transition failed: {task.exception()}")

    async def settle(self) -> None:
        """Wait until every scheduled transition has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Tear the connection down for good (shutdown)."""

        self._generation += 1
        self._session_key = None
        await self.settle()
        async with self._lock:
            await self._teardown()

    async def _apply(self, generation: int, identity: Optional[Identity], token: Optional[str]) -> None:
        async with self._lock:
            await self._teardown()

            if generation != self._generation:
                return
            if identity is None or not token:
                return
            if identity.role.value not in self.eligible_roles:
                logger.info(f"No realtime channel for role {identity.role.value}")
                return

            await self._open(generation, identity, token)

    async def _open(self, generation: int, identity: Identity, token: str) -> None:
        logger.info(f"🔌 Opening realtime channel for {identity.role.value}")

        client = self._client_factory()
        client.on("connect", lambda: self._on_connect(generation))
        client.on("disconnect", lambda *args: self._on_disconnect(generation, *args))
        client.on("connect_error", lambda data=None: self._on_connect_error(generation, data))
        for name in INBOUND_EVENTS:
            client.on(name, self._make_inbound_handler(generation, name))

        self._client = client
        self._client_generation = generation
        self._state = ChannelState.CONNECTING

        try:
            await client.connect(self.url, auth={"token": token}, transports=self.transports)
        except Exception as e:
            logger.error(f"❌ Realtime connection error: {e}")
            if self._client is client:
                self._client = None
                self._client_generation = None
                self._state = ChannelState.DISCONNECTED
            return

        if self._client is client and getattr(client, "connected", False):
            self._state = ChannelState.CONNECTED

    async def _teardown(self) -> None:
        client = self._client
        if client is None:
            self._state = ChannelState.DISCONNECTED
            return

        # Detach first so nothing further is attributed to this connection
        self._client = None
        self._client_generation = None
        self._state = ChannelState.DISCONNECTED

        try:
            await client.disconnect()
            logger.info("🔌 Realtime channel closed")
        except Exception as e:
            logger.warning(f"Error while closing realtime channel: {e}")

    # Transport callbacks

    def _is_current(self, generation: int) -> bool:
        return (
            generation == self._generation
            and self._client is not None
            and self._client_generation == generation
        )

    def _on_connect(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._state = ChannelState.CONNECTED
        logger.info(f"✅ Realtime channel connected (sid={getattr(self._client, 'sid', None)})")

    def _on_disconnect(self, generation: int, *args: Any) -> None:
        if not self._is_current(generation):
            return
        self._state = ChannelState.DISCONNECTED
        logger.info("❌ Realtime channel disconnected")

    def _on_connect_error(self, generation: int, data: Any) -> None:
        if not self._is_current(generation):
            return
        self._state = ChannelState.DISCONNECTED
        logger.error(f"❌ Realtime connection error: {data}")

    def _make_inbound_handler(self, generation: int, name: str) -> Callable[..., Awaitable[None]]:
        async def _handler(data: Any = None, *args: Any) -> None:
            if not self._is_current(generation):
                return
            try:
                event = parse_inbound(name, data)
            except (UnknownEventError, ValueError) as e:
                logger.warning(f"Dropping malformed '{name}' event: {e}")
                return
            await self.dispatch(event)

        return _handler

    # Borrowing the channel

    def subscribe(self, event_type: Type[InboundEvent], handler: EventHandler) -> Callable[[], None]:
        """Listen for an inbound event type; returns an unsubscribe function."""

        handlers = self._handlers.setdefault(event_type, [])
        handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    async def dispatch(self, event: Inbound) -> None:
        """Deliver an inbound event to its subscribers."""

        for handler in list(self._handlers.get(type(event), [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Handler for '{event.name}' failed")

    async def emit(self, event: Outbound) -> bool:
        """Send an outbound event; returns False when there is no usable connection."""

        client = self._client
        if client is None or self._client_generation != self._generation:
            logger.warning(f"Cannot emit '{event.name}': not connected")
            return False

        try:
            await client.emit(event.name, event.payload())
            return True
        except Exception as e:
            logger.error(f"Failed to emit '{event.name}': {e}")
            return False
