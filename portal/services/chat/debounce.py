"""Per-conversation debounce timers."""

import asyncio
import inspect
from typing import Awaitable, Callable, Dict, Set, Union

from ...logging_config import get_logger

logger = get_logger(__name__)

IdleCallback = Callable[[str], Union[None, Awaitable[None]]]


class KeyedDebouncer:
    """At most one pending timer per key; touching a key restarts its timer."""

    def __init__(self, delay: float, on_idle: IdleCallback):
        self.delay = delay
        self.on_idle = on_idle
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._running: Set[asyncio.Task] = set()

    def touch(self, key: str) -> None:
        """(Re)start the idle timer for key."""

        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(self.delay, self._fire, key)

    def cancel(self, key: str) -> bool:
        """Drop the pending timer for key; returns whether one was pending."""

        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._timers):
            self.cancel(key)

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    def _fire(self, key: str) -> None:
        self._timers.pop(key, None)
        try:
            result = self.on_idle(key)
        except Exception:
            logger.exception(f"Idle callback failed for {key}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def drain(self) -> None:
        """Wait for idle callbacks that are already running."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
