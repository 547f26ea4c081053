"""Event names, payloads and the per-component listener registry.

Each component owns its own EventEmitter; there is no global dispatcher.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class ClientEvent(str, Enum):
    """Events emitted by the stream client."""

    POSITION = "position"
    STATIC_DATA = "static_data"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    ERROR = "error"
    WARNING = "warning"


class SchedulerEvent(str, Enum):
    """Events emitted by the regional scheduler."""

    REGION_CHANGE = "region_change"
    CYCLE_COMPLETE = "cycle_complete"
    STOPPED = "stopped"


EventName = Union[str, ClientEvent, SchedulerEvent]


@dataclass(frozen=True)
class DisconnectInfo:
    """Payload of the disconnected event."""

    code: int
    reason: str = ""


@dataclass(frozen=True)
class ReconnectInfo:
    """Payload of the reconnecting event. Delay is in milliseconds."""

    attempt: int
    delay: int


@dataclass(frozen=True)
class DecodeWarning:
    """Payload of the warning event for a frame that could not be used."""

    message_type: str
    reason: str
    raw: Any = None


def _event_key(event: EventName) -> str:
    if isinstance(event, Enum):
        return str(event.value)
    return str(event)


class EventEmitter:
    """Minimal publish/subscribe registry.

    Synchronous listeners run inline in registration order. Coroutine
    listeners are scheduled as tasks on the running loop. A failing
    listener is logged and never interrupts the emitter or the other
    listeners.
    """

    def __init__(self, owner: str = "emitter"):
        self.owner = owner
        self._listeners: dict[str, list[Listener]] = {}
        self._tasks: set[asyncio.Task] = set()

    def on(self, event: EventName, listener: Listener) -> Listener:
        """Register a listener; returns it so it can be used as a decorator."""
        self._listeners.setdefault(_event_key(event), []).append(listener)
        return listener

    def off(self, event: EventName, listener: Listener) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        listeners = self._listeners.get(_event_key(event), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listener_count(self, event: EventName) -> int:
        return len(self._listeners.get(_event_key(event), []))

    def emit(self, event: EventName, *args: Any) -> int:
        """Deliver an event to every listener.

        Returns:
            Number of listeners notified
        """
        key = _event_key(event)
        listeners = list(self._listeners.get(key, []))

        for listener in listeners:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self._schedule(key, result)
            except Exception:
                logger.exception(f"[{self.owner}] Listener for '{key}' failed")

        return len(listeners)

    def _schedule(self, key: str, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(key, t))

    def _on_task_done(self, key: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc: Optional[BaseException] = task.exception()
        if exc is not None:
            logger.error(
                f"[{self.owner}] Async listener for '{key}' failed: {exc!r}",
                exc_info=exc,
            )

    async def drain(self) -> None:
        """Wait for coroutine listeners that are still running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
