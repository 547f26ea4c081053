"""AISStream websocket client.

Owns the single upstream connection:
- Authentication/subscription frame sent as soon as the socket opens
- Frame decoding into PositionUpdate / StaticData events
- Reconnection with bounded exponential backoff
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import websockets

from aisfeed.ais.decoder import (
    FrameDecodeError,
    FrameKind,
    classify_frame,
    decode_position,
    decode_static_data,
    parse_frame,
    upstream_error,
)
from aisfeed.ais.events import (
    ClientEvent,
    DecodeWarning,
    DisconnectInfo,
    EventEmitter,
    Listener,
    ReconnectInfo,
)
from aisfeed.ais.models import SubscriptionFilter

logger = logging.getLogger(__name__)

DEFAULT_STREAM_URL = "wss://stream.aisstream.io/v0/stream"

# Upstream drops connections that have not authenticated within 3 seconds
AUTH_BUDGET_SECONDS = 3.0

DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_BASE_DELAY_MS = 1000
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0

NORMAL_CLOSURE = 1000
GOING_AWAY = 1001
ABNORMAL_CLOSURE = 1006
POLICY_VIOLATION = 1008

Connector = Callable[..., Awaitable[Any]]


class AISStreamError(Exception):
    """Exception raised for upstream stream failures."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)


class ConnectionState(str, Enum):
    """Lifecycle states of the stream client."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_AUTH_ACK = "awaiting_auth_ack"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionStatistics:
    """Snapshot of the client's connection counters."""

    is_connected: bool
    messages_received: int
    messages_processed: int
    messages_ignored: int
    errors: int
    last_message_at: Optional[datetime]
    reconnect_attempts: int
    state: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_connected": self.is_connected,
            "messages_received": self.messages_received,
            "messages_processed": self.messages_processed,
            "messages_ignored": self.messages_ignored,
            "errors": self.errors,
            "last_message_at": (
                self.last_message_at.isoformat() if self.last_message_at else None
            ),
            "reconnect_attempts": self.reconnect_attempts,
            "state": self.state,
        }


def compute_backoff_delay_ms(
    attempt: int, base_delay_ms: int = DEFAULT_RECONNECT_BASE_DELAY_MS
) -> int:
    """Delay before reconnection attempt `attempt` (1-based): base * 2^(attempt-1)."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return base_delay_ms * 2 ** (attempt - 1)


async def websocket_connector(url: str, **kwargs: Any) -> Any:
    """Open a websocket connection with the websockets library."""
    return await websockets.connect(url, **kwargs)


class AISStreamClient:
    """Manages the websocket connection to the AISStream feed.

    Emits:
        position(PositionUpdate), static_data(StaticData), connected(),
        disconnected(DisconnectInfo), reconnecting(ReconnectInfo),
        error(AISStreamError), warning(DecodeWarning)

    Transport and decode failures are handled internally and never
    raised to the caller. Only exhausted retries surface, as an error
    event.
    """

    def __init__(
        self,
        api_key: str,
        url: str = DEFAULT_STREAM_URL,
        *,
        subscription: Optional[SubscriptionFilter] = None,
        connector: Optional[Connector] = None,
        max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS,
        reconnect_base_delay_ms: int = DEFAULT_RECONNECT_BASE_DELAY_MS,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
    ):
        """Initialize the client.

        Args:
            api_key: AISStream API key
            url: Websocket endpoint
            subscription: Initial subscription (whole globe if omitted)
            connector: Coroutine function opening a connection; defaults
                to websockets.connect
            max_reconnect_attempts: Attempts before giving up
            reconnect_base_delay_ms: Delay before the first attempt
            connect_timeout: Seconds allowed for the socket to open
        """
        if not api_key:
            raise ValueError("An AISStream API key is required")
        if max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")

        self.api_key = api_key
        self.url = url
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_base_delay_ms = reconnect_base_delay_ms
        self.connect_timeout = connect_timeout
        self._connector: Connector = connector or websocket_connector

        self.events = EventEmitter("AISStreamClient")

        self._subscription = subscription or SubscriptionFilter()
        self._state = ConnectionState.IDLE
        self._ws: Optional[Any] = None
        # Bumped by every open/disconnect; stale readers and connects compare against it
        self._generation = 0
        self._stopped = True
        self._reader_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_attempts = 0

        # Statistics
        self._messages_received = 0
        self._messages_processed = 0
        self._messages_ignored = 0
        self._errors = 0
        self._last_message_at: Optional[datetime] = None

    # ==================== Listeners ====================

    def on(self, event: Union[ClientEvent, str], listener: Listener) -> Listener:
        """Register a listener for a client event."""
        return self.events.on(event, listener)

    def off(self, event: Union[ClientEvent, str], listener: Listener) -> bool:
        """Remove a client event listener."""
        return self.events.off(event, listener)

    # ==================== Properties ====================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def subscription(self) -> SubscriptionFilter:
        return self._subscription

    @property
    def is_connected(self) -> bool:
        """Check if the stream is delivering data."""
        return self._state is ConnectionState.STREAMING

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def has_pending_reconnect(self) -> bool:
        """Check if a reconnection timer is armed."""
        return self._reconnect_handle is not None

    # ==================== Public operations ====================

    async def connect(self, subscription: Optional[SubscriptionFilter] = None) -> None:
        """Connect to the feed.

        Also the manual recovery path after the client has failed: any
        pending reconnection is cancelled and the attempt counter resets.

        Args:
            subscription: New subscription filter (keeps the current one if omitted)
        """
        if subscription is not None:
            self._subscription = subscription

        self._cancel_reconnect()
        self._reconnect_attempts = 0
        self._stopped = False

        logger.info(f"Connecting to AISStream at {self.url}")
        await self._open(reason="Reconnecting on request")

    async def update_subscription(self, subscription: SubscriptionFilter) -> None:
        """Replace the subscription filter.

        The upstream only accepts a filter when the connection opens, so
        an active client reconnects with the new filter. The attempt
        counter is kept; this is not a failure. An idle or failed client
        only stores the filter for its next connect.
        """
        self._subscription = subscription
        self._cancel_reconnect()

        if self._stopped or self._state in (ConnectionState.IDLE, ConnectionState.FAILED):
            logger.info(
                f"Subscription updated ({len(subscription.bounding_boxes)} bounding box(es)); "
                f"applies on next connect"
            )
            return

        logger.info(
            f"Subscription updated ({len(subscription.bounding_boxes)} bounding box(es)); "
            f"reconnecting"
        )
        await self._open(reason="Subscription update")

    async def disconnect(self) -> None:
        """Deliberately close the connection. Safe to call from any state."""
        self._stopped = True
        self._generation += 1
        self._cancel_reconnect()

        closed = await self._close_transport()
        self._set_state(ConnectionState.IDLE)

        if closed:
            logger.info("Disconnected from AISStream")
            self.events.emit(
                ClientEvent.DISCONNECTED,
                DisconnectInfo(code=NORMAL_CLOSURE, reason="Client disconnect"),
            )

    def get_statistics(self) -> ConnectionStatistics:
        """Get a snapshot of the connection statistics."""
        return ConnectionStatistics(
            is_connected=self.is_connected,
            messages_received=self._messages_received,
            messages_processed=self._messages_processed,
            messages_ignored=self._messages_ignored,
            errors=self._errors,
            last_message_at=self._last_message_at,
            reconnect_attempts=self._reconnect_attempts,
            state=self._state.value,
        )

    # ==================== Connection management ====================

    async def _open(self, reason: str = "Reconnecting") -> None:
        """Open a new connection with the current subscription."""
        self._generation += 1
        generation = self._generation

        if await self._close_transport():
            self.events.emit(
                ClientEvent.DISCONNECTED,
                DisconnectInfo(code=NORMAL_CLOSURE, reason=reason),
            )
        if generation != self._generation:
            return

        self._set_state(ConnectionState.CONNECTING)
        subscription = self._subscription

        try:
            ws = await asyncio.wait_for(
                self._connector(
                    self.url,
                    ping_interval=20,
                    ping_timeout=10,
                    close_timeout=5,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation == self._generation:
                self._handle_connection_lost(
                    ABNORMAL_CLOSURE, f"Connection failed: {e!r}"
                )
            return

        if generation != self._generation:
            # Superseded while connecting
            await self._safe_close(ws)
            return

        opened_at = time.monotonic()
        self._ws = ws
        self._set_state(ConnectionState.AWAITING_AUTH_ACK)

        try:
            await self._send_authentication(ws, subscription, opened_at)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation == self._generation:
                self._ws = None
                await self._safe_close(ws)
                self._handle_connection_lost(
                    ABNORMAL_CLOSURE, f"Failed to send authentication: {e!r}"
                )
            return

        if generation != self._generation:
            return

        self._reader_task = asyncio.create_task(self._read_loop(ws, generation))

    async def _send_authentication(
        self, ws: Any, subscription: SubscriptionFilter, opened_at: float
    ) -> None:
        """Send the authentication/subscription frame right after open."""
        await ws.send(json.dumps(subscription.to_auth_message(self.api_key)))

        elapsed = time.monotonic() - opened_at
        if elapsed > AUTH_BUDGET_SECONDS:
            logger.warning(
                f"Authentication sent late: {elapsed * 1000:.0f}ms "
                f"(limit {AUTH_BUDGET_SECONDS * 1000:.0f}ms)"
            )
        logger.info(
            f"Authentication sent with {len(subscription.bounding_boxes)} bounding box(es) "
            f"({elapsed * 1000:.0f}ms after open)"
        )

    async def _read_loop(self, ws: Any, generation: int) -> None:
        """Process inbound frames in arrival order until the socket closes."""
        rejection: Optional[str] = None
        error: Optional[BaseException] = None

        try:
            async for raw in ws:
                if generation != self._generation:
                    return
                rejection = self._handle_frame(raw)
                if rejection is not None:
                    await self._safe_close(ws)
                    break
        except asyncio.CancelledError:
            raise
        except websockets.ConnectionClosed as e:
            error = e
        except Exception as e:
            logger.exception("Unexpected error while reading from AISStream")
            error = e

        if generation != self._generation or self._stopped:
            return

        if self._ws is ws:
            self._ws = None
        if self._reader_task is asyncio.current_task():
            self._reader_task = None

        if rejection is not None:
            code, reason = POLICY_VIOLATION, rejection
        else:
            code = getattr(ws, "close_code", None) or ABNORMAL_CLOSURE
            reason = getattr(ws, "close_reason", None) or (str(error) if error else "")

        self._handle_connection_lost(code, reason)

    def _handle_connection_lost(self, code: int, reason: str) -> None:
        """Record a transport failure and schedule recovery."""
        if code not in (NORMAL_CLOSURE, GOING_AWAY):
            self._errors += 1

        self._set_state(ConnectionState.DISCONNECTED)
        logger.warning(f"AISStream connection lost (code={code}): {reason}")
        self.events.emit(
            ClientEvent.DISCONNECTED, DisconnectInfo(code=code, reason=reason)
        )

        if self._stopped:
            return

        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Arm the reconnection timer, or give up after the last attempt."""
        if self._reconnect_attempts >= self.max_reconnect_attempts:
            self._set_state(ConnectionState.FAILED)
            error = AISStreamError(
                f"Max reconnection attempts ({self.max_reconnect_attempts}) reached",
                {"max_attempts": self.max_reconnect_attempts, "url": self.url},
            )
            logger.error(f"{error}; manual reconnect required")
            self.events.emit(ClientEvent.ERROR, error)
            return

        self._reconnect_attempts += 1
        attempt = self._reconnect_attempts
        delay_ms = compute_backoff_delay_ms(attempt, self.reconnect_base_delay_ms)

        self._set_state(ConnectionState.RECONNECTING)
        logger.info(f"Scheduling reconnection attempt {attempt} in {delay_ms}ms")
        self.events.emit(
            ClientEvent.RECONNECTING, ReconnectInfo(attempt=attempt, delay=delay_ms)
        )

        self._cancel_reconnect_timer()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(
            delay_ms / 1000, self._on_reconnect_timer
        )

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._stopped:
            return
        self._connect_task = asyncio.create_task(self._open())

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _cancel_reconnect(self) -> None:
        """Cancel the reconnection timer and any reconnection in flight."""
        self._cancel_reconnect_timer()

        task = self._connect_task
        self._connect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _close_transport(self) -> bool:
        """Stop the reader and close the socket.

        Returns:
            True if a socket was open
        """
        reader = self._reader_task
        self._reader_task = None
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        ws = self._ws
        self._ws = None
        if ws is None:
            return False

        await self._safe_close(ws)
        return True

    async def _safe_close(self, ws: Any) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error while closing websocket: {e!r}")

    # ==================== Frame handling ====================

    def _handle_frame(self, raw: Union[str, bytes]) -> Optional[str]:
        """Decode one frame and emit the matching event.

        Returns:
            The upstream error text if the frame rejects the subscription
        """
        self._messages_received += 1
        self._last_message_at = datetime.now(timezone.utc)

        try:
            frame = parse_frame(raw)
        except FrameDecodeError as e:
            self._report_decode_failure(e.message_type, str(e), raw)
            return None

        error_text = upstream_error(frame)
        if error_text is not None:
            # Counted as an error by the 1008 close that follows
            logger.error(f"AISStream reported an error: {error_text}")
            self.events.emit(
                ClientEvent.WARNING,
                DecodeWarning(message_type="Error", reason=error_text, raw=frame),
            )
            return error_text

        if self._state is ConnectionState.AWAITING_AUTH_ACK:
            self._mark_streaming()

        kind = classify_frame(frame)
        if kind is FrameKind.UNRECOGNIZED:
            self._messages_ignored += 1
            logger.debug(f"Ignoring message type: {frame.get('MessageType')!r}")
            return None

        try:
            if kind is FrameKind.POSITION_REPORT:
                event, payload = ClientEvent.POSITION, decode_position(frame)
            else:
                event, payload = ClientEvent.STATIC_DATA, decode_static_data(frame)
        except FrameDecodeError as e:
            self._report_decode_failure(e.message_type, str(e), frame)
            return None

        self._messages_processed += 1
        self.events.emit(event, payload)
        return None

    def _report_decode_failure(self, message_type: str, reason: str, raw: Any) -> None:
        self._errors += 1
        logger.warning(f"Invalid {message_type} message: {reason}")
        self.events.emit(
            ClientEvent.WARNING,
            DecodeWarning(message_type=message_type, reason=reason, raw=raw),
        )

    def _mark_streaming(self) -> None:
        self._set_state(ConnectionState.STREAMING)
        self._reconnect_attempts = 0
        logger.info("AISStream subscription accepted; streaming")
        self.events.emit(ClientEvent.CONNECTED)

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug(f"Connection state: {self._state.value} -> {state.value}")
            self._state = state

    def __repr__(self) -> str:
        return f"<AISStreamClient(url={self.url}, state={self._state.value})>"
