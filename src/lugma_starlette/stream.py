"""Event stream over a single duplex connection.

Protocol:
1. Client connects
2. Client sends the handshake: a JSON object of string -> string
3. Both sides exchange envelopes: {"type": "<event>", "content": <payload>}

Any frame that fails to decode closes the connection. There is no resync.
Frames whose type has no registered handler are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from starlette.websockets import WebSocket

from .base import CloseCallback, EventCallback, OpenCallback, Stream
from .codec import decode_envelope, decode_handshake, decode_value, encode_envelope
from .connection import Connection, Frame
from .errors import DecodeError, StreamClosedError

logger = logging.getLogger(__name__)

_Dispatch = Callable[[Any], Awaitable[None]]


class StreamState(str, Enum):
    """Lifecycle of a stream. CLOSED is terminal."""

    UNOPENED = "unopened"
    AWAITING_HANDSHAKE = "awaiting_handshake"
    OPEN = "open"
    CLOSED = "closed"


class WebSocketStream(Stream[WebSocket]):
    """Typed event stream bound to one connection.

    Construction arms the handshake capture immediately, so handlers must
    be registered before control goes back to the connection layer:

        def chat(websocket, stream):
            stream.on_open(joined)
            stream.on("msg", echo, item_type=str)
            stream.on_close(left)
    """

    def __init__(self, connection: Connection, request: WebSocket | None = None):
        self._connection = connection
        self._request = request
        self._state = StreamState.UNOPENED
        self._handlers: dict[str, _Dispatch] = {}
        self._open_callback: OpenCallback | None = None
        self._close_callback: CloseCallback | None = None
        self._close_notified = False

        connection.on_close(self._handle_connection_closed)
        connection.on_frame(self.handle_frame)
        self._state = StreamState.AWAITING_HANDSHAKE

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is StreamState.OPEN

    @property
    def is_closed(self) -> bool:
        return self._state is StreamState.CLOSED

    @property
    def request(self) -> WebSocket | None:
        return self._request

    @property
    def connection(self) -> Connection:
        return self._connection

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def on_open(self, callback: OpenCallback) -> None:
        """Register the handshake callback.

        Called once with the decoded handshake. Has no effect if the
        handshake has already been received.
        """
        self._open_callback = callback

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback fired once when the connection closes."""
        self._close_callback = callback

    def on(self, signal: str, callback: EventCallback, item_type: Any = Any) -> None:
        """Register the handler for event ``signal``, replacing any previous one.

        Args:
            signal: Event name (the envelope ``type``)
            callback: Async function called with the decoded content
            item_type: Type the content is decoded into before the call
        """

        async def dispatch(content: Any) -> None:
            try:
                item = decode_value(item_type, content)
            except DecodeError as e:
                await self._fail_closed(f"invalid content for {signal!r}: {e}")
                return

            try:
                await callback(item)
            except Exception:
                logger.exception(f"Error in stream handler for {signal!r}")

        self._handlers[signal] = dispatch

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def send(self, event: str, item: Any) -> None:
        """Send ``item`` under ``event``.

        Raises:
            StreamClosedError: If the stream is closed
            EncodeError: If the item can't be serialized (nothing is sent)
            ConnectionIOError: If the write fails (the stream is closed first)
        """
        if self._state is StreamState.CLOSED:
            raise StreamClosedError(f"Cannot send {event!r}: stream is closed")

        data = encode_envelope(event, item)

        try:
            await self._connection.send(data)
        except OSError:
            await self._close_quietly()
            raise

    async def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        if self._state is StreamState.CLOSED:
            return

        logger.debug(f"Stream closing (state={self._state.value})")
        self._state = StreamState.CLOSED
        try:
            await self._connection.close()
        finally:
            await self._notify_closed()

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def handle_frame(self, data: Frame) -> None:
        """Handle the next inbound frame according to the current state."""
        if self._state is StreamState.AWAITING_HANDSHAKE:
            await self._handle_handshake(data)
        elif self._state is StreamState.OPEN:
            await self._handle_event(data)

    async def _handle_handshake(self, data: Frame) -> None:
        try:
            handshake = decode_handshake(data)
        except DecodeError as e:
            await self._fail_closed(f"invalid handshake: {e}")
            return

        self._state = StreamState.OPEN
        logger.debug(f"Stream open (handshake keys: {sorted(handshake)})")

        if self._open_callback is not None:
            try:
                await self._open_callback(handshake)
            except Exception:
                logger.exception("Error in stream open callback")

    async def _handle_event(self, data: Frame) -> None:
        try:
            envelope = decode_envelope(data)
        except DecodeError as e:
            await self._fail_closed(f"invalid envelope: {e}")
            return

        handler = self._handlers.get(envelope.type)
        if handler is None:
            logger.debug(f"Dropping frame with unhandled type {envelope.type!r}")
            return

        await handler(envelope.content)

    # -------------------------------------------------------------------------
    # Closing
    # -------------------------------------------------------------------------

    async def _fail_closed(self, reason: str) -> None:
        logger.warning(f"Closing stream: {reason}")
        await self._close_quietly()

    async def _close_quietly(self) -> None:
        try:
            await self.close()
        except OSError as e:
            logger.warning(f"Error closing stream connection: {e}")

    async def _handle_connection_closed(self) -> None:
        self._state = StreamState.CLOSED
        await self._notify_closed()

    async def _notify_closed(self) -> None:
        if self._close_notified:
            return
        self._close_notified = True

        if self._close_callback is not None:
            try:
                await self._close_callback()
            except Exception:
                logger.exception("Error in stream close callback")
