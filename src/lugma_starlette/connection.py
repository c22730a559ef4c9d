"""Connection layer consumed by streams.

A stream only needs four things from a connection: a slot for inbound
frames, a close notification, and ``send`` / ``close`` primitives. Any
object satisfying ``Connection`` can back a ``WebSocketStream``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from .config import TransportConfig
from .errors import ConnectionIOError

logger = logging.getLogger(__name__)

Frame = bytes | str
FrameCallback = Callable[[Frame], Awaitable[None]]
CloseCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class Connection(Protocol):
    """Protocol for the underlying duplex connection.

    Inbound frames are delivered one at a time through the single frame
    callback slot. ``send`` and ``close`` raise ``ConnectionIOError``.
    """

    def on_frame(self, callback: FrameCallback) -> None:
        """Set the callback receiving inbound frames."""
        ...

    def on_close(self, callback: CloseCallback) -> None:
        """Add a callback fired once when the connection closes."""
        ...

    async def send(self, data: bytes) -> None:
        """Write one frame."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...


class WebSocketConnection:
    """Starlette WebSocket adapter.

    The socket must already be accepted. ``run()`` drives the receive loop
    and returns once the connection is closed from either side.
    """

    def __init__(self, websocket: WebSocket, config: TransportConfig | None = None):
        self._websocket = websocket
        self._config = config or TransportConfig()
        self._frame_callback: FrameCallback | None = None
        self._close_callbacks: list[CloseCallback] = []
        self._closed = False
        self._close_notified = False
        self._send_lock = asyncio.Lock()

    @property
    def websocket(self) -> WebSocket:
        return self._websocket

    @property
    def is_closed(self) -> bool:
        return self._closed

    def on_frame(self, callback: FrameCallback) -> None:
        self._frame_callback = callback

    def on_close(self, callback: CloseCallback) -> None:
        self._close_callbacks.append(callback)

    async def run(self) -> None:
        """Receive frames until the connection closes."""
        try:
            while not self._closed:
                message = await self._websocket.receive()

                if message["type"] == "websocket.disconnect":
                    logger.debug(f"WebSocket disconnected by client (code={message.get('code')})")
                    break

                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                if data is None or self._frame_callback is None:
                    continue

                # Frames are handled serially, in arrival order
                await self._frame_callback(data)

        except WebSocketDisconnect as e:
            logger.debug(f"WebSocket disconnected (code={e.code})")
        except RuntimeError as e:
            # Starlette refuses receive() once either side has closed
            logger.debug(f"WebSocket receive stopped: {e}")
        finally:
            self._closed = True
            await self._notify_closed()

    async def send(self, data: bytes) -> None:
        """Send one text frame."""
        async with self._send_lock:
            if self._closed:
                raise ConnectionIOError("Connection is closed")
            try:
                await self._websocket.send_text(data.decode("utf-8"))
            except (RuntimeError, OSError, WebSocketDisconnect) as e:
                raise ConnectionIOError(f"WebSocket send failed: {e}") from e

    async def close(self) -> None:
        """Close the socket with the configured close code. Idempotent."""
        if self._closed:
            return
        self._closed = True

        try:
            if self._websocket.application_state != WebSocketState.DISCONNECTED:
                await self._websocket.close(code=self._config.close_code)
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            raise ConnectionIOError(f"WebSocket close failed: {e}") from e
        finally:
            await self._notify_closed()

    async def _notify_closed(self) -> None:
        if self._close_notified:
            return
        self._close_notified = True

        for callback in self._close_callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("Error in connection close callback")
