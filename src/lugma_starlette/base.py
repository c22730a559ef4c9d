"""Transport abstraction base classes.

Defines the transport-agnostic interfaces for the two interaction patterns:
- Unary RPC: typed request in, ``Result`` out
- Event streams: handshake, then named events multiplexed over one connection

``StarletteTransport`` / ``WebSocketStream`` are the starlette implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from .codec import Handshake
from .result import Result

RequestT = TypeVar("RequestT")
StreamT = TypeVar("StreamT", bound="Stream[Any]")

OpenCallback = Callable[[Handshake], Awaitable[None]]
CloseCallback = Callable[[], Awaitable[None]]
EventCallback = Callable[[Any], Awaitable[None]]
MethodHandler = Callable[[Any, Any], Awaitable[Result[Any, Any]]]


class Stream(ABC, Generic[RequestT]):
    """One connection's typed event stream.

    Handlers must be registered before control returns to the connection
    layer, otherwise the handshake frame may arrive first.
    """

    @property
    @abstractmethod
    def request(self) -> RequestT | None:
        """The request context the stream was accepted on."""
        ...

    @abstractmethod
    def on_open(self, callback: OpenCallback) -> None:
        """Register the handshake callback."""
        ...

    @abstractmethod
    def on_close(self, callback: CloseCallback) -> None:
        """Register the close callback."""
        ...

    @abstractmethod
    def on(self, signal: str, callback: EventCallback, item_type: Any = Any) -> None:
        """Register (or replace) the handler for an event name."""
        ...

    @abstractmethod
    async def send(self, event: str, item: Any) -> None:
        """Send an item under an event name."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the stream."""
        ...


class Transport(ABC, Generic[RequestT, StreamT]):
    """Binds application handlers to named RPC methods and streams."""

    @abstractmethod
    def bind_method(
        self,
        method: str,
        handler: Callable[[RequestT, Any], Awaitable[Result[Any, Any]]],
        args_type: Any = Any,
    ) -> None:
        """Bind an async RPC handler to a method name."""
        ...

    @abstractmethod
    def bind_stream(self, stream: str, handler: Callable[[RequestT, StreamT], None]) -> None:
        """Bind a stream handler to a stream name."""
        ...
