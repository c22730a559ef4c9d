"""Starlette transport: binds handlers to RPC routes and WebSocket streams.

RPC:    POST <prefix>/<method>   body = JSON Args
        -> ok_status + JSON Ret        (handler returned Success)
        -> rejected_status + JSON Err  (handler returned Failure)

Stream: WebSocket <prefix>/<stream>
        handshake frame, then {"type", "content"} envelopes both ways
"""

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from starlette.requests import HTTPConnection, Request
from starlette.responses import JSONResponse, Response
from starlette.routing import BaseRoute, Mount, Route, WebSocketRoute
from starlette.websockets import WebSocket

from .base import MethodHandler, Transport
from .codec import decode, encode
from .config import TransportConfig
from .connection import WebSocketConnection
from .errors import BindingError, ConnectionIOError, DecodeError, EncodeError, HandlerError
from .result import Failure, Success
from .stream import WebSocketStream

logger = logging.getLogger(__name__)

StreamHandler = Callable[[WebSocket, WebSocketStream], Awaitable[None] | None]


class RpcStatus(str, Enum):
    """Application-level outcome of an RPC call."""

    OK = "ok"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RpcOutcome:
    """Status plus encoded body (Ret on OK, Err on REJECTED)."""

    status: RpcStatus
    body: bytes


@dataclass
class MethodBinding:
    """An RPC handler bound to a method name."""

    name: str
    handler: MethodHandler
    args_type: Any = Any

    async def invoke(self, request: Any, body: bytes | str) -> RpcOutcome:
        """Decode the body, run the handler and encode its Result.

        Raises:
            DecodeError: If the body doesn't decode as ``args_type``
            HandlerError: If the handler raised or didn't return a Result
            EncodeError: If the returned value can't be serialized
        """
        # An empty body decodes like JSON null (enough for Nothing arguments)
        args = decode(self.args_type, body or b"null")

        try:
            result = await self.handler(request, args)
        except Exception as e:
            raise HandlerError(self.name, f"handler raised {type(e).__name__}: {e}") from e

        if isinstance(result, Success):
            return RpcOutcome(status=RpcStatus.OK, body=encode(result.value))
        if isinstance(result, Failure):
            return RpcOutcome(status=RpcStatus.REJECTED, body=encode(result.error))

        raise HandlerError(
            self.name,
            f"handler returned {type(result).__name__}, expected Success or Failure",
        )


class StarletteTransport(Transport[HTTPConnection, WebSocketStream]):
    """Transport backed by starlette routing.

    Usage:
        transport = StarletteTransport()
        transport.bind_method("divide", divide, args_type=DivideArgs)
        transport.bind_stream("chat", chat)
        app = Starlette(routes=transport.routes)
    """

    def __init__(self, config: TransportConfig | None = None):
        self.config = config or TransportConfig()
        self._methods: dict[str, MethodBinding] = {}
        self._streams: dict[str, StreamHandler] = {}
        self._routes: list[BaseRoute] = []

    @property
    def routes(self) -> list[BaseRoute]:
        """Routes for all bound methods and streams."""
        return list(self._routes)

    @property
    def methods(self) -> tuple[str, ...]:
        return tuple(self._methods)

    @property
    def streams(self) -> tuple[str, ...]:
        return tuple(self._streams)

    def mount(self, prefix: str) -> Mount:
        """Mount all bound routes under ``prefix``."""
        return Mount(prefix, routes=self.routes)

    def path_for(self, name: str) -> str:
        return f"{self.config.path_prefix}/{name}"

    # -------------------------------------------------------------------------
    # RPC
    # -------------------------------------------------------------------------

    def bind_method(
        self,
        method: str,
        handler: Callable[[Request, Any], Awaitable[Any]],
        args_type: Any = Any,
    ) -> None:
        """Bind an async RPC handler to ``POST /<method>``.

        Args:
            method: Method name (also the route path)
            handler: ``async (request, args) -> Success | Failure``
            args_type: Type the request body is decoded into
        """
        method = self._validate_name(method, self._methods, "method")
        binding = MethodBinding(name=method, handler=handler, args_type=args_type)
        self._methods[method] = binding
        self._routes.append(
            Route(self.path_for(method), self._method_endpoint(binding), methods=["POST"])
        )
        logger.debug(f"Bound method {method!r} at {self.path_for(method)}")

    def _method_endpoint(self, binding: MethodBinding) -> Callable[[Request], Awaitable[Response]]:
        async def endpoint(request: Request) -> Response:
            body = await request.body()

            try:
                outcome = await binding.invoke(request, body)
            except DecodeError as e:
                logger.warning(f"Invalid request for {binding.name!r}: {e}")
                return JSONResponse(
                    {"error": str(e), "code": "INVALID_REQUEST"},
                    status_code=self.config.invalid_request_status,
                )
            except (HandlerError, EncodeError) as e:
                logger.exception(f"RPC {binding.name!r} failed: {e}")
                return JSONResponse(
                    {"error": "Internal server error", "code": "HANDLER_ERROR"},
                    status_code=500,
                )

            status_code = (
                self.config.ok_status
                if outcome.status is RpcStatus.OK
                else self.config.rejected_status
            )
            return Response(outcome.body, status_code=status_code, media_type="application/json")

        return endpoint

    # -------------------------------------------------------------------------
    # Streams
    # -------------------------------------------------------------------------

    def bind_stream(self, stream: str, handler: StreamHandler) -> None:
        """Bind a stream handler to ``WebSocket /<stream>``.

        The handler is called once per connection with the accepted socket
        and a fresh ``WebSocketStream``. It must register its callbacks
        before returning; frames are only read after it returns.
        """
        stream = self._validate_name(stream, self._streams, "stream")
        self._streams[stream] = handler
        self._routes.append(
            WebSocketRoute(self.path_for(stream), self._stream_endpoint(stream, handler))
        )
        logger.debug(f"Bound stream {stream!r} at {self.path_for(stream)}")

    def _stream_endpoint(
        self, name: str, handler: StreamHandler
    ) -> Callable[[WebSocket], Awaitable[None]]:
        async def endpoint(websocket: WebSocket) -> None:
            await websocket.accept()
            connection = WebSocketConnection(websocket, self.config)
            stream = WebSocketStream(connection, request=websocket)

            try:
                pending = handler(websocket, stream)
                if inspect.isawaitable(pending):
                    await pending
            except Exception:
                logger.exception(f"Stream handler for {name!r} failed")
                with contextlib.suppress(ConnectionIOError):
                    await stream.close()
                return

            await connection.run()
            logger.debug(f"Stream {name!r} finished")

        return endpoint

    @staticmethod
    def _validate_name(name: str, bound: dict[str, Any], kind: str) -> str:
        name = name.strip("/")
        if not name:
            raise BindingError(f"{kind} name must be non-empty")
        if name in bound:
            raise BindingError(f"{kind} {name!r} is already bound")
        return name
