"""Demo application.

Routes:
- GET  /health   - Health check
- POST /divide   - RPC: {"a", "b"} -> a / b, rejected with {"message"} on b == 0
- POST /ping     - RPC with no arguments and no return value
- WS   /chat     - Chat stream, handshake {"room": "<name>"}

Chat events:
- msg (client -> server): text, broadcast as ``msg`` to everyone in the room
- join (client -> server): no content, answered with ``joined`` {"room", "members"}
"""

from __future__ import annotations

import logging

from pydantic import BaseModel
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.websockets import WebSocket

from .codec import Handshake, Nothing
from .config import TransportConfig
from .errors import ConnectionIOError
from .result import Failure, Result, Success
from .stream import WebSocketStream
from .transport import StarletteTransport

logger = logging.getLogger(__name__)

DEFAULT_ROOM = "lobby"


class DivideArgs(BaseModel):
    a: float
    b: float


class DivideError(BaseModel):
    message: str


class Joined(BaseModel):
    room: str
    members: int


async def divide(request: Request, args: DivideArgs) -> Result[float, DivideError]:
    if args.b == 0:
        return Failure(DivideError(message="div by zero"))
    return Success(args.a / args.b)


async def ping(request: Request, args: Nothing) -> Result[Nothing, Nothing]:
    return Success(Nothing())


class ChatRooms:
    """Tracks which streams are in which room."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocketStream]] = {}

    def join(self, room: str, stream: WebSocketStream) -> int:
        members = self._rooms.setdefault(room, set())
        members.add(stream)
        return len(members)

    def leave(self, room: str, stream: WebSocketStream) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(stream)
        if not members:
            del self._rooms[room]

    def members(self, room: str) -> list[WebSocketStream]:
        return list(self._rooms.get(room, ()))

    async def broadcast(self, room: str, event: str, item: object) -> None:
        for member in self.members(room):
            try:
                await member.send(event, item)
            except ConnectionIOError as e:
                logger.info(f"Dropping chat member in {room!r}: {e}")
                self.leave(room, member)


def chat_handler(rooms: ChatRooms):
    """Build the stream handler for /chat."""

    def handle(websocket: WebSocket, stream: WebSocketStream) -> None:
        joined: dict[str, str] = {}

        async def on_open(handshake: Handshake) -> None:
            room = handshake.get("room", DEFAULT_ROOM)
            joined["room"] = room
            rooms.join(room, stream)
            logger.info(f"Chat client joined {room!r}")

        async def on_msg(text: str) -> None:
            await rooms.broadcast(joined.get("room", DEFAULT_ROOM), "msg", text)

        async def on_join(_: Nothing) -> None:
            room = joined.get("room", DEFAULT_ROOM)
            await stream.send("joined", Joined(room=room, members=len(rooms.members(room))))

        async def on_close() -> None:
            if "room" in joined:
                rooms.leave(joined["room"], stream)
                logger.info(f"Chat client left {joined['room']!r}")

        stream.on_open(on_open)
        stream.on("msg", on_msg, item_type=str)
        stream.on("join", on_join, item_type=Nothing)
        stream.on_close(on_close)

    return handle


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "ok"})


def create_app(config: TransportConfig | None = None) -> Starlette:
    """Create the demo application.

    Args:
        config: Transport configuration. Defaults to LUGMA_* environment variables.

    Returns:
        Configured Starlette application
    """
    config = config or TransportConfig.from_env()
    rooms = ChatRooms()

    transport = StarletteTransport(config)
    transport.bind_method("divide", divide, args_type=DivideArgs)
    transport.bind_method("ping", ping, args_type=Nothing)
    transport.bind_stream("chat", chat_handler(rooms))

    routes = [Route("/health", health_check, methods=["GET"]), *transport.routes]

    app = Starlette(routes=routes)
    app.state.transport = transport
    app.state.rooms = rooms
    return app
