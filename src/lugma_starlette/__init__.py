"""Typed RPC and event streams over starlette.

Two interaction patterns:
- Unary RPC: JSON request body in, ``Success`` / ``Failure`` out
- Event streams: a handshake frame, then ``{"type", "content"}`` envelopes
  multiplexed over one WebSocket

    transport = StarletteTransport()
    transport.bind_method("divide", divide, args_type=DivideArgs)
    transport.bind_stream("chat", chat)
    app = Starlette(routes=transport.routes)
"""

from .base import Stream, Transport
from .codec import (
    Envelope,
    Handshake,
    Nothing,
    decode,
    decode_envelope,
    decode_handshake,
    decode_value,
    encode,
    encode_envelope,
)
from .config import TransportConfig
from .connection import Connection, WebSocketConnection
from .errors import (
    BindingError,
    CodecError,
    ConfigError,
    ConnectionIOError,
    DecodeError,
    EncodeError,
    HandlerError,
    LugmaError,
    StreamClosedError,
    UnwrapError,
)
from .result import Failure, Result, Success
from .stream import StreamState, WebSocketStream
from .transport import MethodBinding, RpcOutcome, RpcStatus, StarletteTransport

__all__ = [
    # Abstractions
    "Stream",
    "Transport",
    "Connection",
    # Codec
    "Envelope",
    "Handshake",
    "Nothing",
    "encode",
    "decode",
    "decode_value",
    "decode_handshake",
    "encode_envelope",
    "decode_envelope",
    # Result
    "Result",
    "Success",
    "Failure",
    # Starlette implementation
    "StarletteTransport",
    "MethodBinding",
    "RpcOutcome",
    "RpcStatus",
    "WebSocketStream",
    "WebSocketConnection",
    "StreamState",
    "TransportConfig",
    # Errors
    "LugmaError",
    "CodecError",
    "EncodeError",
    "DecodeError",
    "ConnectionIOError",
    "StreamClosedError",
    "HandlerError",
    "BindingError",
    "ConfigError",
    "UnwrapError",
]
