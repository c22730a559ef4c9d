"""Error taxonomy for the lugma transport.

- CodecError: payload could not be encoded or decoded
- ConnectionIOError: the underlying connection failed a write or close
- HandlerError: an RPC handler raised outside the Result channel
- BindingError / ConfigError: setup-time mistakes
"""

from __future__ import annotations


class LugmaError(Exception):
    """Base class for all lugma errors."""


class CodecError(LugmaError):
    """Base class for codec failures."""


class EncodeError(CodecError):
    """A value could not be serialized."""


class DecodeError(CodecError):
    """Bytes were malformed or did not match the expected shape."""


class ConnectionIOError(LugmaError, OSError):
    """The underlying connection failed to send or close."""


class StreamClosedError(ConnectionIOError):
    """Operation attempted on a stream that is already closed."""


class HandlerError(LugmaError):
    """An RPC handler failed outside of its Result channel."""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method


class BindingError(LugmaError):
    """A method or stream could not be bound."""


class ConfigError(LugmaError):
    """Invalid transport configuration."""


class UnwrapError(LugmaError, ValueError):
    """unwrap() was called on a Failure."""

    def __init__(self, error: object):
        super().__init__(f"called unwrap() on Failure({error!r})")
        self.error = error
