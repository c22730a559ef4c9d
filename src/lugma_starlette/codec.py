"""JSON codec for RPC bodies and stream frames.

All payloads go through pydantic ``TypeAdapter`` so any type pydantic
understands (models, dataclasses, TypedDicts, builtins) can be bound to a
method or an event.

Stream frames are wrapped in an envelope:
    {"type": "<event-name>", "content": <payload>}

Envelope decoding is two-stage: the envelope is decoded with ``content``
captured as a plain JSON value, and the content is re-decoded into the
handler's type once the handler for ``type`` has been looked up.

Decoding follows pydantic's JSON rules, which never turn numbers into strings.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic_core import PydanticSerializationError

from .errors import DecodeError, EncodeError

T = TypeVar("T")

# Handshake ("extra") payload sent as the first frame of a stream
Handshake = dict[str, str]


class Nothing(BaseModel):
    """Placeholder for a position that carries no data.

    Encodes to ``{}`` and decodes from any JSON value.
    """

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _discard(cls, data: Any) -> dict[str, Any]:
        return {}


class Envelope(BaseModel):
    """Wire wrapper for steady-state stream frames."""

    type: str = Field(min_length=1)
    content: Any


@lru_cache(maxsize=256)
def _cached_adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def adapter_for(type_: Any) -> TypeAdapter[Any]:
    """Get a (cached when possible) TypeAdapter for a type."""
    try:
        return _cached_adapter(type_)
    except TypeError:
        # Unhashable annotations (e.g. Annotated with list metadata)
        return TypeAdapter(type_)


_any_adapter: TypeAdapter[Any] = TypeAdapter(Any)


def encode(value: Any) -> bytes:
    """Serialize a value to JSON bytes.

    Raises:
        EncodeError: If the value's structure cannot be serialized, or it
            holds a NaN or infinite float (JSON has no encoding for those)
    """
    try:
        _reject_non_finite(_any_adapter.dump_python(value))
        return _any_adapter.dump_json(value)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise EncodeError(f"Cannot encode {type(value).__name__}: {e}") from e


def _reject_non_finite(value: Any) -> None:
    # pydantic writes NaN and infinity as null, which would not decode back
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} is not a valid JSON number")
    elif isinstance(value, dict):
        for item in value.values():
            _reject_non_finite(item)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            _reject_non_finite(item)


def decode(type_: type[T] | Any, data: bytes | str) -> T:
    """Parse JSON bytes and validate them as ``type_``.

    Raises:
        DecodeError: If the bytes are malformed or do not match ``type_``
    """
    try:
        return adapter_for(type_).validate_json(data)
    except ValidationError as e:
        raise DecodeError(f"Cannot decode {_type_name(type_)}: {e}") from e


def decode_value(type_: type[T] | Any, value: Any) -> T:
    """Re-decode an already parsed JSON value as ``type_``.

    Second stage of envelope decoding. The value is round-tripped through
    JSON so that the same JSON validation rules apply as for ``decode``.
    """
    try:
        raw = _any_adapter.dump_json(value)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise DecodeError(f"Content is not a JSON value: {e}") from e
    return decode(type_, raw)


def decode_handshake(data: bytes | str) -> Handshake:
    """Decode the first frame of a stream (a string to string mapping)."""
    return decode(Handshake, data)


def encode_envelope(event: str, item: Any) -> bytes:
    """Wrap ``item`` under ``event`` and serialize it.

    Raises:
        EncodeError: If the event name is empty or the item can't be serialized
    """
    if not event:
        raise EncodeError("Event name must be non-empty")
    return encode(Envelope(type=event, content=item))


def decode_envelope(data: bytes | str) -> Envelope:
    """Decode a frame into an Envelope with generic content.

    Raises:
        DecodeError: If the frame is not a well-formed envelope
    """
    return decode(Envelope, data)


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", None) or repr(type_)
