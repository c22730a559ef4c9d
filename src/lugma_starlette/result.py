"""Result type returned by RPC handlers.

Handlers report expected failures through ``Failure`` rather than raising,
so the transport can answer with a well-formed rejection body.

Usage:
    async def divide(request, args: DivideArgs) -> Result[float, DivideError]:
        if args.b == 0:
            return Failure(DivideError(message="div by zero"))
        return Success(args.a / args.b)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import UnwrapError

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome carrying the return value."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Rejected outcome carrying an application-defined error value."""

    error: E

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    def unwrap(self):
        raise UnwrapError(self.error)


Result = Union[Success[T], Failure[E]]
