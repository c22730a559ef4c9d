"""Unit tests for the Result type."""

from __future__ import annotations

import pytest

from lugma_starlette.errors import LugmaError, UnwrapError
from lugma_starlette.result import Failure, Success


class TestResult:
    def test_success(self) -> None:
        result = Success(42)

        assert result.is_success
        assert not result.is_failure
        assert result.unwrap() == 42

    def test_failure(self) -> None:
        result = Failure({"message": "nope"})

        assert result.is_failure
        assert not result.is_success
        assert result.error == {"message": "nope"}

    def test_failure_unwrap_raises(self) -> None:
        with pytest.raises(UnwrapError) as exc_info:
            Failure("boom").unwrap()

        assert exc_info.value.error == "boom"
        assert isinstance(exc_info.value, ValueError)
        assert isinstance(exc_info.value, LugmaError)

    def test_equality(self) -> None:
        assert Success(1) == Success(1)
        assert Success(1) != Failure(1)

    def test_frozen(self) -> None:
        result = Success(1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]
