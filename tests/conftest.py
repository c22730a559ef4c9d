"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from lugma_starlette.errors import ConnectionIOError


class FakeConnection:
    """In-memory Connection that records sends and closes."""

    def __init__(self) -> None:
        self.frame_callback = None
        self.close_callbacks = []
        self.sent: list[bytes] = []
        self.close_calls = 0
        self.closed = False
        self.fail_send = False
        self.fail_close = False

    def on_frame(self, callback) -> None:
        self.frame_callback = callback

    def on_close(self, callback) -> None:
        self.close_callbacks.append(callback)

    async def send(self, data: bytes) -> None:
        if self.fail_send:
            raise ConnectionIOError("write failed")
        self.sent.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise ConnectionIOError("close failed")
        await self.disconnect()

    async def deliver(self, data: bytes | str) -> None:
        """Simulate an inbound frame."""
        await self.frame_callback(data)

    async def disconnect(self) -> None:
        """Simulate the peer going away."""
        if self.closed:
            return
        self.closed = True
        for callback in self.close_callbacks:
            await callback()


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()
