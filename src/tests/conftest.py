"""Pytest configuration and shared fixtures."""

import asyncio
import os
from collections.abc import Iterable
from typing import Any

import pytest

# Set test environment before importing settings
os.environ["ENV"] = "development"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FORMAT"] = "text"

from redisn.config import PubSubSettings, get_settings  # noqa: E402


class FakeConnection:
    """Connection double recording every command and read.

    Replies are served in the order fed; an exception instance is raised
    instead of returned. A read with nothing queued blocks until more is fed.
    """

    def __init__(self, replies: Iterable[Any] = ()):
        self.sent: list[tuple[Any, ...]] = []
        self.reads = 0
        self.disconnects = 0
        self._replies: asyncio.Queue = asyncio.Queue()
        self.feed(*replies)

    def feed(self, *replies: Any) -> None:
        for reply in replies:
            self._replies.put_nowait(reply)

    async def send_command(self, *args: Any, **kwargs: Any) -> None:
        self.sent.append(args)

    async def read_response(self, **kwargs: Any) -> Any:
        self.reads += 1
        reply = await self._replies.get()
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def disconnect(self, nowait: bool = False) -> None:
        self.disconnects += 1


class FakePool:
    """Pool double handing out a single connection."""

    def __init__(self, connection: FakeConnection):
        self.connection = connection
        self.acquired = 0
        self.released: list[FakeConnection] = []
        self.disconnected = 0

    async def get_connection(self) -> FakeConnection:
        self.acquired += 1
        return self.connection

    async def release(self, connection: FakeConnection) -> None:
        self.released.append(connection)

    async def disconnect(self) -> None:
        self.disconnected += 1


class RecordingHandler:
    """Handler recording every (channel, payload, error) call."""

    def __init__(self):
        self.calls: list[tuple[str, str, BaseException | None]] = []

    def __call__(self, channel: str, payload: str, error: BaseException | None) -> None:
        self.calls.append((channel, payload, error))

    async def wait_for_calls(self, count: int, timeout: float = 1.0) -> None:
        async def _poll() -> None:
            while len(self.calls) < count:
                await asyncio.sleep(0)

        await asyncio.wait_for(_poll(), timeout)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_pool(fake_connection: FakeConnection) -> FakePool:
    return FakePool(fake_connection)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def pubsub_settings() -> PubSubSettings:
    return PubSubSettings(shutdown_timeout_seconds=1.0, discard_connection_on_error=True)


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark everything under tests/unit as a unit test."""
    for item in items:
        if "unit" in item.path.parts:
            item.add_marker(pytest.mark.unit)
