"""Tests for the notification client, including end-to-end session flows."""

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from redisn import listen, unlisten
from redisn.client import NotificationClient
from redisn.config import PubSubSettings
from redisn.errors import (
    ClientClosedError,
    InvalidKeysError,
    NoActiveSessionError,
    SessionActiveError,
    SubscribeInProgressError,
    SubscriptionFailedError,
    UnsupportedCommandError,
)
from redisn.models import SessionState, TerminationReason


async def settle(rounds: int = 10) -> None:
    """Let background tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def client(fake_pool, pubsub_settings) -> NotificationClient:
    return NotificationClient(fake_pool, pubsub_settings)


class TestEndToEnd:
    """Full subscribe / deliver / unsubscribe flows."""

    async def test_subscribe_single_channel(self, client, fake_pool, fake_connection, handler) -> None:
        """Subscribe to news; one ack; no handler call; dispatcher listening."""
        fake_connection.feed(["subscribe", "news", 1])

        await client.subscribe("SUBSCRIBE", handler, "news")

        assert handler.calls == []
        assert client.active is True
        assert client.state == SessionState.LISTENING
        assert fake_pool.acquired == 1
        assert fake_connection.sent == [("SUBSCRIBE", "news")]
        await client.aclose()

    async def test_message_delivered_once(self, client, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1])
        await client.subscribe("SUBSCRIBE", handler, "news")

        fake_connection.feed(["message", "news", "hello"])
        await handler.wait_for_calls(1)
        await settle()

        assert handler.calls == [("news", "hello", None)]
        await client.aclose()

    async def test_unsubscribe_drains_and_releases(self, client, fake_pool, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1])
        await client.subscribe("SUBSCRIBE", handler, "news")

        await client.unsubscribe("UNSUBSCRIBE", "news")
        assert fake_connection.sent[-1] == ("UNSUBSCRIBE", "news")

        fake_connection.feed(["unsubscribe", "news", 0])
        reason = await client.wait()
        reads_at_termination = fake_connection.reads
        await settle()

        assert reason == TerminationReason.DRAINED
        assert handler.calls == []
        assert client.active is False
        assert client.state == SessionState.TERMINATED
        assert fake_pool.released == [fake_connection]
        assert fake_connection.disconnects == 0
        assert fake_connection.reads == reads_at_termination

    async def test_two_key_handshake(self, client, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "a", 1], ["subscribe", "b", 2])

        await client.subscribe("SUBSCRIBE", handler, "a", "b")
        reads_after_handshake = fake_connection.reads

        assert reads_after_handshake == 2
        assert fake_connection.sent == [("SUBSCRIBE", "a", "b")]
        assert handler.calls == []
        await client.aclose()

    async def test_unsupported_verb_touches_nothing(self, client, fake_pool, fake_connection, handler) -> None:
        with pytest.raises(UnsupportedCommandError):
            await client.subscribe("GET", handler, "news")

        assert fake_pool.acquired == 0
        assert fake_connection.sent == []
        assert fake_connection.reads == 0
        assert client.state is None


class TestSubscribe:
    """Test subscribe preconditions and failures."""

    async def test_invalid_keys_touch_nothing(self, client, fake_pool, handler) -> None:
        with pytest.raises(InvalidKeysError):
            await client.subscribe("SUBSCRIBE", handler, "news", "news")

        with pytest.raises(InvalidKeysError):
            await client.subscribe("SUBSCRIBE", handler)

        assert fake_pool.acquired == 0

    async def test_handshake_failure_releases_connection(
        self, client, fake_pool, fake_connection, handler
    ) -> None:
        fake_connection.feed(["message", "news", "not an ack"])

        with pytest.raises(SubscriptionFailedError):
            await client.subscribe("SUBSCRIBE", handler, "news")

        assert fake_pool.released == [fake_connection]
        assert fake_connection.disconnects == 1
        assert client.active is False
        assert handler.calls == []

    async def test_transport_failure_releases_connection(
        self, client, fake_pool, fake_connection, handler
    ) -> None:
        fake_connection.feed(RedisConnectionError("Connection refused"))

        with pytest.raises(RedisConnectionError):
            await client.subscribe("SUBSCRIBE", handler, "news")

        assert fake_pool.released == [fake_connection]
        assert client.active is False

    async def test_cancelled_handshake_releases_connection(
        self, client, fake_pool, fake_connection, handler
    ) -> None:
        task = asyncio.create_task(client.subscribe("SUBSCRIBE", handler, "news"))
        await settle()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert fake_pool.released == [fake_connection]
        assert client.state is None

    async def test_concurrent_subscribe_rejected(self, client, fake_connection, handler) -> None:
        first = asyncio.create_task(client.subscribe("SUBSCRIBE", handler, "news"))
        await settle()

        with pytest.raises(SubscribeInProgressError):
            await client.subscribe("SUBSCRIBE", handler, "sport")

        fake_connection.feed(["subscribe", "news", 1])
        await first
        assert client.active is True
        await client.aclose()

    async def test_subscribe_while_listening_rejected(self, client, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1])
        await client.subscribe("SUBSCRIBE", handler, "news")

        with pytest.raises(SessionActiveError):
            await client.subscribe("PSUBSCRIBE", handler, "sport.*")

        await client.aclose()

    async def test_new_session_after_termination(
        self, client, fake_pool, fake_connection, handler
    ) -> None:
        fake_connection.feed(["subscribe", "news", 1], ["unsubscribe", "news", 0])
        await client.subscribe("SUBSCRIBE", handler, "news")
        first_id = client.get_stats().session_id
        await client.wait()

        fake_connection.feed(["psubscribe", "sport.*", 1])
        await client.subscribe("PSUBSCRIBE", handler, "sport.*")

        assert fake_pool.acquired == 2
        assert client.get_stats().session_id != first_id
        assert client.active is True
        await client.aclose()


class TestUnsubscribe:
    """Test the fire-and-forget unsubscribe path."""

    async def test_no_session(self, client, fake_connection) -> None:
        with pytest.raises(NoActiveSessionError):
            await client.unsubscribe("UNSUBSCRIBE", "news")

        assert fake_connection.sent == []

    async def test_unsupported_verb_checked_first(self, client) -> None:
        with pytest.raises(UnsupportedCommandError):
            await client.unsubscribe("SUBSCRIBE", "news")

    async def test_after_termination(self, client, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1], ["unsubscribe", "news", 0])
        await client.subscribe("SUBSCRIBE", handler, "news")
        await client.wait()

        with pytest.raises(NoActiveSessionError):
            await client.unsubscribe("UNSUBSCRIBE", "news")

    async def test_does_not_read(self, client, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1])
        await client.subscribe("SUBSCRIBE", handler, "news")
        await settle()
        reads_before = fake_connection.reads

        await client.unsubscribe("punsubscribe")

        assert fake_connection.sent[-1] == ("PUNSUBSCRIBE",)
        assert fake_connection.reads == reads_before
        await client.aclose()

    async def test_partial_unsubscribe_keeps_session(self, client, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "a", 1], ["subscribe", "b", 2])
        await client.subscribe("SUBSCRIBE", handler, "a", "b")

        await client.unsubscribe("UNSUBSCRIBE", "a")
        fake_connection.feed(["unsubscribe", "a", 1], ["message", "b", "hi"])
        await handler.wait_for_calls(1)

        assert client.active is True
        assert handler.calls == [("b", "hi", None)]
        await client.aclose()


class TestDispatchErrors:
    """Test errors surfacing through the handler."""

    async def test_transport_error_ends_session(self, client, fake_pool, fake_connection, handler) -> None:
        failure = RedisConnectionError("Connection reset by peer")
        fake_connection.feed(["subscribe", "news", 1], failure)

        await client.subscribe("SUBSCRIBE", handler, "news")
        reason = await client.wait()

        assert reason == TerminationReason.TRANSPORT_ERROR
        assert handler.calls == [("", "", failure)]
        assert fake_pool.released == [fake_connection]
        assert fake_connection.disconnects == 1


class TestLifecycle:
    """Test close, stats and context manager use."""

    async def test_aclose_cancels_and_releases(self, client, fake_pool, fake_connection, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1])
        await client.subscribe("SUBSCRIBE", handler, "news")

        await client.aclose()

        assert client.active is False
        assert client.get_stats().termination_reason == TerminationReason.CANCELLED
        assert fake_pool.released == [fake_connection]
        assert handler.calls == []
        assert fake_pool.disconnected == 0

    async def test_aclose_without_session(self, client) -> None:
        await client.aclose()

        assert await client.wait() is None

    async def test_context_manager(self, fake_pool, fake_connection, pubsub_settings, handler) -> None:
        fake_connection.feed(["subscribe", "news", 1])

        async with NotificationClient(fake_pool, pubsub_settings, owns_pool=True) as client:
            await client.subscribe("SUBSCRIBE", handler, "news")

        assert fake_pool.released == [fake_connection]
        assert fake_pool.disconnected == 1

    async def test_stats(self, client, fake_connection, handler) -> None:
        assert client.get_stats().session_id is None

        fake_connection.feed(["subscribe", "a", 1], ["subscribe", "b", 2], ["message", "a", "x"])
        await client.subscribe("subscribe", handler, "a", "b")
        await handler.wait_for_calls(1)

        stats = client.get_stats()
        assert stats.state == SessionState.LISTENING
        assert stats.verb == "SUBSCRIBE"
        assert stats.keys == ("a", "b")
        assert stats.messages_dispatched == 1
        assert stats.termination_reason is None
        await client.aclose()

    async def test_aclose_during_handshake_releases(
        self, client, fake_pool, fake_connection, handler
    ) -> None:
        subscribing = asyncio.create_task(client.subscribe("SUBSCRIBE", handler, "news"))
        await settle()

        await client.aclose()
        fake_connection.feed(["subscribe", "news", 1])

        with pytest.raises(ClientClosedError):
            await subscribing

        assert client.active is False
        assert client.state is None
        assert fake_pool.released == [fake_connection]
        assert fake_connection.disconnects == 1
        assert handler.calls == []

    async def test_subscribe_after_close_rejected(self, client, fake_pool, handler) -> None:
        await client.aclose()

        with pytest.raises(ClientClosedError):
            await client.subscribe("SUBSCRIBE", handler, "news")

        assert fake_pool.acquired == 0

    async def test_aclose_waits_for_pending_release(
        self, fake_pool, fake_connection, pubsub_settings, handler, monkeypatch
    ) -> None:
        gate = asyncio.Event()
        disconnect = fake_connection.disconnect

        async def slow_disconnect(nowait: bool = False) -> None:
            await gate.wait()
            await disconnect(nowait)

        monkeypatch.setattr(fake_connection, "disconnect", slow_disconnect)
        client = NotificationClient(fake_pool, pubsub_settings, owns_pool=True)
        fake_connection.feed(["subscribe", "news", 1], RedisConnectionError("Connection reset by peer"))

        await client.subscribe("SUBSCRIBE", handler, "news")
        await handler.wait_for_calls(1)
        await settle()

        assert client.active is False
        assert fake_pool.released == []

        closing = asyncio.create_task(client.aclose())
        await settle()
        assert fake_pool.disconnected == 0

        gate.set()
        await closing

        assert fake_pool.released == [fake_connection]
        assert fake_pool.disconnected == 1
        assert await client.wait() == TerminationReason.TRANSPORT_ERROR

    async def test_aclose_gives_up_after_timeout(
        self, fake_pool, fake_connection, handler, monkeypatch
    ) -> None:
        gate = asyncio.Event()
        release = fake_pool.release

        async def slow_release(connection) -> None:
            await gate.wait()
            await release(connection)

        monkeypatch.setattr(fake_pool, "release", slow_release)
        client = NotificationClient(fake_pool, PubSubSettings(shutdown_timeout_seconds=0.05))
        fake_connection.feed(["subscribe", "news", 1])
        await client.subscribe("SUBSCRIBE", handler, "news")

        await client.aclose()

        assert fake_pool.released == []

        gate.set()
        assert await client.wait() == TerminationReason.CANCELLED
        assert fake_pool.released == [fake_connection]


class TestConnectionLevel:
    """Test listen/unlisten on a caller-managed connection."""

    async def test_listen_and_unlisten(self, fake_connection, handler) -> None:
        fake_connection.feed(["psubscribe", "news.*", 1])

        dispatcher = await listen(fake_connection, "PSUBSCRIBE", handler, "news.*")
        fake_connection.feed(["pmessage", "news.*", "news.world", "hello"])
        await handler.wait_for_calls(1)

        await unlisten(fake_connection, "PUNSUBSCRIBE", "news.*")
        fake_connection.feed(["punsubscribe", "news.*", 0])
        reason = await dispatcher.wait()

        assert handler.calls == [("news.world", "hello", None)]
        assert fake_connection.sent == [("PSUBSCRIBE", "news.*"), ("PUNSUBSCRIBE", "news.*")]
        assert reason == TerminationReason.DRAINED
        assert fake_connection.disconnects == 0

    async def test_listen_rejects_unsupported_verb(self, fake_connection, handler) -> None:
        with pytest.raises(UnsupportedCommandError):
            await listen(fake_connection, "GET", handler, "news")

        assert fake_connection.sent == []
