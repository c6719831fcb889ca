"""Pub/sub client over a Redis connection pool.

Usage:
    async with NotificationClient.from_settings() as client:
        await client.subscribe("SUBSCRIBE", handler, "news")
        ...
        await client.unsubscribe("UNSUBSCRIBE", "news")
        await client.wait()

``subscribe`` returns as soon as every key is acknowledged; messages are
delivered afterwards by a background dispatcher. The session ends when the
server reports no subscriptions left, when the dispatcher hits an error
(delivered to the handler), or when the client is closed.

A client holds at most one session at a time and is not safe for
concurrent ``subscribe`` calls: a second call while a handshake is in
flight raises SubscribeInProgressError.
"""

from __future__ import annotations

import asyncio
from typing import Any

from redisn.commands import build_subscription_request, build_unsubscribe_request
from redisn.config import PubSubSettings, Settings, get_settings
from redisn.dispatcher import Handler, NotificationDispatcher
from redisn.errors import (
    ClientClosedError,
    NoActiveSessionError,
    SessionActiveError,
    SubscribeInProgressError,
)
from redisn.handshake import perform_handshake
from redisn.models import (
    SessionState,
    SessionStats,
    SubscriptionRequest,
    TerminationReason,
)
from redisn.observability import SessionContext, get_logger
from redisn.pool import create_connection_pool
from redisn.session import SubscriptionSession

logger = get_logger(__name__)


class NotificationClient:
    """Subscribe/unsubscribe front end for one subscription session at a time."""

    def __init__(
        self,
        pool: Any,
        settings: PubSubSettings | None = None,
        owns_pool: bool = False,
    ):
        """Initialize the client.

        Args:
            pool: Pool exposing ``get_connection()`` and ``release()``
            settings: Session settings (defaults to get_settings().pubsub)
            owns_pool: Disconnect the pool on aclose()
        """
        self._pool = pool
        self._settings = settings or get_settings().pubsub
        self._owns_pool = owns_pool

        self._session: SubscriptionSession | None = None
        self._dispatcher: NotificationDispatcher | None = None
        self._request: SubscriptionRequest | None = None
        self._subscribing = False
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> NotificationClient:
        """Create a client with its own connection pool."""
        settings = settings or get_settings()
        pool = create_connection_pool(settings.redis)
        return cls(pool, settings.pubsub, owns_pool=True)

    @property
    def active(self) -> bool:
        """Whether a session is currently listening."""
        return self._dispatcher is not None and not self._dispatcher.done

    @property
    def state(self) -> SessionState | None:
        if self._subscribing:
            return SessionState.PENDING
        if self._dispatcher is not None:
            return self._dispatcher.state
        if self._session is not None:
            return self._session.state
        return None

    async def subscribe(self, verb: str, handler: Handler, *keys: str) -> None:
        """Subscribe to channels (SUBSCRIBE) or patterns (PSUBSCRIBE).

        Args:
            verb: SUBSCRIBE or PSUBSCRIBE, any case
            handler: Called as handler(channel, payload, error) for every
                message; a call with an error is the last one
            keys: One or more unique channel names or patterns

        Raises:
            UnsupportedCommandError: For any other verb (no I/O performed)
            InvalidKeysError: For an empty, non-string or repeated key list
            SubscribeInProgressError: If another subscribe is mid-handshake
            SessionActiveError: If a session is already listening
            SubscriptionFailedError: If the server does not confirm a key
            ClientClosedError: If the client is closed before or during the
                handshake; the connection is released
            redis.exceptions.RedisError: On transport failure
        """
        request = build_subscription_request(verb, keys)
        if self._closed:
            raise ClientClosedError()
        if self._subscribing:
            raise SubscribeInProgressError()
        if self.active:
            raise SessionActiveError(self._session.session_id)

        self._subscribing = True
        try:
            session = SubscriptionSession(
                self._pool,
                discard_on_error=self._settings.discard_connection_on_error,
            )
            with SessionContext(session.session_id):
                connection = await self._handshake(session, request)
                if self._closed:
                    await session.release(TerminationReason.CANCELLED)
                    raise ClientClosedError()

                dispatcher = NotificationDispatcher(
                    connection,
                    handler,
                    on_terminate=session.release,
                    session_id=session.session_id,
                )
                session.mark_listening()
                self._session = session
                self._dispatcher = dispatcher
                self._request = request
                # Started inside the context so the task logs with the session id
                dispatcher.start()

                logger.info(
                    "Subscription established",
                    verb=request.verb.value,
                    keys=list(request.keys),
                )
        finally:
            self._subscribing = False

    async def _handshake(self, session: SubscriptionSession, request: SubscriptionRequest) -> Any:
        try:
            connection = await session.acquire()
            await perform_handshake(connection, request)
        except asyncio.CancelledError:
            await session.release(TerminationReason.CANCELLED)
            raise
        except Exception as e:
            logger.warning(
                "Subscription handshake failed",
                verb=request.verb.value,
                keys=list(request.keys),
                error=str(e),
            )
            await session.release(TerminationReason.HANDSHAKE_FAILED)
            raise
        return connection

    async def unsubscribe(self, verb: str, *keys: str) -> None:
        """Send UNSUBSCRIBE or PUNSUBSCRIBE without waiting for a reply.

        The acknowledgements are consumed by the dispatcher, which ends the
        session once none remain. With no keys, everything of that kind is
        unsubscribed.

        Raises:
            UnsupportedCommandError: For any other verb (no I/O performed)
            NoActiveSessionError: If no session is listening
            redis.exceptions.RedisError: On transport failure
        """
        request = build_unsubscribe_request(verb, keys)
        if not self.active:
            raise NoActiveSessionError()

        await self._session.connection.send_command(*request.args())
        with SessionContext(self._session.session_id):
            logger.info(
                "Unsubscribe sent",
                verb=request.verb.value,
                keys=list(request.keys),
            )

    async def wait(self) -> TerminationReason | None:
        """Wait until the current session ends.

        Returns:
            Why it ended, or None if there has been no session
        """
        if self._dispatcher is None:
            return None
        return await self._dispatcher.wait()

    async def aclose(self) -> None:
        """Stop a listening session and release its connection.

        A subscribe still mid-handshake releases its connection and raises
        ClientClosedError once the handshake returns.
        """
        self._closed = True
        dispatcher = self._dispatcher
        if dispatcher is not None and not dispatcher.finished:
            dispatcher.cancel()
            try:
                await asyncio.wait_for(
                    dispatcher.wait(),
                    timeout=self._settings.shutdown_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Dispatcher did not stop in time",
                    session_id=dispatcher.session_id,
                    timeout_seconds=self._settings.shutdown_timeout_seconds,
                )

        if self._owns_pool:
            await self._pool.disconnect()

    def get_stats(self) -> SessionStats:
        """Get statistics for the current (or last) session."""
        if self._session is None:
            return SessionStats()

        return SessionStats(
            session_id=self._session.session_id,
            state=self.state,
            verb=self._request.verb.value if self._request else None,
            keys=self._request.keys if self._request else (),
            messages_dispatched=self._dispatcher.messages_dispatched if self._dispatcher else 0,
            termination_reason=self._session.termination_reason,
        )

    async def __aenter__(self) -> NotificationClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


async def listen(connection: Any, verb: str, handler: Handler, *keys: str) -> NotificationDispatcher:
    """Subscribe on a connection the caller manages.

    No pool is involved: the caller keeps ownership of the connection and is
    responsible for it once the returned dispatcher is done.

    Returns:
        The started dispatcher
    """
    request = build_subscription_request(verb, keys)
    await perform_handshake(connection, request)
    dispatcher = NotificationDispatcher(connection, handler)
    dispatcher.start()
    return dispatcher


async def unlisten(connection: Any, verb: str, *keys: str) -> None:
    """Send UNSUBSCRIBE or PUNSUBSCRIBE on a caller-managed connection."""
    request = build_unsubscribe_request(verb, keys)
    await connection.send_command(*request.args())
