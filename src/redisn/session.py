"""Subscription session.

A session owns the single connection bound to one subscription lifetime. The
connection is taken from the pool at most once, shared by the handshake and
the dispatcher, and returned exactly once when the session ends.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from redisn.models import SessionState, TerminationReason
from redisn.observability import get_logger

logger = get_logger(__name__)


class SubscriptionSession:
    """Owns one pooled connection for the lifetime of a subscription.

    The pool is anything exposing ``get_connection()`` and
    ``release(connection)`` coroutines, such as
    ``redis.asyncio.ConnectionPool``.
    """

    def __init__(self, pool: Any, discard_on_error: bool = True):
        self.session_id = uuid4().hex
        self._pool = pool
        self._discard_on_error = discard_on_error
        self._connection: Any = None
        self._released = False

        self.state = SessionState.PENDING
        self.termination_reason: TerminationReason | None = None

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def released(self) -> bool:
        return self._released

    async def acquire(self) -> Any:
        """Take a connection from the pool, or return the one already bound.

        Raises:
            RuntimeError: If the session has already been released
        """
        if self._released:
            raise RuntimeError(f"session {self.session_id} is closed; start a new session")
        if self._connection is None:
            self._connection = await self._pool.get_connection()
            logger.debug("Connection acquired", session_id=self.session_id)
        return self._connection

    def mark_listening(self) -> None:
        self.state = SessionState.LISTENING

    async def release(self, reason: TerminationReason) -> bool:
        """Return the connection to the pool; later calls do nothing.

        After any ending other than a clean drain the connection may still be
        in subscribed mode, so it is disconnected first (when
        ``discard_on_error`` is set). The pool reconnects it on next use.

        Returns:
            True on the call that actually released
        """
        if self._released:
            return False
        self._released = True
        self.state = SessionState.TERMINATED
        self.termination_reason = reason

        connection, self._connection = self._connection, None
        if connection is None:
            return True

        discard = self._discard_on_error and reason != TerminationReason.DRAINED
        try:
            if discard:
                await connection.disconnect()
        finally:
            await self._pool.release(connection)

        logger.info(
            "Connection released",
            session_id=self.session_id,
            reason=reason.value,
            discarded=discard,
        )
        return True
