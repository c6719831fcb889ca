"""Notification dispatcher.

A background task that owns the read side of a subscribed connection. It
reads one reply at a time, classifies it, and calls the handler. It stops
on the first of:

- an unsubscribe acknowledgement reporting zero remaining subscriptions
- a reply of unexpected shape or kind (handler receives UnexpectedReplyError)
- a transport error (handler receives the error)
- cancellation (no handler call)

After an error-carrying handler call no further calls are made. The
``on_terminate`` callback runs exactly once, whichever way the loop ends.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from redisn.errors import UnexpectedReplyError
from redisn.models import (
    DataMessage,
    MalformedReply,
    PatternMessage,
    SessionState,
    TerminationReason,
    UnsubscribeAck,
)
from redisn.observability import get_logger, log_termination
from redisn.replies import decode_push

logger = get_logger(__name__)

# handler(channel, payload, error); may be a coroutine function
Handler = Callable[[str, str, BaseException | None], Awaitable[None] | None]
TerminateCallback = Callable[[TerminationReason], Awaitable[Any]]


class NotificationDispatcher:
    """Reads push events from one connection and hands them to a handler.

    Created only after a successful handshake, so it starts out LISTENING.
    The handler is never invoked concurrently with itself.
    """

    def __init__(
        self,
        connection: Any,
        handler: Handler,
        on_terminate: TerminateCallback | None = None,
        session_id: str | None = None,
    ):
        self._connection = connection
        self._handler = handler
        self._on_terminate = on_terminate
        self.session_id = session_id

        self._state = SessionState.LISTENING
        self._reason: TerminationReason | None = None
        self._task: asyncio.Task | None = None
        self._running = False
        self._cancel_requested = False
        self.messages_dispatched = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def termination_reason(self) -> TerminationReason | None:
        return self._reason

    @property
    def done(self) -> bool:
        return self._state == SessionState.TERMINATED

    @property
    def finished(self) -> bool:
        """Whether the task has ended, connection release included."""
        return self._task is None or self._task.done()

    def start(self) -> asyncio.Task:
        """Spawn the read loop as a task on the running event loop."""
        if self._task is not None:
            raise RuntimeError("dispatcher already started")
        name = f"redisn-dispatcher-{self.session_id}" if self.session_id else None
        self._task = asyncio.create_task(self._run(), name=name)
        return self._task

    def cancel(self) -> bool:
        """Force the loop to stop; the connection is still released.

        Returns:
            True if the loop had not already ended; False once it has
            terminated, even while the connection is still being released
        """
        if self._task is None or self._task.done() or self.done:
            return False
        self._cancel_requested = True
        # A task cancelled before its first step never runs _run at all;
        # an unstarted loop checks the flag instead
        if self._running:
            self._task.cancel()
        return True

    async def wait(self) -> TerminationReason | None:
        """Wait for the loop to end without cancelling it."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self._reason

    async def _run(self) -> None:
        reason = TerminationReason.CANCELLED
        error: BaseException | None = None
        self._running = True
        try:
            reason, error = await self._listen()
        finally:
            self._state = SessionState.TERMINATED
            self._reason = reason
            log_termination(
                logger,
                reason=reason.value,
                messages_dispatched=self.messages_dispatched,
                error=str(error) if error else None,
            )
            if self._on_terminate is not None:
                try:
                    # Outlives cancellation of this task so the connection goes back
                    await asyncio.shield(self._on_terminate(reason))
                except Exception:
                    logger.exception("Releasing session connection failed", reason=reason.value)

    async def _listen(self) -> tuple[TerminationReason, BaseException | None]:
        try:
            while not self._cancel_requested:
                try:
                    reply = await self._connection.read_response()
                except Exception as e:
                    await self._notify("", "", e)
                    return TerminationReason.TRANSPORT_ERROR, e

                event = decode_push(reply)

                if isinstance(event, (DataMessage, PatternMessage)):
                    # The matching pattern only classifies; it is not delivered
                    self.messages_dispatched += 1
                    await self._notify(event.channel, event.payload, None)
                    continue

                if isinstance(event, UnsubscribeAck):
                    logger.debug(
                        "Unsubscribe acknowledged",
                        verb=event.verb,
                        channel=event.channel,
                        remaining=event.remaining,
                    )
                    if event.drained:
                        return TerminationReason.DRAINED, None
                    continue

                if isinstance(event, MalformedReply):
                    error = UnexpectedReplyError(event.raw, event.reason)
                else:
                    error = UnexpectedReplyError(
                        reply, "subscribe acknowledgement outside a handshake"
                    )
                await self._notify("", "", error)
                return TerminationReason.UNEXPECTED_REPLY, error

            return TerminationReason.CANCELLED, None

        except asyncio.CancelledError:
            logger.info("Dispatcher cancelled")
            return TerminationReason.CANCELLED, None

    async def _notify(self, channel: str, payload: str, error: BaseException | None) -> None:
        try:
            result = self._handler(channel, payload, error)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Notification handler raised", channel=channel)
