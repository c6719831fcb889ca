"""Exceptions raised by the pub/sub layer.

Transport failures are not wrapped: anything the redis client raises
(connection loss, timeouts, error replies) surfaces as the original
``redis.exceptions.RedisError``, re-exported here as ``TransportError``.
"""

from __future__ import annotations

from typing import Any, Sequence

from redis.exceptions import RedisError as TransportError


class PubSubError(Exception):
    """Base class for all pub/sub errors."""


class UnsupportedCommandError(PubSubError):
    """The verb is not one of the commands accepted by the operation."""

    def __init__(self, command: str, operation: str, supported: Sequence[str]):
        self.command = command
        self.operation = operation
        self.supported = tuple(supported)
        alternatives = " or ".join(f"'{s}'" for s in self.supported)
        super().__init__(
            f"the given command '{command}' is not supported by {operation}. "
            f"Please use {alternatives}"
        )


class InvalidKeysError(PubSubError, ValueError):
    """The key list of a request is empty, contains non-strings, or repeats a key."""


class SubscriptionFailedError(PubSubError):
    """A handshake acknowledgement did not confirm the subscription."""

    def __init__(self, key: str | None, reply: Any = None):
        self.key = key
        self.reply = reply
        super().__init__(f"failed to subscribe to key: {key}")


class UnexpectedReplyError(PubSubError):
    """A value of unrecognised shape or kind arrived while listening."""

    def __init__(self, raw: Any, reason: str):
        self.raw = raw
        self.reason = reason
        super().__init__(f"received an unexpected reply ({reason}): {raw!r}")


class NoActiveSessionError(PubSubError):
    """Unsubscribe was attempted with no listening session."""

    def __init__(self) -> None:
        super().__init__("no active subscription session; subscribe first")


class SessionActiveError(PubSubError):
    """Subscribe was attempted while a session is already listening."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            f"subscription session {session_id} is still listening; "
            "unsubscribe or close it before starting another"
        )


class SubscribeInProgressError(PubSubError):
    """A second subscribe was started before the first handshake completed."""

    def __init__(self) -> None:
        super().__init__(
            "a subscribe handshake is already in progress on this client; "
            "concurrent subscribe calls are not supported"
        )


class ClientClosedError(PubSubError):
    """Subscribe was attempted on, or completed after, a closed client."""

    def __init__(self) -> None:
        super().__init__("the client has been closed")


__all__ = [
    "PubSubError",
    "UnsupportedCommandError",
    "InvalidKeysError",
    "SubscriptionFailedError",
    "UnexpectedReplyError",
    "NoActiveSessionError",
    "SessionActiveError",
    "SubscribeInProgressError",
    "ClientClosedError",
    "TransportError",
]
