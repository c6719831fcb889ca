"""Decoding of replies read from a subscribed connection.

Replies arrive as untyped arrays. Each element is type-checked before it is
used; anything that does not fit a known shape becomes a MalformedReply
instead of raising.
"""

from __future__ import annotations

from typing import Any

from redisn.errors import SubscriptionFailedError
from redisn.models import (
    DataMessage,
    MalformedReply,
    PatternMessage,
    PushEvent,
    SubscribeAck,
    UnsubscribeAck,
)

# Expected element count per reply kind
_ARITY = {
    "message": 3,
    "pmessage": 4,
    "subscribe": 3,
    "psubscribe": 3,
    "unsubscribe": 3,
    "punsubscribe": 3,
}


def _as_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return None


def _as_count(value: Any) -> int | None:
    # bool is an int subclass but never a valid count
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def decode_push(reply: Any) -> PushEvent:
    """Classify one reply as a push event.

    Args:
        reply: Value returned by a connection read

    Returns:
        The decoded event; MalformedReply when the reply has an
        unrecognised shape or kind
    """
    if not isinstance(reply, (list, tuple)) or not reply:
        return MalformedReply(raw=reply, reason="reply is not a non-empty array")

    kind = _as_str(reply[0])
    if kind is None:
        return MalformedReply(raw=reply, reason="reply kind is not a string")
    kind = kind.lower()

    arity = _ARITY.get(kind)
    if arity is None:
        return MalformedReply(raw=reply, reason=f"unknown reply kind '{kind}'")
    if len(reply) != arity:
        return MalformedReply(
            raw=reply,
            reason=f"'{kind}' reply has {len(reply)} elements, expected {arity}",
        )

    if kind == "message":
        channel, payload = _as_str(reply[1]), _as_str(reply[2])
        if channel is None or payload is None:
            return MalformedReply(raw=reply, reason="message channel or payload is not a string")
        return DataMessage(channel=channel, payload=payload)

    if kind == "pmessage":
        pattern, channel, payload = _as_str(reply[1]), _as_str(reply[2]), _as_str(reply[3])
        if pattern is None or channel is None or payload is None:
            return MalformedReply(raw=reply, reason="pmessage field is not a string")
        return PatternMessage(pattern=pattern, channel=channel, payload=payload)

    count = _as_count(reply[2])
    if count is None or count < 0:
        return MalformedReply(raw=reply, reason=f"'{kind}' count is not a non-negative integer")

    if kind in ("subscribe", "psubscribe"):
        key = _as_str(reply[1])
        if key is None:
            return MalformedReply(raw=reply, reason=f"'{kind}' key is not a string")
        return SubscribeAck(verb=kind, key=key, count=count)

    # unsubscribe / punsubscribe: the channel is nil when nothing was left to remove
    channel = _as_str(reply[1])
    if channel is None and reply[1] is not None:
        return MalformedReply(raw=reply, reason=f"'{kind}' channel is not a string")
    return UnsubscribeAck(verb=kind, channel=channel, remaining=count)


def check_subscribe_ack(reply: Any, expected_key: str) -> SubscribeAck:
    """Validate one handshake acknowledgement.

    The reply must be an array whose first element, upper-cased, ends with
    ``SUBSCRIBE``.

    Raises:
        SubscriptionFailedError: Naming the key from the reply's second
            element, or ``expected_key`` when the reply carries none
    """
    if isinstance(reply, (list, tuple)) and len(reply) >= 2:
        key = _as_str(reply[1]) or expected_key
    else:
        key = expected_key

    if not isinstance(reply, (list, tuple)) or not reply:
        raise SubscriptionFailedError(key, reply)

    verb = _as_str(reply[0])
    if verb is None or not verb.upper().endswith("SUBSCRIBE"):
        raise SubscriptionFailedError(key, reply)

    count = _as_count(reply[2]) if len(reply) >= 3 else None
    return SubscribeAck(verb=verb.lower(), key=key, count=count if count is not None else 0)
