"""Command validation.

Only four verbs are accepted, case-insensitively: SUBSCRIBE and PSUBSCRIBE
to enter a session, UNSUBSCRIBE and PUNSUBSCRIBE to leave one. Validation
never touches a connection.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from redisn.errors import InvalidKeysError, UnsupportedCommandError
from redisn.models import (
    SUBSCRIBE_VERBS,
    UNSUBSCRIBE_VERBS,
    SubscriptionRequest,
    UnsubscribeRequest,
    Verb,
)


def _validate_verb(verb: str, allowed: Sequence[Verb], operation: str) -> Verb:
    normalized = verb.upper() if isinstance(verb, str) else None
    for candidate in allowed:
        if normalized == candidate.value:
            return candidate
    raise UnsupportedCommandError(
        command=str(verb),
        operation=operation,
        supported=[v.value for v in allowed],
    )


def validate_subscribe_verb(verb: str) -> Verb:
    """Return the subscribe-family verb, or raise UnsupportedCommandError."""
    return _validate_verb(verb, SUBSCRIBE_VERBS, "subscribe")


def validate_unsubscribe_verb(verb: str) -> Verb:
    """Return the unsubscribe-family verb, or raise UnsupportedCommandError."""
    return _validate_verb(verb, UNSUBSCRIBE_VERBS, "unsubscribe")


def validate_keys(keys: Iterable[str], allow_empty: bool = False) -> tuple[str, ...]:
    """Check a key list and return it as a tuple.

    Duplicate keys are rejected: the server acknowledges each key
    separately, and a repeated key makes the acknowledgement count
    ambiguous.

    Args:
        keys: Channel names or patterns, in order
        allow_empty: Whether an empty list is acceptable

    Returns:
        The keys, order preserved

    Raises:
        InvalidKeysError: On an empty list (unless allowed), a non-string
            key, or a repeated key
    """
    result = tuple(keys)
    if not result and not allow_empty:
        raise InvalidKeysError("at least one key is required")

    seen: set[str] = set()
    for key in result:
        if not isinstance(key, str):
            raise InvalidKeysError(f"keys must be strings, got {type(key).__name__}: {key!r}")
        if key in seen:
            raise InvalidKeysError(f"duplicate key in request: {key}")
        seen.add(key)
    return result


def build_subscription_request(verb: str, keys: Iterable[str]) -> SubscriptionRequest:
    """Validate a subscribe call and build its request."""
    validated = validate_subscribe_verb(verb)
    return SubscriptionRequest(verb=validated, keys=validate_keys(keys))


def build_unsubscribe_request(verb: str, keys: Iterable[str]) -> UnsubscribeRequest:
    """Validate an unsubscribe call and build its request."""
    validated = validate_unsubscribe_verb(verb)
    return UnsubscribeRequest(verb=validated, keys=validate_keys(keys, allow_empty=True))
