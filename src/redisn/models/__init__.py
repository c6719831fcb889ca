"""Data models for redisn.

All models follow these conventions:
- Models are immutable (frozen)
- Field names: lowercase snake_case
- Enums: uppercase SNAKE_CASE
"""

# Base
from .base import RedisNBaseModel

# Commands
from .commands import (
    SUBSCRIBE_VERBS,
    UNSUBSCRIBE_VERBS,
    SubscriptionRequest,
    UnsubscribeRequest,
    Verb,
)

# Push events
from .events import (
    DataMessage,
    MalformedReply,
    PatternMessage,
    PushEvent,
    SubscribeAck,
    UnsubscribeAck,
)

# Session state
from .session import (
    SessionState,
    SessionStats,
    TerminationReason,
)

__all__ = [
    "RedisNBaseModel",
    # Commands
    "Verb",
    "SUBSCRIBE_VERBS",
    "UNSUBSCRIBE_VERBS",
    "SubscriptionRequest",
    "UnsubscribeRequest",
    # Push events
    "PushEvent",
    "SubscribeAck",
    "DataMessage",
    "PatternMessage",
    "UnsubscribeAck",
    "MalformedReply",
    # Session state
    "SessionState",
    "SessionStats",
    "TerminationReason",
]
