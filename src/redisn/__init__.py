"""redisn: publish/subscribe notifications over pooled Redis connections.

This package contains:
- client: NotificationClient and the connection-level listen/unlisten helpers
- commands: verb and key validation
- handshake: the subscribe acknowledgement exchange
- dispatcher: the background task delivering push messages to a handler
- session: ownership of the one pooled connection per subscription
- replies: decoding of raw replies into push events
- models: Pydantic data models
- config: Configuration management
- observability: Structured logging
"""

from .client import NotificationClient, listen, unlisten
from .dispatcher import Handler, NotificationDispatcher
from .errors import (
    ClientClosedError,
    InvalidKeysError,
    NoActiveSessionError,
    PubSubError,
    SessionActiveError,
    SubscribeInProgressError,
    SubscriptionFailedError,
    TransportError,
    UnexpectedReplyError,
    UnsupportedCommandError,
)
from .models import SessionState, TerminationReason, Verb

__version__ = "0.1.0"

__all__ = [
    "NotificationClient",
    "NotificationDispatcher",
    "Handler",
    "listen",
    "unlisten",
    "Verb",
    "SessionState",
    "TerminationReason",
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
