"""Subscription session state models."""

from enum import Enum

from pydantic import Field

from .base import RedisNBaseModel


class SessionState(str, Enum):
    """Lifecycle of a subscription session."""

    PENDING = "PENDING"  # created, handshake not yet complete
    LISTENING = "LISTENING"
    TERMINATED = "TERMINATED"


class TerminationReason(str, Enum):
    """Why a session ended."""

    DRAINED = "DRAINED"
    UNEXPECTED_REPLY = "UNEXPECTED_REPLY"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    CANCELLED = "CANCELLED"
    HANDSHAKE_FAILED = "HANDSHAKE_FAILED"


class SessionStats(RedisNBaseModel):
    """Point-in-time view of a client's current session."""

    session_id: str | None = None
    state: SessionState | None = None
    verb: str | None = None
    keys: tuple[str, ...] = Field(default_factory=tuple)
    messages_dispatched: int = 0
    termination_reason: TerminationReason | None = None
