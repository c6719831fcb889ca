"""Command models for entering and leaving a subscription session."""

from enum import Enum

from pydantic import Field

from .base import RedisNBaseModel


class Verb(str, Enum):
    """Pub/sub command verbs accepted by the client."""

    SUBSCRIBE = "SUBSCRIBE"
    PSUBSCRIBE = "PSUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    PUNSUBSCRIBE = "PUNSUBSCRIBE"


SUBSCRIBE_VERBS = (Verb.SUBSCRIBE, Verb.PSUBSCRIBE)
UNSUBSCRIBE_VERBS = (Verb.UNSUBSCRIBE, Verb.PUNSUBSCRIBE)


class SubscriptionRequest(RedisNBaseModel):
    """A SUBSCRIBE or PSUBSCRIBE with an ordered, non-empty list of unique keys."""

    verb: Verb
    keys: tuple[str, ...] = Field(min_length=1, description="Channels or patterns")

    def args(self) -> list[str]:
        """Command array as written to the wire."""
        return [self.verb.value, *self.keys]


class UnsubscribeRequest(RedisNBaseModel):
    """An UNSUBSCRIBE or PUNSUBSCRIBE; no keys means all of that kind."""

    verb: Verb
    keys: tuple[str, ...] = Field(default_factory=tuple)

    def args(self) -> list[str]:
        """Command array as written to the wire."""
        return [self.verb.value, *self.keys]
