"""Push event models decoded from a subscribed connection.

Every value read from a connection in subscribed mode is decoded into
exactly one of these variants, tagged by ``kind``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import Field

from .base import RedisNBaseModel


class SubscribeAck(RedisNBaseModel):
    """Acknowledgement of one key of a SUBSCRIBE/PSUBSCRIBE."""

    kind: Literal["subscribe_ack"] = "subscribe_ack"
    verb: str
    key: str
    count: int = Field(description="Subscriptions held by the connection")


class DataMessage(RedisNBaseModel):
    """A message published to a subscribed channel."""

    kind: Literal["message"] = "message"
    channel: str
    payload: str


class PatternMessage(RedisNBaseModel):
    """A message delivered through a pattern subscription."""

    kind: Literal["pmessage"] = "pmessage"
    pattern: str
    channel: str
    payload: str


class UnsubscribeAck(RedisNBaseModel):
    """Acknowledgement of an UNSUBSCRIBE/PUNSUBSCRIBE.

    ``channel`` is None when the server had nothing of that kind left to
    remove.
    """

    kind: Literal["unsubscribe_ack"] = "unsubscribe_ack"
    verb: str
    channel: str | None = None
    remaining: int = Field(ge=0, description="Subscriptions still held")

    @property
    def drained(self) -> bool:
        return self.remaining == 0


class MalformedReply(RedisNBaseModel):
    """A reply of unrecognised shape or kind."""

    kind: Literal["malformed"] = "malformed"
    raw: Any = None
    reason: str


PushEvent = Annotated[
    Union[SubscribeAck, DataMessage, PatternMessage, UnsubscribeAck, MalformedReply],
    Field(discriminator="kind"),
]
