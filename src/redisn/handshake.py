"""Subscribe handshake.

The command goes out once with every key; the server then answers with one
acknowledgement per key. The first is read as the reply to the command, the
rest with bare reads.
"""

from __future__ import annotations

from typing import Any

from redisn.models import SubscribeAck, SubscriptionRequest
from redisn.observability import get_logger
from redisn.replies import check_subscribe_ack

logger = get_logger(__name__)


async def perform_handshake(connection: Any, request: SubscriptionRequest) -> list[SubscribeAck]:
    """Send a subscribe request and validate its acknowledgements.

    Exactly ``len(request.keys)`` reads are issued.

    Args:
        connection: Connection exposing ``send_command`` and ``read_response``
        request: Validated subscribe request

    Returns:
        One acknowledgement per key, in order

    Raises:
        SubscriptionFailedError: If an acknowledgement does not confirm
        redis.exceptions.RedisError: On any transport failure
    """
    await connection.send_command(*request.args())

    acks: list[SubscribeAck] = []
    for key in request.keys:
        reply = await connection.read_response()
        ack = check_subscribe_ack(reply, key)
        logger.debug(
            "Subscription acknowledged",
            verb=ack.verb,
            key=ack.key,
            count=ack.count,
        )
        acks.append(ack)

    return acks
