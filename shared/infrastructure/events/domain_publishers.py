"""
Domain-Specific Event Publishing Functions.

Routes order events to the channels their consumers listen on:

    ORDER_CREATED           -> orders:admin
    ORDER_STATUS_CHANGED    -> order:{id} and orders:admin
    ORDER_HISTORY_APPENDED  -> order:{id}
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as redis

from .channels import channel_order, channel_orders_admin
from .event_schema import Event
from .event_types import ORDER_CREATED, ORDER_STATUS_CHANGED, ORDER_HISTORY_APPENDED
from .publisher import publish_event


def _channels_for(event_type: str, order_id: str) -> list[str]:
    channels = []
    if event_type in (ORDER_STATUS_CHANGED, ORDER_HISTORY_APPENDED):
        channels.append(channel_order(order_id))
    if event_type in (ORDER_CREATED, ORDER_STATUS_CHANGED):
        channels.append(channel_orders_admin())
    return channels


async def publish_order_event(
    redis_client: redis.Redis,
    event_type: str,
    order_id: str,
    entity: dict[str, Any] | None = None,
    actor_user_id: int | None = None,
    actor_role: str | None = None,
) -> int:
    """
    Publish an order event to every channel interested in its type.

    Returns the total number of subscribers reached.
    """
    event = Event(
        type=event_type,
        order_id=order_id,
        entity={"order_id": order_id, **(entity or {})},
        actor={"user_id": actor_user_id, "role": actor_role or ("staff" if actor_user_id else "customer")},
    )

    delivered = 0
    for channel in _channels_for(event_type, order_id):
        delivered += await publish_event(redis_client, channel, event)
    return delivered
