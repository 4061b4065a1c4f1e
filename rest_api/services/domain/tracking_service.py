"""
Order Tracking Feed.

The tracking page is addressed by order id only; holding the id is the
access grant. A viewer gets a one-shot snapshot (order, customer, items and
full history) and then a live feed of status changes and history rows for
that single order.

Usage:
    snapshot = OrderTrackingService(db).load(order_id)

    feed = OrderTrackingFeed(redis, on_event)
    await feed.subscribe(order_id)
    ...
    await feed.close()
"""

from __future__ import annotations

import redis.asyncio as redis
from sqlalchemy.orm import Session

from shared.config.logging import realtime_logger as logger
from shared.infrastructure.events import (
    ORDER_CREATED,
    ORDER_HISTORY_APPENDED,
    ORDER_STATUS_CHANGED,
    ChannelSubscription,
    EventCallback,
    channel_order,
    channel_orders_admin,
)
from shared.utils.schemas import OrderTrackingOutput
from .order_service import OrderService

TRACKING_EVENT_TYPES = frozenset({ORDER_STATUS_CHANGED, ORDER_HISTORY_APPENDED})
BOARD_EVENT_TYPES = frozenset({ORDER_CREATED, ORDER_STATUS_CHANGED})


class OrderTrackingService:
    def __init__(self, db: Session):
        self._orders = OrderService(db)

    def load(self, order_id: str) -> OrderTrackingOutput:
        """
        Order with customer and items plus its history, oldest first.

        Raises:
            OrderNotFoundError: If the id matches no order.
        """
        return self._orders.tracking_snapshot(order_id)


class OrderTrackingFeed:
    """
    Live feed of one order at a time.

    subscribe() with the current order is a no-op; with another order it
    replaces the subscription. close() must be called when the viewer leaves.
    """

    def __init__(self, redis_client: redis.Redis, on_event: EventCallback):
        self._redis = redis_client
        self._on_event = on_event
        self._order_id: str | None = None
        self._subscription: ChannelSubscription | None = None

    @property
    def order_id(self) -> str | None:
        return self._order_id

    @property
    def active(self) -> bool:
        return self._subscription is not None

    async def subscribe(self, order_id: str) -> None:
        if self._subscription is not None and self._order_id == order_id:
            return

        await self.close()
        subscription = ChannelSubscription(
            self._redis,
            channel_order(order_id),
            self._on_event,
            accepted_types=TRACKING_EVENT_TYPES,
        )
        await subscription.start()
        self._subscription = subscription
        self._order_id = order_id
        logger.debug("Tracking feed subscribed", order_id=order_id)

    async def close(self) -> None:
        subscription, self._subscription = self._subscription, None
        order_id, self._order_id = self._order_id, None
        if subscription is not None:
            await subscription.stop()
            logger.debug("Tracking feed closed", order_id=order_id)


class OrderBoardFeed:
    """New orders and status changes for the staff order board."""

    def __init__(self, redis_client: redis.Redis, on_event: EventCallback):
        self._subscription = ChannelSubscription(
            redis_client,
            channel_orders_admin(),
            on_event,
            accepted_types=BOARD_EVENT_TYPES,
        )

    async def start(self) -> None:
        await self._subscription.start()

    async def close(self) -> None:
        await self._subscription.stop()
