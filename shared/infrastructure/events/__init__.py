"""
Event system for real-time order notifications via Redis pub/sub.

Modules:
- event_types.py: Event type constants
- event_schema.py: Event envelope with validation
- channels.py: Channel naming functions
- redis_pool.py: Connection pool management and FastAPI dependency
- publisher.py: Core publish_event with retry
- domain_publishers.py: Order event routing
- subscriber.py: Channel subscriptions feeding async callbacks
"""

from .event_types import (
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    ORDER_HISTORY_APPENDED,
    ORDER_EVENT_TYPES,
    MAX_EVENT_SIZE,
)
from .event_schema import Event
from .channels import channel_order, channel_orders_admin
from .redis_pool import get_redis_pool, get_redis, close_redis_pool
from .publisher import publish_event
from .domain_publishers import publish_order_event
from .subscriber import ChannelSubscription, EventCallback

__all__ = [
    # Event types
    "ORDER_CREATED",
    "ORDER_STATUS_CHANGED",
    "ORDER_HISTORY_APPENDED",
    "ORDER_EVENT_TYPES",
    "MAX_EVENT_SIZE",
    # Schema
    "Event",
    # Channels
    "channel_order",
    "channel_orders_admin",
    # Redis pool
    "get_redis_pool",
    "get_redis",
    "close_redis_pool",
    # Publishing
    "publish_event",
    "publish_order_event",
    # Subscribing
    "ChannelSubscription",
    "EventCallback",
]
