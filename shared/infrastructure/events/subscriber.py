"""
Redis pub/sub subscription delivering parsed events to a callback.

A subscription owns one pubsub connection and one listener task. It must be
stopped explicitly; stop() cancels the listener, unsubscribes and releases
the connection, each cleanup step bounded by a timeout.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from .event_schema import Event

logger = get_logger(__name__)

EventCallback = Callable[[Event], Awaitable[None]]


class ChannelSubscription:
    """
    Subscription to a single Redis channel.

    Usage:
        sub = ChannelSubscription(redis_client, "order:abc", on_event)
        await sub.start()
        ...
        await sub.stop()
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        channel: str,
        on_event: EventCallback,
        *,
        accepted_types: frozenset[str] | None = None,
    ):
        self._redis = redis_client
        self._channel = channel
        self._on_event = on_event
        self._accepted_types = accepted_types
        self._pubsub = None
        self._task: asyncio.Task | None = None

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """
        Subscribe and start dispatching messages. Calling twice is a no-op.

        Raises:
            redis.RedisError, OSError: The subscribe failed; nothing is left open.
        """
        if self._pubsub is not None:
            return

        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(self._channel)
        except (redis.RedisError, OSError):
            await pubsub.aclose()
            raise

        self._pubsub = pubsub
        self._task = asyncio.create_task(self._listen(pubsub))
        logger.info("Redis subscription started", channel=self._channel)

    async def stop(self) -> None:
        """Cancel the listener and release the pubsub connection."""
        task, pubsub = self._task, self._pubsub
        self._task = None
        self._pubsub = None

        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if pubsub is None:
            return

        timeout = settings.redis_pubsub_cleanup_timeout
        try:
            await asyncio.wait_for(pubsub.unsubscribe(self._channel), timeout=timeout)
        except (asyncio.TimeoutError, redis.RedisError, OSError) as e:
            logger.warning("Redis unsubscribe failed", channel=self._channel, error=str(e))
        try:
            await asyncio.wait_for(pubsub.aclose(), timeout=timeout)
        except (asyncio.TimeoutError, redis.RedisError, OSError) as e:
            logger.warning("Redis pubsub close failed", channel=self._channel, error=str(e))

        logger.info("Redis subscription stopped", channel=self._channel)

    async def _listen(self, pubsub) -> None:
        try:
            async for msg in pubsub.listen():
                if msg is None or msg.get("type") != "message":
                    # Skip subscription confirmations
                    continue
                await self._dispatch(msg)
        except asyncio.CancelledError:
            raise
        except (redis.RedisError, OSError) as e:
            logger.error("Redis subscription lost", channel=self._channel, error=str(e))

    async def _dispatch(self, msg: dict) -> None:
        try:
            event = Event.from_json(msg["data"])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding malformed event", channel=self._channel, error=str(e))
            return

        if self._accepted_types is not None and event.type not in self._accepted_types:
            return

        try:
            await self._on_event(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A failing consumer must not kill the subscription
            logger.error(
                "Event callback failed",
                channel=self._channel,
                event_type=event.type,
                error=str(e),
                exc_info=True,
            )
