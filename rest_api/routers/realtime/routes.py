"""
WebSocket endpoints.

- /ws/orders/{order_id}: public tracking page. Sends a SNAPSHOT message,
  then forwards ORDER_STATUS_CHANGED / ORDER_HISTORY_APPENDED events for
  that order until the viewer leaves.
- /ws/admin/orders?token=: staff order board. Requires manage_orders and
  is closed with 4403 as soon as that permission is revoked.

Clients may send "ping" and receive "pong"; nothing else is expected from
them.
"""

import asyncio

import redis.asyncio as redis
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import sessionmaker

from shared.config.constants import Permissions
from shared.config.logging import realtime_logger as logger
from shared.infrastructure.db import get_session_factory
from shared.infrastructure.events import Event, get_redis
from shared.security.auth import verify_jwt
from shared.utils.exceptions import OrderNotFoundError
from rest_api.services.domain import OrderBoardFeed, OrderTrackingFeed, OrderTrackingService
from rest_api.services.permissions import AuthorizationSession, DatabasePermissionLoader


router = APIRouter(tags=["realtime"])

MAX_MESSAGE_SIZE = 64 * 1024  # 64KB

WS_CLOSE_AUTH_FAILED = 4001
WS_CLOSE_FORBIDDEN = 4403
WS_CLOSE_NOT_FOUND = 4404
WS_CLOSE_MESSAGE_TOO_LARGE = 1009


async def _serve_client_messages(websocket: WebSocket, **log_context) -> None:
    """Answer heartbeats until the client disconnects or misbehaves."""
    while True:
        data = await websocket.receive_text()

        if len(data) > MAX_MESSAGE_SIZE:
            logger.warning("WebSocket message too large", size=len(data), **log_context)
            await websocket.close(code=WS_CLOSE_MESSAGE_TOO_LARGE, reason="Message too large")
            return

        if data == "ping" or data == '{"type":"ping"}':
            await websocket.send_text("pong")
        else:
            logger.debug("Unknown WebSocket message", message=data[:100], **log_context)


async def _subscribe_live_updates(feed: OrderTrackingFeed, order_id: str) -> None:
    try:
        await feed.subscribe(order_id)
    except (redis.RedisError, OSError) as e:
        logger.warning("Tracking feed unavailable, sending snapshot only", order_id=order_id, error=str(e))


@router.websocket("/ws/orders/{order_id}")
async def order_tracking_ws(
    websocket: WebSocket,
    order_id: str,
    session_factory: sessionmaker = Depends(get_session_factory),
    redis_client: redis.Redis = Depends(get_redis),
):
    """
    Tracking feed for one order.

    The feed is subscribed before the snapshot is read so no change falls
    between the two; events wait until the snapshot has been sent. When
    Redis is unreachable the viewer still gets the snapshot, without live
    updates.
    """
    await websocket.accept()
    snapshot_sent = asyncio.Event()

    async def forward(event: Event) -> None:
        await snapshot_sent.wait()
        await websocket.send_json(event.to_dict())

    feed = OrderTrackingFeed(redis_client, forward)
    try:
        try:
            await _subscribe_live_updates(feed, order_id)
            with session_factory() as db:
                snapshot = OrderTrackingService(db).load(order_id)
        except (ValueError, OrderNotFoundError):
            await websocket.send_json({"type": "NOT_FOUND", "order_id": order_id})
            await websocket.close(code=WS_CLOSE_NOT_FOUND, reason="Pedido não encontrado")
            return

        await websocket.send_json({"type": "SNAPSHOT", "data": snapshot.model_dump(mode="json")})
        snapshot_sent.set()
        logger.info("Tracking viewer connected", order_id=order_id)

        await _serve_client_messages(websocket, order_id=order_id)
    except WebSocketDisconnect:
        logger.info("Tracking viewer disconnected", order_id=order_id)
    finally:
        await feed.close()


@router.websocket("/ws/admin/orders")
async def admin_orders_ws(
    websocket: WebSocket,
    token: str = Query(..., description="JWT token"),
    session_factory: sessionmaker = Depends(get_session_factory),
    redis_client: redis.Redis = Depends(get_redis),
):
    """New orders and status changes for staff holding manage_orders."""
    try:
        claims = verify_jwt(token)
    except HTTPException as e:
        await websocket.close(code=WS_CLOSE_AUTH_FAILED, reason=str(e.detail))
        return

    user_id = int(claims["sub"])
    authz = AuthorizationSession(DatabasePermissionLoader(session_factory))
    authz.load_permissions(user_id)
    if not authz.has_permission(Permissions.MANAGE_ORDERS):
        logger.warning("Order board access denied", user_id=user_id)
        await websocket.close(code=WS_CLOSE_FORBIDDEN, reason="Permissão insuficiente")
        return

    await websocket.accept()

    # Grant reloads run in whichever thread emitted the auth event
    loop = asyncio.get_running_loop()
    revoked = asyncio.Event()

    def on_reload(session: AuthorizationSession) -> None:
        if not session.has_permission(Permissions.MANAGE_ORDERS):
            loop.call_soon_threadsafe(revoked.set)

    authz.on_reload(on_reload)
    authz.start()

    async def close_on_revoke() -> None:
        await revoked.wait()
        logger.info("Order board permission revoked, closing", user_id=user_id)
        await websocket.close(code=WS_CLOSE_FORBIDDEN, reason="Permissão revogada")

    async def forward(event: Event) -> None:
        if not revoked.is_set():
            await websocket.send_json(event.to_dict())

    feed = OrderBoardFeed(redis_client, forward)
    watcher = asyncio.create_task(close_on_revoke())
    try:
        await feed.start()
        logger.info("Order board connected", user_id=user_id, role=authz.role)
        await _serve_client_messages(websocket, user_id=user_id)
    except WebSocketDisconnect:
        logger.info("Order board disconnected", user_id=user_id)
    finally:
        watcher.cancel()
        authz.close()
        await feed.close()
