"""
Order management endpoints: board, listing, details, status transitions
and cancellation notices.
"""

from typing import Optional

import redis.asyncio as redis

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Pagination, Permissions, Session,
    get_db, get_pagination, require_permission,
)
from shared.infrastructure.events import get_redis
from shared.utils.admin_schemas import (
    CancellationMessageRequest,
    OrderBoardOutput,
    OrderDetailOutput,
    OrderTransitionRequest,
    OrderTransitionResponse,
    WhatsAppLinkOutput,
)
from shared.utils.schemas import OrderOutput, OrderStatusValue
from rest_api.services.domain import OrderService, publish_transition, to_order_output


router = APIRouter(tags=["admin-orders"])

require_orders = require_permission(Permissions.MANAGE_ORDERS)


@router.get("/orders/board", response_model=OrderBoardOutput)
def order_board(
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_orders),
) -> OrderBoardOutput:
    """Recent orders grouped by status."""
    return OrderService(db).board()


@router.get("/orders", response_model=list[OrderOutput])
def list_orders(
    status: Optional[OrderStatusValue] = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_orders),
) -> list[OrderOutput]:
    """Orders newest first, optionally filtered by status."""
    orders = OrderService(db).list_orders(
        status,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [to_order_output(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderDetailOutput)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_orders),
) -> OrderDetailOutput:
    """Order with items, history and the transitions this user may apply."""
    return OrderService(db).detail(order_id, authz)


@router.post("/orders/{order_id}/transition", response_model=OrderTransitionResponse)
async def transition_order(
    order_id: str,
    body: OrderTransitionRequest,
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
    authz: AuthorizationSession = Depends(require_orders),
) -> OrderTransitionResponse:
    """
    Move the order one step along its lifecycle.

    400 for an edge the state machine does not allow, 409 when another
    user changed the order first. The customer notification link is
    returned for forward steps (never for cancellation).
    """
    result = OrderService(db).transition(order_id, body.status, authz, notes=body.notes)

    await publish_transition(redis_client, result)

    notification = result.notification
    return OrderTransitionResponse(
        order=to_order_output(result.order),
        notification=(
            WhatsAppLinkOutput(url=notification.url, message=notification.message)
            if notification
            else None
        ),
    )


@router.post("/orders/{order_id}/cancellation-message", response_model=Optional[WhatsAppLinkOutput])
def cancellation_message(
    order_id: str,
    body: CancellationMessageRequest,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_orders),
) -> Optional[WhatsAppLinkOutput]:
    """
    Compose the customer notice for a cancelled order.

    Returns null when WhatsApp notifications are disabled.
    """
    message = OrderService(db).cancellation_message(order_id, body.explanation, authz)
    if message is None:
        return None
    return WhatsAppLinkOutput(url=message.url, message=message.message)
