"""
Public order endpoints: checkout and tracking.

The tracking page is addressed by the order id alone; knowing the id is
the access grant.
"""

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import get_redis
from shared.security.rate_limit import limiter
from shared.utils.schemas import CheckoutRequest, CheckoutResponse, OrderTrackingOutput
from rest_api.services.domain import (
    OrderService,
    OrderTrackingService,
    publish_checkout,
    to_order_output,
)


router = APIRouter(prefix="/api/public", tags=["public-orders"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.checkout_rate_limit)
async def checkout(
    request: Request,
    body: CheckoutRequest,
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
) -> CheckoutResponse:
    """
    Place an order.

    The cart is re-priced server-side and the order, its items and the
    first history row are written in one transaction. The admin board is
    notified after commit.
    """
    result = OrderService(db).checkout(body)

    await publish_checkout(redis_client, result)

    return CheckoutResponse(
        order=to_order_output(result.order),
        tracking_url=result.tracking_url,
        customer_whatsapp_link=result.confirmation.url if result.confirmation else None,
        store_whatsapp_link=result.store_alert.url if result.store_alert else None,
    )


@router.get("/orders/{order_id}", response_model=OrderTrackingOutput)
def get_order_tracking(order_id: str, db: Session = Depends(get_db)) -> OrderTrackingOutput:
    """Order with customer, items and full status history (oldest first)."""
    return OrderTrackingService(db).load(order_id)
