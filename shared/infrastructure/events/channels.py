"""
Redis Channel Naming.
"""

from __future__ import annotations

ORDERS_ADMIN_CHANNEL = "orders:admin"


def _validate_order_id(order_id: str) -> None:
    if not isinstance(order_id, str) or not order_id or ":" in order_id or "*" in order_id:
        raise ValueError(f"order_id must be a plain non-empty string, got {order_id!r}")


def channel_order(order_id: str) -> str:
    """Channel carrying one order's row changes and history inserts (tracking page)."""
    _validate_order_id(order_id)
    return f"order:{order_id}"


def channel_orders_admin() -> str:
    """Channel for the admin order board (new orders, status changes)."""
    return ORDERS_ADMIN_CHANNEL
