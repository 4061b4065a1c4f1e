"""
Dashboard counters for the admin home page.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Category, Customer, MenuItem, Order, utcnow
from shared.config.constants import OrderStatus
from shared.utils.admin_schemas import DashboardStatsOutput
from .order_service import order_query, to_order_output


class DashboardService:
    def __init__(self, db: Session):
        self._db = db

    def _count(self, model) -> int:
        return self._db.scalar(
            select(func.count()).select_from(model).where(model.is_active.is_(True))
        ) or 0

    def stats(self, now: datetime | None = None, recent: int = 5) -> DashboardStatsOutput:
        """
        Totals plus today's orders and revenue.

        Revenue counts every order created today except cancelled ones.
        """
        now = now or utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        orders_today, revenue_today = self._db.execute(
            select(
                func.count(Order.id),
                func.coalesce(
                    func.sum(Order.total_cents).filter(Order.status != OrderStatus.CANCELED),
                    0,
                ),
            ).where(Order.created_at >= start_of_day)
        ).one()

        pending = self._db.scalar(
            select(func.count(Order.id)).where(Order.status == OrderStatus.PENDING)
        ) or 0

        recent_orders = self._db.scalars(
            order_query().order_by(Order.created_at.desc(), Order.id).limit(recent)
        ).all()

        return DashboardStatsOutput(
            total_customers=self._count(Customer),
            total_menu_items=self._count(MenuItem),
            total_categories=self._count(Category),
            orders_today=orders_today or 0,
            revenue_today_cents=revenue_today or 0,
            pending_orders=pending,
            recent_orders=[to_order_output(o) for o in recent_orders],
        )
