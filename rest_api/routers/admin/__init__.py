"""
Admin API router - combines all admin sub-routers.

- orders: Order board, details, status transitions, cancellation notices
- categories: Category CRUD
- menu_items: Menu item and complement group CRUD
- customers: Customer search and CRUD
- users: Staff users, roles and permissions
- settings: Restaurant configuration and delivery zones
- dashboard: Home page counters
- audit: Audit log viewing

All routes are prefixed with /api/admin
"""

from fastapi import APIRouter

from .orders import router as orders_router
from .categories import router as categories_router
from .menu_items import router as menu_items_router
from .customers import router as customers_router
from .users import router as users_router
from .settings import router as settings_router
from .dashboard import router as dashboard_router
from .audit import router as audit_router


router = APIRouter()

# Operations (the board route precedes /orders/{order_id})
router.include_router(orders_router)
router.include_router(dashboard_router)

# Catalog
router.include_router(categories_router)
router.include_router(menu_items_router)

# People
router.include_router(customers_router)
router.include_router(users_router)

# Store configuration and audit
router.include_router(settings_router)
router.include_router(audit_router)


__all__ = ["router"]
