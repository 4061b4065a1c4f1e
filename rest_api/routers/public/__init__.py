"""
Public routers - No authentication required.
- /api/public/* - Menu, config, cart quote, checkout and order tracking
- /api/health - Health check
"""

from .catalog import router as catalog_router
from .health import router as health_router
from .orders import router as orders_router

__all__ = ["catalog_router", "health_router", "orders_router"]
