"""
Domain Services - application layer.

Services contain business logic and orchestrate operations.
They use Repositories for data access and publish order events.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    # In router
    service = OrderService(db)
    result = service.checkout(body)
"""

from .config_service import ConfigService, accepting_orders, default_config
from .cart_service import (
    Cart,
    CartLine,
    CartService,
    ComplementSelection,
    LineKey,
    PricedCart,
    SelectedComplement,
    compute_delivery_fee,
)
from .customer_service import CustomerService
from .notification_service import NotificationService, WhatsAppMessage, tracking_url, whatsapp_link
from .order_service import (
    CheckoutResult,
    OrderService,
    TransitionResult,
    publish_checkout,
    publish_transition,
    to_order_output,
)
from .tracking_service import OrderBoardFeed, OrderTrackingFeed, OrderTrackingService
from .user_service import UserService, to_user_output
from .category_service import CategoryService
from .menu_item_service import MenuItemService
from .complement_service import ComplementGroupService
from .delivery_zone_service import DeliveryZoneService
from .dashboard_service import DashboardService

__all__ = [
    # Configuration
    "ConfigService",
    "accepting_orders",
    "default_config",
    # Cart / pricing
    "Cart",
    "CartLine",
    "CartService",
    "ComplementSelection",
    "LineKey",
    "PricedCart",
    "SelectedComplement",
    "compute_delivery_fee",
    # Orders
    "CustomerService",
    "NotificationService",
    "WhatsAppMessage",
    "tracking_url",
    "whatsapp_link",
    "CheckoutResult",
    "OrderService",
    "TransitionResult",
    "publish_checkout",
    "publish_transition",
    "to_order_output",
    # Tracking
    "OrderBoardFeed",
    "OrderTrackingFeed",
    "OrderTrackingService",
    # Staff
    "UserService",
    "to_user_output",
    # Catalog
    "CategoryService",
    "MenuItemService",
    "ComplementGroupService",
    "DeliveryZoneService",
    "DashboardService",
]
