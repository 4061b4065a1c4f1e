"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class and AuditMixin
- catalog: Category, MenuItem, ComplementGroup, ComplementOption, MenuItemComplement
- customer: Customer
- order: Order, OrderItem, OrderItemComplement, OrderStatusHistory
- user: User, UserRole, UserPermission
- config: RestaurantConfig, DeliveryZone
- audit: AuditLog
"""

# Base classes
from .base import Base, AuditMixin, utcnow, as_utc

# Catalog (menu structure)
from .catalog import Category, MenuItem, ComplementGroup, ComplementOption, MenuItemComplement

# Customers
from .customer import Customer

# Orders
from .order import Order, OrderItem, OrderItemComplement, OrderStatusHistory

# Users and grants
from .user import User, UserRole, UserPermission

# Store configuration
from .config import RestaurantConfig, DeliveryZone, RESTAURANT_CONFIG_ID

# Audit
from .audit import AuditLog


__all__ = [
    # Base
    "Base",
    "AuditMixin",
    "utcnow",
    "as_utc",
    # Catalog
    "Category",
    "MenuItem",
    "ComplementGroup",
    "ComplementOption",
    "MenuItemComplement",
    # Customers
    "Customer",
    # Orders
    "Order",
    "OrderItem",
    "OrderItemComplement",
    "OrderStatusHistory",
    # Users
    "User",
    "UserRole",
    "UserPermission",
    # Config
    "RestaurantConfig",
    "DeliveryZone",
    "RESTAURANT_CONFIG_ID",
    # Audit
    "AuditLog",
]
