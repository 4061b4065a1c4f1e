"""
Centralized constants for the backend application.
Avoids magic strings for roles, permissions and order statuses.

Usage:
    from shared.config.constants import Roles, Permissions, OrderStatus

    if status == OrderStatus.PENDING:
        ...
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants. A user holds exactly one of these."""

    ADMIN: Final[str] = "admin"
    MANAGER: Final[str] = "gerente"
    ATTENDANT: Final[str] = "atendente"
    KITCHEN: Final[str] = "cozinha"

    ALL: Final[list[str]] = [ADMIN, MANAGER, ATTENDANT, KITCHEN]


# =============================================================================
# Permissions
# =============================================================================


class Permissions:
    """Permission tags assigned per user. Admin holds all of them implicitly."""

    VIEW_DASHBOARD: Final[str] = "view_dashboard"
    VIEW_FINANCIAL: Final[str] = "view_financeiro"
    VIEW_REPORTS: Final[str] = "view_relatorios"
    MANAGE_CATEGORIES: Final[str] = "manage_categories"
    MANAGE_MENU_ITEMS: Final[str] = "manage_menu_items"
    MANAGE_CUSTOMERS: Final[str] = "manage_customers"
    MANAGE_ORDERS: Final[str] = "manage_orders"
    MANAGE_USERS: Final[str] = "manage_users"
    MANAGE_CONFIG: Final[str] = "manage_config"

    ALL: Final[list[str]] = [
        VIEW_DASHBOARD,
        VIEW_FINANCIAL,
        VIEW_REPORTS,
        MANAGE_CATEGORIES,
        MANAGE_MENU_ITEMS,
        MANAGE_CUSTOMERS,
        MANAGE_ORDERS,
        MANAGE_USERS,
        MANAGE_CONFIG,
    ]


# Human-readable actions for "access denied" messages
PERMISSION_LABELS: Final[dict[str, str]] = {
    Permissions.VIEW_DASHBOARD: "visualizar o painel",
    Permissions.VIEW_FINANCIAL: "visualizar o financeiro",
    Permissions.VIEW_REPORTS: "visualizar relatórios",
    Permissions.MANAGE_CATEGORIES: "gerenciar categorias",
    Permissions.MANAGE_MENU_ITEMS: "gerenciar o cardápio",
    Permissions.MANAGE_CUSTOMERS: "gerenciar clientes",
    Permissions.MANAGE_ORDERS: "gerenciar pedidos",
    Permissions.MANAGE_USERS: "gerenciar usuários",
    Permissions.MANAGE_CONFIG: "alterar as configurações",
}

# Default permission sets applied when a user is created without an explicit list
ROLE_DEFAULT_PERMISSIONS: Final[dict[str, frozenset[str]]] = {
    Roles.ADMIN: frozenset(),
    Roles.MANAGER: frozenset(p for p in Permissions.ALL if p != Permissions.MANAGE_USERS),
    Roles.ATTENDANT: frozenset({
        Permissions.VIEW_DASHBOARD,
        Permissions.MANAGE_CUSTOMERS,
        Permissions.MANAGE_ORDERS,
    }),
    Roles.KITCHEN: frozenset({Permissions.MANAGE_ORDERS}),
}


# =============================================================================
# Order Status
# =============================================================================


class OrderStatus:
    """Order status constants. The 4-state vocabulary is the only one accepted."""

    PENDING: Final[str] = "pendente"
    PREPARING: Final[str] = "em_preparo"
    SENT: Final[str] = "enviado"
    COMPLETED: Final[str] = "concluido"
    CANCELED: Final[str] = "cancelado"

    ALL: Final[list[str]] = [PENDING, PREPARING, SENT, COMPLETED, CANCELED]
    ACTIVE: Final[list[str]] = [PENDING, PREPARING, SENT]
    TERMINAL: Final[list[str]] = [COMPLETED, CANCELED]


ORDER_STATUS_LABELS: Final[dict[str, str]] = {
    OrderStatus.PENDING: "Pendente",
    OrderStatus.PREPARING: "Em preparo",
    OrderStatus.SENT: "Enviado",
    OrderStatus.COMPLETED: "Concluído",
    OrderStatus.CANCELED: "Cancelado",
}

ORDER_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderStatus.PENDING: [OrderStatus.PREPARING, OrderStatus.CANCELED],
    OrderStatus.PREPARING: [OrderStatus.SENT, OrderStatus.CANCELED],
    OrderStatus.SENT: [OrderStatus.COMPLETED, OrderStatus.CANCELED],
    OrderStatus.COMPLETED: [],  # Terminal state
    OrderStatus.CANCELED: [],  # Terminal state
}

# (from_status, to_status) -> permission required to take the edge
ORDER_TRANSITION_PERMISSIONS: Final[dict[tuple[str, str], str]] = {
    (from_status, to_status): Permissions.MANAGE_ORDERS
    for from_status, targets in ORDER_TRANSITIONS.items()
    for to_status in targets
}


class ComplementMode:
    """Selection mode of a complement group."""

    SINGLE: Final[str] = "single"
    MULTIPLE: Final[str] = "multiple"

    ALL: Final[list[str]] = [SINGLE, MULTIPLE]


class StoreStatus:
    """Operating status of the restaurant."""

    OPEN: Final[str] = "aberto"
    CLOSED: Final[str] = "fechado"


class ServiceMode:
    """How the restaurant serves orders."""

    DELIVERY: Final[str] = "entrega"
    PICKUP: Final[str] = "retirada"
    BOTH: Final[str] = "ambos"

    ALL: Final[list[str]] = [DELIVERY, PICKUP, BOTH]


class AuditAction:
    """Audit log actions."""

    CREATE: Final[str] = "CREATE"
    UPDATE: Final[str] = "UPDATE"
    DELETE: Final[str] = "DELETE"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Input limits shared by validators and schemas."""

    NOTES_MAX_LENGTH: Final[int] = 400
    NAME_MIN_LENGTH: Final[int] = 2
    NAME_MAX_LENGTH: Final[int] = 100
    PHONE_MIN_DIGITS: Final[int] = 10
    PHONE_MAX_DIGITS: Final[int] = 13
    MAX_ITEM_QUANTITY: Final[int] = 99
    MAX_CART_LINES: Final[int] = 50
    ORDER_REF_LENGTH: Final[int] = 8
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200


# =============================================================================
# Helpers
# =============================================================================


def validate_order_transition(current_status: str, new_status: str) -> bool:
    """Check if an order status transition is an allowed edge."""
    allowed = ORDER_TRANSITIONS.get(current_status, [])
    return new_status in allowed


def get_allowed_order_transitions(current_status: str, permissions: set[str] | frozenset[str], is_admin: bool = False) -> list[str]:
    """
    Get allowed transitions for a given status and actor grants.

    Returns list of status values the actor can move the order to.
    """
    result = []
    for new_status in ORDER_TRANSITIONS.get(current_status, []):
        required = ORDER_TRANSITION_PERMISSIONS[(current_status, new_status)]
        if is_admin or required in permissions:
            result.append(new_status)
    return result
