"""
Order Lifecycle Service.

Checkout creates the customer (if new), the order, its items and the
initial `pendente` history row in one transaction. Status changes move
through ORDER_TRANSITIONS with a conditional update, so two operators
acting on the same order cannot silently overwrite each other.

    pendente -> em_preparo -> enviado -> concluido
        \\            \\            \\
         +-----------+------------+--> cancelado

Usage:
    service = OrderService(db)
    result = service.checkout(request)
    await publish_checkout(redis, result)

    change = service.transition(order_id, "em_preparo", authz)
    await publish_transition(redis, change)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from rest_api.models import (
    Order,
    OrderItem,
    OrderItemComplement,
    OrderStatusHistory,
    as_utc,
    utcnow,
)
from rest_api.services.permissions import AuthorizationSession
from shared.config.constants import (
    ORDER_TRANSITION_PERMISSIONS,
    OrderStatus,
    Permissions,
    ServiceMode,
    StoreStatus,
    get_allowed_order_transitions,
    validate_order_transition,
)
from shared.config.logging import mask_phone, orders_logger as logger
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import (
    ORDER_CREATED,
    ORDER_HISTORY_APPENDED,
    ORDER_STATUS_CHANGED,
    publish_order_event,
)
from shared.utils.admin_schemas import OrderBoardOutput, OrderDetailOutput
from shared.utils.exceptions import (
    AppException,
    ConflictError,
    DatabaseError,
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.schemas import (
    CheckoutRequest,
    OrderOutput,
    OrderTrackingOutput,
    StatusHistoryOutput,
)
from shared.utils.validators import format_brl, sanitize_notes
from .cart_service import CartService, PricedCart
from .customer_service import CustomerService
from .notification_service import NotificationService, WhatsAppMessage, tracking_url
from .config_service import ConfigService

# Smallest step between two history rows of the same order
HISTORY_TICK = timedelta(microseconds=1)


@dataclass
class CheckoutResult:
    order: Order
    tracking_url: str
    confirmation: WhatsAppMessage | None
    store_alert: WhatsAppMessage | None


@dataclass
class TransitionResult:
    order: Order
    previous_status: str
    history: StatusHistoryOutput
    notification: WhatsAppMessage | None
    actor_user_id: int | None = None
    actor_role: str | None = None


def order_query():
    """Order with customer, items (and their complements) eagerly loaded."""
    return select(Order).options(
        selectinload(Order.customer),
        selectinload(Order.items).selectinload(OrderItem.complements),
    )


def to_order_output(order: Order) -> OrderOutput:
    return OrderOutput.model_validate(order)


def next_history_timestamp(last: datetime | None, now: datetime | None = None) -> datetime:
    """Current time, bumped past `last` so history timestamps strictly increase."""
    now = now or utcnow()
    last = as_utc(last)
    if last is not None and now <= last:
        return last + HISTORY_TICK
    return now


class OrderService:
    """Checkout, status transitions and order queries."""

    def __init__(self, db: Session):
        self._db = db
        self._config = ConfigService(db)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If no order has this id.
        """
        order = self._db.scalar(order_query().where(Order.id == order_id))
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def history(self, order_id: str) -> list[OrderStatusHistory]:
        return list(
            self._db.scalars(
                select(OrderStatusHistory)
                .where(OrderStatusHistory.order_id == order_id)
                .order_by(OrderStatusHistory.changed_at, OrderStatusHistory.id)
            )
        )

    def tracking_snapshot(self, order_id: str) -> OrderTrackingOutput:
        order = self.get_order(order_id)
        return OrderTrackingOutput(
            order=to_order_output(order),
            history=[StatusHistoryOutput.model_validate(h) for h in self.history(order_id)],
        )

    def detail(self, order_id: str, authz: AuthorizationSession) -> OrderDetailOutput:
        order = self.get_order(order_id)
        return OrderDetailOutput(
            order=to_order_output(order),
            history=[StatusHistoryOutput.model_validate(h) for h in self.history(order_id)],
            allowed_transitions=get_allowed_order_transitions(
                order.status, authz.permissions, is_admin=authz.is_admin
            ),
        )

    def list_orders(
        self,
        status: str | None = None,
        *,
        customer_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Order]:
        """Orders newest first, optionally filtered by status or customer."""
        query = order_query()
        if status:
            query = query.where(Order.status == status)
        if customer_id is not None:
            query = query.where(Order.customer_id == customer_id)
        query = query.order_by(Order.created_at.desc(), Order.id).limit(limit).offset(offset)
        return list(self._db.scalars(query))

    def board(self, limit: int = 200) -> OrderBoardOutput:
        """Recent orders grouped into one column per status."""
        orders = self.list_orders(limit=limit)
        columns: dict[str, list[OrderOutput]] = {status: [] for status in OrderStatus.ALL}
        for order in orders:
            columns.setdefault(order.status, []).append(to_order_output(order))
        return OrderBoardOutput(columns=columns, total=len(orders))

    # =========================================================================
    # Checkout
    # =========================================================================

    def _check_store_rules(self, request: CheckoutRequest, priced: PricedCart) -> None:
        config = priced.config

        if config.status_funcionamento == StoreStatus.CLOSED and not config.aceitar_loja_fechada:
            raise ValidationError("A loja está fechada no momento")

        mode = config.modo_atendimento or ServiceMode.BOTH
        if mode != ServiceMode.BOTH and request.tipo_entrega != mode:
            raise ValidationError(
                "Tipo de entrega indisponível",
                tipo_entrega=request.tipo_entrega,
                modo_atendimento=mode,
            )

        if priced.cart.is_empty:
            raise ValidationError("Seu carrinho está vazio")

        if not priced.meets_minimum:
            raise ValidationError(
                f"O pedido mínimo é de {format_brl(priced.minimum_order_cents)}",
                subtotal_cents=priced.cart.subtotal_cents,
                minimum_order_cents=priced.minimum_order_cents,
            )

    def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        """
        Validate, re-price and persist a storefront order.

        Raises:
            ValidationError: Missing data, empty cart, closed store, below minimum.
            DatabaseError: If persisting fails; nothing is written.
        """
        nome = request.nome.strip()
        if not nome:
            raise ValidationError("Informe seu nome", field="nome")

        endereco = (request.endereco or "").strip()
        if request.tipo_entrega == ServiceMode.DELIVERY and not endereco:
            raise ValidationError("Informe o endereço de entrega", field="endereco")

        priced = CartService(self._db).price(request)
        self._check_store_rules(request, priced)
        cart = priced.cart

        try:
            customer = CustomerService(self._db).resolve_or_create(
                nome,
                request.whatsapp,
                endereco or None,
                request.data_nascimento,
            )

            order = Order(
                customer=customer,
                status=OrderStatus.PENDING,
                tipo_entrega=request.tipo_entrega,
                delivery_zone_id=priced.zone.id if priced.zone is not None else None,
                delivery_address=endereco or None,
                notes=sanitize_notes(request.notes) or None,
                subtotal_cents=cart.subtotal_cents,
                delivery_fee_cents=cart.delivery_fee_cents,
                total_cents=cart.total_cents,
                created_at=utcnow(),
            )
            for line in cart.lines:
                order.items.append(
                    OrderItem(
                        menu_item_id=line.menu_item_id,
                        menu_item_name=line.nome,
                        unit_price_cents=line.unit_price_cents,
                        quantity=line.quantity,
                        notes=line.notes or None,
                        complements=[
                            OrderItemComplement(
                                group_name=c.group_name,
                                option_name=c.option_name,
                                additional_price_cents=c.additional_price_cents,
                            )
                            for c in line.complements
                        ],
                    )
                )
            self._db.add(order)
            self._db.flush()

            self._db.add(
                OrderStatusHistory(
                    order_id=order.id,
                    status=OrderStatus.PENDING,
                    changed_at=order.created_at,
                    notes="Pedido recebido",
                )
            )
            safe_commit(self._db)
        except AppException:
            self._db.rollback()
            raise
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error("Failed to create order", error=str(e), phone=mask_phone(request.whatsapp))
            raise DatabaseError("registrar o pedido")

        order = self.get_order(order.id)
        logger.info(
            "Order created",
            order_id=order.id,
            customer_id=order.customer_id,
            items=len(order.items),
            total_cents=order.total_cents,
        )

        notifier = NotificationService(priced.config)
        return CheckoutResult(
            order=order,
            tracking_url=tracking_url(order.id),
            confirmation=notifier.order_confirmation(order),
            store_alert=notifier.store_new_order_alert(order),
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def _last_history_time(self, order_id: str) -> datetime | None:
        return self._db.scalar(
            select(func.max(OrderStatusHistory.changed_at)).where(OrderStatusHistory.order_id == order_id)
        )

    def transition(
        self,
        order_id: str,
        new_status: str,
        authz: AuthorizationSession,
        notes: str | None = None,
    ) -> TransitionResult:
        """
        Move an order along one edge of the state machine.

        Raises:
            OrderNotFoundError: Unknown order.
            InvalidTransitionError: Not an allowed edge (status unchanged).
            ForbiddenError: Actor lacks the edge's permission.
            ConflictError: Another actor changed the order first.
            DatabaseError: If the write fails.
        """
        order = self.get_order(order_id)
        current = order.status

        if not validate_order_transition(current, new_status):
            raise InvalidTransitionError("pedido", current, new_status, order_id=order_id)
        authz.require_permission(ORDER_TRANSITION_PERMISSIONS[(current, new_status)])

        try:
            result = self._db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == current)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self._db.rollback()
                raise ConflictError(
                    "O pedido foi alterado por outro usuário. Atualize e tente novamente.",
                    order_id=order_id,
                    expected_status=current,
                )

            history = OrderStatusHistory(
                order_id=order_id,
                status=new_status,
                changed_at=next_history_timestamp(self._last_history_time(order_id)),
                changed_by=authz.user_id,
                notes=sanitize_notes(notes) or None,
            )
            self._db.add(history)
            safe_commit(self._db)
        except AppException:
            raise
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error("Failed to change order status", order_id=order_id, to_status=new_status, error=str(e))
            raise DatabaseError("atualizar o status do pedido")

        order = self.get_order(order_id)
        logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=current,
            to_status=new_status,
            user_id=authz.user_id,
        )

        notification = NotificationService(self._config.get()).status_update(order, new_status)
        return TransitionResult(
            order=order,
            previous_status=current,
            history=StatusHistoryOutput.model_validate(history),
            notification=notification,
            actor_user_id=authz.user_id,
            actor_role=authz.role,
        )

    def cancellation_message(
        self,
        order_id: str,
        explanation: str,
        authz: AuthorizationSession,
    ) -> WhatsAppMessage | None:
        """
        Operator-written cancellation notice for a cancelled order.

        Raises:
            OrderNotFoundError: Unknown order.
            ValidationError: Order is not cancelled, or blank explanation.
        """
        authz.require_permission(Permissions.MANAGE_ORDERS)
        order = self.get_order(order_id)
        if order.status != OrderStatus.CANCELED:
            raise ValidationError("Apenas pedidos cancelados recebem aviso de cancelamento", order_id=order_id)
        return NotificationService(self._config.get()).cancellation(order, explanation)


# =============================================================================
# Event publishing (after commit, failures only logged)
# =============================================================================


async def publish_checkout(redis_client, result: CheckoutResult) -> None:
    order = result.order
    try:
        await publish_order_event(
            redis_client,
            ORDER_CREATED,
            order.id,
            entity={
                "status": order.status,
                "total_cents": order.total_cents,
                "customer_name": order.customer.nome if order.customer else None,
                "created_at": order.created_at,
            },
        )
    except Exception as e:
        logger.error("Failed to publish order created event", order_id=order.id, error=str(e))


async def publish_transition(redis_client, result: TransitionResult) -> None:
    order, history = result.order, result.history
    try:
        await publish_order_event(
            redis_client,
            ORDER_STATUS_CHANGED,
            order.id,
            entity={"status": order.status, "previous_status": result.previous_status},
            actor_user_id=result.actor_user_id,
            actor_role=result.actor_role,
        )
        await publish_order_event(
            redis_client,
            ORDER_HISTORY_APPENDED,
            order.id,
            entity={"history_id": history.id, **history.model_dump(mode="json", exclude={"id"})},
            actor_user_id=result.actor_user_id,
            actor_role=result.actor_role,
        )
    except Exception as e:
        logger.error(
            "Failed to publish order status events",
            order_id=order.id,
            status=order.status,
            error=str(e),
        )
