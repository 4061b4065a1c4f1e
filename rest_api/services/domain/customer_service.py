"""
Customer Service.

Customers are identified by their WhatsApp number. Checkout resolves the
customer by the number's digits and only inserts when none exists; the
unique `whatsapp_digits` column settles concurrent first checkouts.

Usage:
    service = CustomerService(db)
    customer = service.resolve_or_create("Ana", "+55 75 99999-9999", "Rua A, 1")
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rest_api.models import Customer, Order
from rest_api.services.base_service import BaseCRUDService
from shared.config.logging import get_logger, mask_phone
from shared.utils.admin_schemas import CustomerOutput, CustomerWithOrdersOutput
from shared.utils.exceptions import DuplicateEntityError, ValidationError
from shared.utils.validators import escape_like_pattern, validate_phone

logger = get_logger(__name__)


def _digits_or_400(whatsapp: str) -> str:
    try:
        return validate_phone(whatsapp)
    except ValueError as e:
        raise ValidationError(str(e), field="whatsapp")


class CustomerService(BaseCRUDService[Customer, CustomerOutput]):
    """
    Business rules:
    - WhatsApp digits are the natural key (10 to 13 digits)
    - First checkout wins on name; later checkouts reuse the row unchanged
    """

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Customer,
            output_schema=CustomerOutput,
            entity_name="Cliente",
        )

    # =========================================================================
    # Checkout
    # =========================================================================

    def find_by_phone(self, whatsapp: str) -> Customer | None:
        digits = _digits_or_400(whatsapp)
        return self._db.scalar(select(Customer).where(Customer.whatsapp_digits == digits))

    def resolve_or_create(
        self,
        nome: str,
        whatsapp: str,
        endereco: str | None = None,
        data_nascimento: date | None = None,
    ) -> Customer:
        """
        Return the customer with this number, inserting it if absent.

        Runs inside the caller's transaction (flushes, never commits). A
        concurrent insert of the same number is resolved by re-reading the
        row that won.
        """
        digits = _digits_or_400(whatsapp)

        existing = self._db.scalar(select(Customer).where(Customer.whatsapp_digits == digits))
        if existing is not None:
            if not existing.is_active:
                existing.is_active = True
                existing.deleted_at = None
            logger.debug("Customer reused", customer_id=existing.id, phone=mask_phone(digits))
            return existing

        customer = Customer(
            nome=nome.strip(),
            whatsapp=whatsapp.strip(),
            whatsapp_digits=digits,
            endereco=(endereco or "").strip() or None,
            data_nascimento=data_nascimento,
        )
        try:
            with self._db.begin_nested():
                self._db.add(customer)
        except IntegrityError:
            winner = self._db.scalar(select(Customer).where(Customer.whatsapp_digits == digits))
            if winner is None:
                raise
            logger.info("Customer insert lost race, reusing", customer_id=winner.id, phone=mask_phone(digits))
            return winner

        logger.info("Customer created", customer_id=customer.id, phone=mask_phone(digits))
        return customer

    # =========================================================================
    # Admin queries
    # =========================================================================

    def search(
        self,
        term: str | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CustomerWithOrdersOutput]:
        """Customers with order count and last order time, newest first."""
        order_stats = (
            select(
                Order.customer_id.label("customer_id"),
                func.count(Order.id).label("order_count"),
                func.max(Order.created_at).label("last_order_at"),
            )
            .group_by(Order.customer_id)
            .subquery()
        )
        query = (
            select(Customer, order_stats.c.order_count, order_stats.c.last_order_at)
            .outerjoin(order_stats, order_stats.c.customer_id == Customer.id)
            .where(Customer.is_active.is_(True))
        )
        if term and term.strip():
            pattern = f"%{escape_like_pattern(term.strip())}%"
            query = query.where(
                or_(
                    Customer.nome.ilike(pattern, escape="\\"),
                    Customer.whatsapp_digits.ilike(pattern, escape="\\"),
                )
            )
        rows = self._db.execute(
            query.order_by(Customer.created_at.desc(), Customer.id.desc()).limit(limit).offset(offset)
        ).all()

        return [
            CustomerWithOrdersOutput(
                **CustomerOutput.model_validate(customer).model_dump(),
                order_count=order_count or 0,
                last_order_at=last_order_at,
            )
            for customer, order_count, last_order_at in rows
        ]

    # =========================================================================
    # Validation Hooks
    # =========================================================================

    def _check_unique_phone(self, digits: str, exclude_id: int | None = None) -> None:
        query = select(Customer.id).where(Customer.whatsapp_digits == digits)
        if exclude_id is not None:
            query = query.where(Customer.id != exclude_id)
        if self._db.scalar(query) is not None:
            raise DuplicateEntityError("Cliente", digits)

    def _validate_create(self, data: dict[str, Any]) -> None:
        data["whatsapp_digits"] = _digits_or_400(data["whatsapp"])
        self._check_unique_phone(data["whatsapp_digits"])

    def _validate_update(self, entity: Customer, data: dict[str, Any]) -> None:
        if data.get("whatsapp"):
            data["whatsapp_digits"] = _digits_or_400(data["whatsapp"])
            self._check_unique_phone(data["whatsapp_digits"], exclude_id=entity.id)
        elif "whatsapp" in data:
            data.pop("whatsapp")
        if "nome" in data and data["nome"] is None:
            data.pop("nome")
