"""
Cart / Pricing Engine.

In-memory aggregation of menu items, quantities, notes and complement
selections into a priced order draft. All arithmetic is in integer cents.

Usage:
    selection = ComplementSelection(item.complement_groups)
    selection.select(group_id=1, option_id=10)

    cart = Cart(delivery_fee_cents=500)
    line = cart.add_item(item, quantity=2, notes="sem cebola", selection=selection)
    cart.total_cents

    # Server side: re-price a storefront payload against the catalog
    quote = CartService(db).quote(request)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, NamedTuple, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import (
    ComplementGroup,
    DeliveryZone,
    MenuItem,
    MenuItemComplement,
    RestaurantConfig,
)
from shared.config.constants import ComplementMode, Limits
from shared.config.logging import get_logger
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import (
    CartLineInput,
    CartLineOutput,
    CartQuoteOutput,
    CartQuoteRequest,
    SelectedComplementOutput,
)
from shared.utils.validators import sanitize_notes, validate_quantity
from .config_service import ConfigService

logger = get_logger(__name__)


# =============================================================================
# Complement selection
# =============================================================================


@dataclass(frozen=True)
class SelectedComplement:
    """Snapshot of one chosen option, independent of later catalog edits."""

    option_id: int
    group_name: str
    option_name: str
    additional_price_cents: int


class ComplementSelection:
    """
    Options chosen for one menu item, per complement group.

    `single` groups keep at most one option (a new pick replaces the old);
    `multiple` groups toggle (picking a selected option deselects it).
    """

    def __init__(self, groups: Sequence[Any]):
        self._groups = {g.id: g for g in groups}
        self._order = [g.id for g in groups]
        self._selected: dict[int, list[int]] = {g.id: [] for g in groups}

    @classmethod
    def from_option_ids(cls, groups: Sequence[Any], option_ids: Iterable[int]) -> "ComplementSelection":
        """
        Build a selection from a flat list of option ids (storefront payload).

        Raises:
            ValidationError: Unknown option, or two options for a single group.
        """
        selection = cls(groups)
        for option_id in dict.fromkeys(option_ids):
            group = selection._group_of(option_id)
            if group.tipo == ComplementMode.SINGLE and selection._selected[group.id]:
                raise ValidationError(
                    f"Escolha apenas uma opção em '{group.nome}'",
                    group_id=group.id,
                )
            selection.select(group.id, option_id)
        return selection

    def _group_of(self, option_id: int) -> Any:
        for group in self._groups.values():
            if any(o.id == option_id for o in group.options):
                return group
        raise ValidationError("Complemento inválido para este item", option_id=option_id)

    def select(self, group_id: int, option_id: int) -> None:
        group = self._groups.get(group_id)
        if group is None or not any(o.id == option_id for o in group.options):
            raise ValidationError(
                "Complemento inválido para este item",
                group_id=group_id,
                option_id=option_id,
            )

        chosen = self._selected[group_id]
        if group.tipo == ComplementMode.SINGLE:
            self._selected[group_id] = [option_id]
        elif option_id in chosen:
            chosen.remove(option_id)
        else:
            chosen.append(option_id)

    def is_selected(self, group_id: int, option_id: int) -> bool:
        return option_id in self._selected.get(group_id, [])

    def validate(self) -> None:
        """
        Raises:
            ValidationError: Naming the first required group left empty.
        """
        for group_id in self._order:
            group = self._groups[group_id]
            if group.obrigatorio and not self._selected[group_id]:
                raise ValidationError(
                    f"Selecione uma opção em '{group.nome}'",
                    group_id=group_id,
                )

    def selected(self) -> tuple[SelectedComplement, ...]:
        result = []
        for group_id in self._order:
            group = self._groups[group_id]
            options = {o.id: o for o in group.options}
            for option_id in self._selected[group_id]:
                option = options[option_id]
                result.append(
                    SelectedComplement(
                        option_id=option.id,
                        group_name=group.nome,
                        option_name=option.nome,
                        additional_price_cents=option.additional_price_cents or 0,
                    )
                )
        return tuple(result)

    @property
    def option_ids(self) -> frozenset[int]:
        return frozenset(oid for chosen in self._selected.values() for oid in chosen)

    @property
    def additional_price_cents(self) -> int:
        return sum(c.additional_price_cents for c in self.selected())


# =============================================================================
# Cart
# =============================================================================


class LineKey(NamedTuple):
    """Cart lines merge when item, notes and chosen options are all equal."""

    menu_item_id: int
    notes: str
    option_ids: frozenset[int]


@dataclass
class CartLine:
    menu_item_id: int
    nome: str
    base_price_cents: int
    quantity: int
    notes: str = ""
    complements: tuple[SelectedComplement, ...] = field(default_factory=tuple)

    @property
    def key(self) -> LineKey:
        return LineKey(
            self.menu_item_id,
            self.notes,
            frozenset(c.option_id for c in self.complements),
        )

    @property
    def unit_price_cents(self) -> int:
        return self.base_price_cents + sum(c.additional_price_cents for c in self.complements)


def _line_quantity(quantity: int) -> int:
    try:
        return validate_quantity(quantity)
    except ValueError as e:
        raise ValidationError(str(e)) from None


class Cart:
    """
    Priced order draft.

    The delivery fee is external input and only counts while the cart
    has at least one line.
    """

    def __init__(self, delivery_fee_cents: int = 0):
        self._lines: dict[LineKey, CartLine] = {}
        self.delivery_fee_cents = delivery_fee_cents

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def add_item(
        self,
        menu_item: Any,
        quantity: int = 1,
        notes: str = "",
        selection: ComplementSelection | None = None,
    ) -> CartLine:
        """
        Add a menu item, merging into an existing line with the same key.

        Raises:
            ValidationError: A required complement group has no selection,
                the cart is full, or the merged quantity exceeds the per-item limit.
        """
        if selection is None:
            selection = ComplementSelection(getattr(menu_item, "complement_groups", []))
        selection.validate()

        line = CartLine(
            menu_item_id=menu_item.id,
            nome=menu_item.nome,
            base_price_cents=menu_item.price_cents,
            quantity=_line_quantity(quantity),
            notes=sanitize_notes(notes),
            complements=selection.selected(),
        )

        existing = self._lines.get(line.key)
        if existing is not None:
            existing.quantity = _line_quantity(existing.quantity + line.quantity)
            return existing

        if len(self._lines) >= Limits.MAX_CART_LINES:
            raise ValidationError("O carrinho atingiu o limite de itens")
        self._lines[line.key] = line
        return line

    def _get(self, key: LineKey) -> CartLine:
        try:
            return self._lines[key]
        except KeyError:
            raise ValidationError("Item não está no carrinho") from None

    def update_quantity(self, key: LineKey, quantity: int) -> CartLine:
        """Set quantity, raised to at least 1; above the per-item limit is rejected."""
        line = self._get(key)
        line.quantity = _line_quantity(quantity)
        return line

    def remove_item(self, key: LineKey) -> None:
        self._lines.pop(key, None)

    def update_notes(self, key: LineKey, notes: str) -> CartLine:
        """Replace a line's notes; merges into another line if the new key collides."""
        line = self._get(key)
        new_key = key._replace(notes=sanitize_notes(notes))
        if new_key == key:
            return line

        existing = self._lines.get(new_key)
        if existing is not None:
            existing.quantity = _line_quantity(existing.quantity + line.quantity)
            del self._lines[key]
            return existing

        del self._lines[key]
        line.notes = new_key.notes
        self._lines[new_key] = line
        return line

    @staticmethod
    def line_total(line: CartLine) -> int:
        return line.unit_price_cents * line.quantity

    @property
    def subtotal_cents(self) -> int:
        return sum(self.line_total(line) for line in self._lines.values())

    @property
    def total_cents(self) -> int:
        if self.is_empty:
            return 0
        return self.subtotal_cents + self.delivery_fee_cents

    def clear(self) -> None:
        self._lines.clear()


# =============================================================================
# Delivery fee
# =============================================================================


def compute_delivery_fee(
    subtotal_cents: int,
    *,
    tipo_entrega: str,
    base_fee_cents: int,
    free_shipping_threshold_cents: int = 0,
) -> int:
    """
    Fee for a cart subtotal.

    Zero for an empty cart, for pickup, and once the subtotal reaches the
    free-shipping threshold (when one is configured).
    """
    if subtotal_cents <= 0 or tipo_entrega == "retirada":
        return 0
    if free_shipping_threshold_cents > 0 and subtotal_cents >= free_shipping_threshold_cents:
        return 0
    return base_fee_cents


@dataclass
class PricedCart:
    """Server-side pricing result used by quote and checkout."""

    cart: Cart
    config: RestaurantConfig
    zone: DeliveryZone | None
    minimum_order_cents: int

    @property
    def meets_minimum(self) -> bool:
        return self.cart.subtotal_cents >= self.minimum_order_cents


class CartService:
    """
    Re-prices storefront carts against the current catalog.

    Client-side prices are never trusted; unit prices come from the
    database at quote/checkout time.
    """

    def __init__(self, db: Session):
        self._db = db
        self._config = ConfigService(db)

    def _load_menu_items(self, ids: set[int]) -> dict[int, MenuItem]:
        if not ids:
            return {}
        items = self._db.scalars(
            select(MenuItem)
            .where(
                MenuItem.id.in_(ids),
                MenuItem.is_active.is_(True),
                MenuItem.ativo.is_(True),
            )
            .options(
                selectinload(MenuItem.complement_links)
                .selectinload(MenuItemComplement.group)
                .selectinload(ComplementGroup.options)
            )
        ).all()
        return {item.id: item for item in items}

    def _load_zone(self, zone_id: int | None) -> DeliveryZone | None:
        if zone_id is None:
            return None
        zone = self._db.scalar(
            select(DeliveryZone).where(
                DeliveryZone.id == zone_id,
                DeliveryZone.is_active.is_(True),
                DeliveryZone.ativo.is_(True),
            )
        )
        if zone is None:
            raise ValidationError("Região de entrega indisponível", delivery_zone_id=zone_id)
        return zone

    def build_cart(self, lines: Sequence[CartLineInput]) -> Cart:
        """
        Build a cart from storefront lines.

        Raises:
            ValidationError: Unknown or unavailable item, invalid complements.
        """
        items = self._load_menu_items({line.menu_item_id for line in lines})
        cart = Cart()
        for line in lines:
            item = items.get(line.menu_item_id)
            if item is None:
                raise ValidationError(
                    "Um dos itens do carrinho não está mais disponível",
                    menu_item_id=line.menu_item_id,
                )
            selection = ComplementSelection.from_option_ids(item.complement_groups, line.option_ids)
            cart.add_item(item, line.quantity, line.notes, selection)
        return cart

    def price(self, request: CartQuoteRequest) -> PricedCart:
        """Build the cart and apply the store's fee and minimum rules."""
        config = self._config.get()
        zone = self._load_zone(request.delivery_zone_id) if request.tipo_entrega == "entrega" else None
        cart = self.build_cart(request.items)

        base_fee = zone.taxa_entrega_cents if zone is not None else config.taxa_entrega_cents
        cart.delivery_fee_cents = compute_delivery_fee(
            cart.subtotal_cents,
            tipo_entrega=request.tipo_entrega,
            base_fee_cents=base_fee,
            free_shipping_threshold_cents=config.valor_frete_gratis_cents,
        )

        minimum = config.valor_pedido_minimo_cents
        if zone is not None:
            minimum = max(minimum, zone.pedido_minimo_cents)

        return PricedCart(cart=cart, config=config, zone=zone, minimum_order_cents=minimum)

    def quote(self, request: CartQuoteRequest) -> CartQuoteOutput:
        priced = self.price(request)
        return to_quote_output(priced)


def to_quote_output(priced: PricedCart) -> CartQuoteOutput:
    cart = priced.cart
    return CartQuoteOutput(
        lines=[
            CartLineOutput(
                menu_item_id=line.menu_item_id,
                nome=line.nome,
                quantity=line.quantity,
                notes=line.notes,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=Cart.line_total(line),
                complements=[
                    SelectedComplementOutput(
                        group_name=c.group_name,
                        option_name=c.option_name,
                        additional_price_cents=c.additional_price_cents,
                    )
                    for c in line.complements
                ],
            )
            for line in cart.lines
        ],
        subtotal_cents=cart.subtotal_cents,
        delivery_fee_cents=cart.delivery_fee_cents if not cart.is_empty else 0,
        total_cents=cart.total_cents,
        minimum_order_cents=priced.minimum_order_cents,
        meets_minimum=priced.meets_minimum,
    )
