"""
Tests for the cart / pricing engine.
"""

from types import SimpleNamespace

import pytest

from rest_api.services.domain import Cart, CartService, ComplementSelection, compute_delivery_fee
from shared.config.constants import Limits
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import CartLineInput, CartQuoteRequest


def _option(option_id, nome, price=0):
    return SimpleNamespace(id=option_id, nome=nome, additional_price_cents=price)


def _group(group_id, nome, tipo="single", obrigatorio=False, options=()):
    return SimpleNamespace(id=group_id, nome=nome, tipo=tipo, obrigatorio=obrigatorio, options=list(options))


def _item(item_id, nome, price_cents, groups=()):
    return SimpleNamespace(id=item_id, nome=nome, price_cents=price_cents, complement_groups=list(groups))


@pytest.fixture
def ponto():
    return _group(1, "Ponto", "single", True, [_option(10, "Mal passado"), _option(11, "Ao ponto")])


@pytest.fixture
def adicionais():
    return _group(2, "Adicionais", "multiple", False, [_option(20, "Bacon", 300), _option(21, "Queijo", 250)])


class TestCartLines:
    """Line merging and quantity handling."""

    def test_same_item_same_notes_merges(self):
        cart = Cart()
        item = _item(1, "Espetinho", 800)

        cart.add_item(item, 1, "sem cebola")
        cart.add_item(item, 2, "sem cebola")

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3
        assert cart.subtotal_cents == 2400

    def test_same_item_different_notes_two_lines(self):
        cart = Cart()
        item = _item(1, "Espetinho", 800)

        cart.add_item(item, 1, "sem cebola")
        cart.add_item(item, 1, "bem passado")

        assert len(cart.lines) == 2
        assert cart.item_count == 2

    def test_notes_are_trimmed_before_merging(self):
        cart = Cart()
        item = _item(1, "Espetinho", 800)

        cart.add_item(item, 1, "  sem sal ")
        cart.add_item(item, 1, "sem sal")

        assert len(cart.lines) == 1

    def test_different_complements_two_lines(self, ponto):
        cart = Cart()
        item = _item(1, "Picanha", 2600, [ponto])

        first = ComplementSelection(item.complement_groups)
        first.select(1, 10)
        second = ComplementSelection(item.complement_groups)
        second.select(1, 11)

        cart.add_item(item, 1, selection=first)
        cart.add_item(item, 1, selection=second)

        assert len(cart.lines) == 2

    def test_update_quantity_clamps_to_one(self):
        cart = Cart()
        line = cart.add_item(_item(1, "Espetinho", 800), 3)

        cart.update_quantity(line.key, 0)

        assert cart.lines[0].quantity == 1

    def test_merge_past_limit_rejected(self):
        cart = Cart()
        item = _item(1, "Espetinho", 800)
        cart.add_item(item, 60)

        with pytest.raises(ValidationError):
            cart.add_item(item, 60)

        assert cart.lines[0].quantity == 60

    def test_update_quantity_past_limit_rejected(self):
        cart = Cart()
        line = cart.add_item(_item(1, "Espetinho", 800), 3)

        with pytest.raises(ValidationError):
            cart.update_quantity(line.key, Limits.MAX_ITEM_QUANTITY + 1)

        assert line.quantity == 3

    def test_notes_merge_past_limit_keeps_both_lines(self):
        cart = Cart()
        item = _item(1, "Espetinho", 800)
        cart.add_item(item, 60, "sem cebola")
        moved = cart.add_item(item, 60)

        with pytest.raises(ValidationError):
            cart.update_notes(moved.key, "sem cebola")

        assert sorted((line.notes, line.quantity) for line in cart.lines) == [("", 60), ("sem cebola", 60)]

    def test_remove_item(self):
        cart = Cart(delivery_fee_cents=500)
        line = cart.add_item(_item(1, "Espetinho", 800))

        cart.remove_item(line.key)

        assert cart.is_empty
        assert cart.total_cents == 0

    def test_update_notes_merges_into_existing_line(self):
        cart = Cart()
        item = _item(1, "Espetinho", 800)
        cart.add_item(item, 1, "sem sal")
        other = cart.add_item(item, 2, "")

        cart.update_notes(other.key, "sem sal")

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3

    def test_update_quantity_unknown_line(self):
        cart = Cart()
        line = cart.add_item(_item(1, "Espetinho", 800))
        cart.clear()

        with pytest.raises(ValidationError):
            cart.update_quantity(line.key, 2)


class TestCartTotals:
    def test_scenario_totals(self):
        """2 x 8.00 + 1 x 5.00 + delivery 5.00 = 26.00"""
        cart = Cart(delivery_fee_cents=500)
        cart.add_item(_item(1, "Espetinho", 800), 2)
        cart.add_item(_item(2, "Refrigerante", 500), 1)

        assert cart.subtotal_cents == 2100
        assert cart.total_cents == 2600

    def test_empty_cart_has_no_fee(self):
        cart = Cart(delivery_fee_cents=500)
        assert cart.total_cents == 0

    def test_complement_prices_in_unit_price(self, adicionais):
        item = _item(1, "Picanha", 2600, [adicionais])
        selection = ComplementSelection(item.complement_groups)
        selection.select(2, 20)
        selection.select(2, 21)

        cart = Cart()
        line = cart.add_item(item, 2, selection=selection)

        assert line.unit_price_cents == 2600 + 300 + 250
        assert cart.subtotal_cents == 2 * 3150


class TestComplementSelection:
    def test_single_group_replaces(self, ponto):
        selection = ComplementSelection([ponto])
        selection.select(1, 10)
        selection.select(1, 11)

        assert not selection.is_selected(1, 10)
        assert selection.is_selected(1, 11)

    def test_multiple_group_toggles(self, adicionais):
        selection = ComplementSelection([adicionais])
        selection.select(2, 20)
        selection.select(2, 21)
        selection.select(2, 20)

        assert selection.option_ids == frozenset({21})

    def test_required_group_blocks_add(self, ponto):
        cart = Cart()
        item = _item(1, "Picanha", 2600, [ponto])

        with pytest.raises(ValidationError) as exc_info:
            cart.add_item(item)

        assert "Ponto" in exc_info.value.detail
        assert cart.is_empty

    def test_unknown_option_rejected(self, ponto):
        selection = ComplementSelection([ponto])
        with pytest.raises(ValidationError):
            selection.select(1, 99)

    def test_from_option_ids_rejects_two_singles(self, ponto):
        with pytest.raises(ValidationError):
            ComplementSelection.from_option_ids([ponto], [10, 11])

    def test_selected_snapshot_in_group_order(self, ponto, adicionais):
        selection = ComplementSelection.from_option_ids([ponto, adicionais], [21, 10])

        names = [(c.group_name, c.option_name) for c in selection.selected()]
        assert names == [("Ponto", "Mal passado"), ("Adicionais", "Queijo")]


class TestDeliveryFee:
    def test_pickup_is_free(self):
        assert compute_delivery_fee(3000, tipo_entrega="retirada", base_fee_cents=500) == 0

    def test_empty_cart_is_free(self):
        assert compute_delivery_fee(0, tipo_entrega="entrega", base_fee_cents=500) == 0

    def test_free_shipping_threshold(self):
        assert compute_delivery_fee(
            10000, tipo_entrega="entrega", base_fee_cents=500, free_shipping_threshold_cents=10000
        ) == 0
        assert compute_delivery_fee(
            9999, tipo_entrega="entrega", base_fee_cents=500, free_shipping_threshold_cents=10000
        ) == 500

    def test_no_threshold_configured(self):
        assert compute_delivery_fee(
            50000, tipo_entrega="entrega", base_fee_cents=500, free_shipping_threshold_cents=0
        ) == 500


class TestCartService:
    """Server-side re-pricing against the catalog."""

    def test_quote_uses_catalog_prices(self, db_session, picanha):
        ids = {o.nome: o.id for g in picanha.complement_groups for o in g.options}
        request = CartQuoteRequest(
            items=[CartLineInput(menu_item_id=picanha.id, quantity=2, option_ids=[ids["Ao ponto"], ids["Bacon"]])],
            tipo_entrega="entrega",
        )

        quote = CartService(db_session).quote(request)

        assert quote.lines[0].unit_price_cents == 2600 + 300
        assert quote.subtotal_cents == 5800
        assert quote.delivery_fee_cents == 500
        assert quote.total_cents == 6300
        assert quote.meets_minimum is True

    def test_quote_zone_fee_and_minimum(self, db_session, seed_menu):
        from rest_api.models import DeliveryZone

        zone = db_session.query(DeliveryZone).filter_by(nome="Bairro Alto").one()
        refri = seed_menu["Refrigerante Lata"]
        request = CartQuoteRequest(
            items=[CartLineInput(menu_item_id=refri.id, quantity=2)],
            tipo_entrega="entrega",
            delivery_zone_id=zone.id,
        )

        quote = CartService(db_session).quote(request)

        assert quote.delivery_fee_cents == 800
        assert quote.minimum_order_cents == 3000
        assert quote.meets_minimum is False

    def test_required_complement_missing(self, db_session, picanha):
        request = CartQuoteRequest(items=[CartLineInput(menu_item_id=picanha.id)])

        with pytest.raises(ValidationError) as exc_info:
            CartService(db_session).quote(request)
        assert "Ponto da carne" in exc_info.value.detail

    def test_inactive_item_rejected(self, db_session, seed_menu):
        vinagrete = seed_menu["Vinagrete"]
        vinagrete.ativo = False
        db_session.commit()

        request = CartQuoteRequest(items=[CartLineInput(menu_item_id=vinagrete.id)])
        with pytest.raises(ValidationError):
            CartService(db_session).quote(request)

    def test_quote_endpoint(self, client, seed_menu):
        farofa = seed_menu["Farofa da Casa"]
        response = client.post(
            "/api/public/cart/quote",
            json={"items": [{"menu_item_id": farofa.id, "quantity": 3}], "tipo_entrega": "retirada"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["subtotal_cents"] == 2400
        assert data["delivery_fee_cents"] == 0
        assert data["total_cents"] == 2400
