"""
Tests for checkout and the order status lifecycle.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from rest_api.models import (
    Customer,
    MenuItem,
    Order,
    OrderItem,
    OrderStatusHistory,
    RestaurantConfig,
    RESTAURANT_CONFIG_ID,
    as_utc,
)
from rest_api.services.domain import OrderService
from rest_api.services.permissions import AuthorizationSession, loader_for_db
from shared.config.constants import ORDER_TRANSITIONS, OrderStatus
from shared.utils.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.schemas import CartLineInput, CheckoutRequest
from tests.conftest import checkout_payload, create_staff


@pytest.fixture
def simple_store(db_session):
    """Espetinho (8.00) and Refrigerante (5.00), flat delivery fee 5.00, no minimum."""
    db_session.add(
        RestaurantConfig(
            id=RESTAURANT_CONFIG_ID,
            nome_restaurante="Espetaria Teste",
            endereco="Rua A, 1",
            whatsapp_oficial="75988887777",
            taxa_entrega_cents=500,
            valor_pedido_minimo_cents=0,
            valor_frete_gratis_cents=0,
        )
    )
    espetinho = MenuItem(nome="Espetinho", price_cents=800)
    refrigerante = MenuItem(nome="Refrigerante", price_cents=500)
    db_session.add_all([espetinho, refrigerante])
    db_session.commit()
    return SimpleNamespace(espetinho=espetinho, refrigerante=refrigerante)


@pytest.fixture
def staff_authz(db_session):
    """Attendant holding manage_orders, loaded from the database."""
    user = create_staff(db_session, "atendente@test.com", "atendente", permissions=["manage_orders"])
    authz = AuthorizationSession(loader_for_db(db_session))
    authz.load_permissions(user.id)
    return authz


def _scenario_order(db_session, store, **overrides) -> Order:
    data = {
        "items": [
            CartLineInput(menu_item_id=store.espetinho.id, quantity=2),
            CartLineInput(menu_item_id=store.refrigerante.id, quantity=1),
        ],
        "tipo_entrega": "entrega",
        "nome": "Ana",
        "whatsapp": "+5575999999999",
        "endereco": "Rua das Flores, 10",
    }
    data.update(overrides)
    return OrderService(db_session).checkout(CheckoutRequest(**data)).order


def _history_statuses(db_session, order_id: str) -> list[str]:
    return [h.status for h in OrderService(db_session).history(order_id)]


class TestCheckout:
    def test_scenario_totals_and_snapshots(self, db_session, simple_store):
        order = _scenario_order(db_session, simple_store)

        assert order.status == OrderStatus.PENDING
        assert order.subtotal_cents == 2100
        assert order.delivery_fee_cents == 500
        assert order.total_cents == 2600
        prices = sorted((item.menu_item_name, item.unit_price_cents, item.quantity) for item in order.items)
        assert prices == [("Espetinho", 800, 2), ("Refrigerante", 500, 1)]
        assert _history_statuses(db_session, order.id) == [OrderStatus.PENDING]

    def test_price_change_does_not_touch_existing_order(self, db_session, simple_store):
        order = _scenario_order(db_session, simple_store)

        simple_store.espetinho.price_cents = 1200
        db_session.commit()

        reloaded = OrderService(db_session).get_order(order.id)
        assert reloaded.total_cents == 2600
        assert {i.menu_item_name: i.unit_price_cents for i in reloaded.items}["Espetinho"] == 800
        assert reloaded.total_cents == sum(i.line_total_cents for i in reloaded.items) + reloaded.delivery_fee_cents

    def test_empty_cart_rejected(self, db_session, simple_store):
        with pytest.raises(ValidationError):
            _scenario_order(db_session, simple_store, items=[])
        assert db_session.scalar(select(func.count(Order.id))) == 0

    def test_failed_write_leaves_nothing_behind(self, db_session, simple_store, monkeypatch):
        """A failure after the customer row is staged rolls back the whole order."""
        flush = db_session.flush

        def failing_flush(*args, **kwargs):
            if any(isinstance(obj, Order) for obj in db_session.new):
                raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))
            return flush(*args, **kwargs)

        monkeypatch.setattr(db_session, "flush", failing_flush)

        with pytest.raises(DatabaseError):
            _scenario_order(db_session, simple_store)
        monkeypatch.undo()

        assert db_session.scalar(select(func.count(Customer.id))) == 0
        assert db_session.scalar(select(func.count(Order.id))) == 0
        assert db_session.scalar(select(func.count(OrderItem.id))) == 0

    def test_delivery_requires_address(self, db_session, simple_store):
        with pytest.raises(ValidationError):
            _scenario_order(db_session, simple_store, endereco="  ")

    def test_closed_store_rejects(self, db_session, simple_store):
        config = db_session.get(RestaurantConfig, RESTAURANT_CONFIG_ID)
        config.status_funcionamento = "fechado"
        db_session.commit()

        with pytest.raises(ValidationError):
            _scenario_order(db_session, simple_store)

    def test_closed_store_accepting_orders(self, db_session, simple_store):
        config = db_session.get(RestaurantConfig, RESTAURANT_CONFIG_ID)
        config.status_funcionamento = "fechado"
        config.aceitar_loja_fechada = True
        db_session.commit()

        assert _scenario_order(db_session, simple_store).status == OrderStatus.PENDING

    def test_below_minimum_rejected(self, db_session, simple_store):
        config = db_session.get(RestaurantConfig, RESTAURANT_CONFIG_ID)
        config.valor_pedido_minimo_cents = 5000
        db_session.commit()

        with pytest.raises(ValidationError) as exc_info:
            _scenario_order(db_session, simple_store)
        assert "R$ 50.00" in exc_info.value.detail

    def test_service_mode_restricts_delivery_type(self, db_session, simple_store):
        config = db_session.get(RestaurantConfig, RESTAURANT_CONFIG_ID)
        config.modo_atendimento = "retirada"
        db_session.commit()

        with pytest.raises(ValidationError):
            _scenario_order(db_session, simple_store)

    def test_pickup_has_no_fee(self, db_session, simple_store):
        order = _scenario_order(db_session, simple_store, tipo_entrega="retirada", endereco=None)

        assert order.delivery_fee_cents == 0
        assert order.total_cents == 2100

    def test_checkout_links(self, db_session, simple_store):
        result = OrderService(db_session).checkout(
            CheckoutRequest(
                items=[CartLineInput(menu_item_id=simple_store.espetinho.id)],
                tipo_entrega="retirada",
                nome="Ana",
                whatsapp="75999999999",
            )
        )

        assert result.tracking_url.endswith(f"/pedido/{result.order.id}")
        assert result.confirmation.url.startswith("https://wa.me/5575999999999?text=")
        assert result.store_alert.url.startswith("https://wa.me/5575988887777?text=")


class TestTransitions:
    def test_full_lifecycle(self, db_session, simple_store, staff_authz):
        order = _scenario_order(db_session, simple_store)
        service = OrderService(db_session)

        for status in (OrderStatus.PREPARING, OrderStatus.SENT, OrderStatus.COMPLETED):
            service.transition(order.id, status, staff_authz)

        history = service.history(order.id)
        assert [h.status for h in history] == [
            OrderStatus.PENDING,
            OrderStatus.PREPARING,
            OrderStatus.SENT,
            OrderStatus.COMPLETED,
        ]
        timestamps = [as_utc(h.changed_at) for h in history]
        assert all(earlier < later for earlier, later in zip(timestamps, timestamps[1:]))
        assert service.get_order(order.id).status == OrderStatus.COMPLETED

        for status in OrderStatus.ALL:
            with pytest.raises(InvalidTransitionError):
                service.transition(order.id, status, staff_authz)

    def test_completed_cannot_go_back(self, db_session, simple_store, staff_authz):
        order = _scenario_order(db_session, simple_store)
        service = OrderService(db_session)
        for status in (OrderStatus.PREPARING, OrderStatus.SENT, OrderStatus.COMPLETED):
            service.transition(order.id, status, staff_authz)

        with pytest.raises(InvalidTransitionError):
            service.transition(order.id, OrderStatus.PREPARING, staff_authz)

        assert service.get_order(order.id).status == OrderStatus.COMPLETED
        assert len(service.history(order.id)) == 4

    @pytest.mark.parametrize("path", [
        [],
        [OrderStatus.PREPARING],
        [OrderStatus.PREPARING, OrderStatus.SENT],
    ])
    def test_cancel_from_every_active_state(self, db_session, simple_store, staff_authz, path):
        order = _scenario_order(db_session, simple_store)
        service = OrderService(db_session)
        for status in path:
            service.transition(order.id, status, staff_authz)

        result = service.transition(order.id, OrderStatus.CANCELED, staff_authz)

        assert result.order.status == OrderStatus.CANCELED
        assert result.notification is None
        assert _history_statuses(db_session, order.id)[-1] == OrderStatus.CANCELED

    def test_skipping_a_step_rejected(self, db_session, simple_store, staff_authz):
        order = _scenario_order(db_session, simple_store)

        with pytest.raises(InvalidTransitionError):
            OrderService(db_session).transition(order.id, OrderStatus.SENT, staff_authz)

        assert _history_statuses(db_session, order.id) == [OrderStatus.PENDING]

    def test_history_is_a_valid_walk(self, db_session, simple_store, staff_authz):
        order = _scenario_order(db_session, simple_store)
        service = OrderService(db_session)
        service.transition(order.id, OrderStatus.PREPARING, staff_authz)
        service.transition(order.id, OrderStatus.CANCELED, staff_authz)

        statuses = _history_statuses(db_session, order.id)
        for current, following in zip(statuses, statuses[1:]):
            assert following in ORDER_TRANSITIONS[current]

    def test_without_permission_forbidden(self, db_session, simple_store):
        order = _scenario_order(db_session, simple_store)
        user = create_staff(db_session, "semacesso@test.com", "atendente", permissions=["view_dashboard"])
        authz = AuthorizationSession(loader_for_db(db_session))
        authz.load_permissions(user.id)

        with pytest.raises(ForbiddenError):
            OrderService(db_session).transition(order.id, OrderStatus.PREPARING, authz)
        assert OrderService(db_session).get_order(order.id).status == OrderStatus.PENDING

    def test_unknown_order(self, db_session, staff_authz):
        with pytest.raises(OrderNotFoundError):
            OrderService(db_session).transition("nao-existe", OrderStatus.PREPARING, staff_authz)

    def test_concurrent_change_conflicts(self, db_session, simple_store, staff_authz, monkeypatch):
        order = _scenario_order(db_session, simple_store)
        service = OrderService(db_session)
        service.transition(order.id, OrderStatus.PREPARING, staff_authz)

        # Stale read: the operator still sees the order as pending
        monkeypatch.setattr(service, "get_order", lambda order_id: SimpleNamespace(status=OrderStatus.PENDING))

        with pytest.raises(ConflictError):
            service.transition(order.id, OrderStatus.PREPARING, staff_authz)
        assert _history_statuses(db_session, order.id) == [OrderStatus.PENDING, OrderStatus.PREPARING]

    def test_forward_step_returns_customer_message(self, db_session, simple_store, staff_authz):
        order = _scenario_order(db_session, simple_store)

        result = OrderService(db_session).transition(order.id, OrderStatus.PREPARING, staff_authz)

        assert result.previous_status == OrderStatus.PENDING
        assert result.history.changed_by == staff_authz.user_id
        assert "EM PREPARO" in result.notification.message

    def test_cancellation_message_requires_cancelled_order(self, db_session, simple_store, staff_authz):
        order = _scenario_order(db_session, simple_store)
        service = OrderService(db_session)

        with pytest.raises(ValidationError):
            service.cancellation_message(order.id, "Acabou o carvão", staff_authz)

        service.transition(order.id, OrderStatus.CANCELED, staff_authz)
        message = service.cancellation_message(order.id, "Acabou o carvão", staff_authz)
        assert "Acabou o carvão" in message.message


class TestOrderEndpoints:
    def test_checkout_endpoint(self, client, fake_redis, picanha):
        response = client.post("/api/public/checkout", json=checkout_payload(picanha, 2, ["Ao ponto"]))

        assert response.status_code == 201
        data = response.json()
        assert data["order"]["status"] == "pendente"
        assert data["order"]["total_cents"] == 5200
        assert data["tracking_url"].endswith(data["order"]["id"])
        assert data["customer_whatsapp_link"].startswith("https://wa.me/")
        assert fake_redis.channels_published() == ["orders:admin"]

    def test_checkout_missing_required_complement(self, client, picanha):
        response = client.post("/api/public/checkout", json=checkout_payload(picanha))

        assert response.status_code == 400
        assert "Ponto da carne" in response.json()["detail"]

    def test_checkout_duplicate_lines_past_limit_rejected(self, client, db_session, picanha):
        payload = checkout_payload(picanha, 60, ["Ao ponto"])
        payload["items"] = payload["items"] * 2

        response = client.post("/api/public/checkout", json=payload)

        assert response.status_code == 400
        assert "99" in response.json()["detail"]
        assert db_session.scalar(select(func.count(Order.id))) == 0

    def test_checkout_survives_redis_outage(self, client, fake_redis, picanha):
        fake_redis.fail_publish = True

        response = client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"]))

        assert response.status_code == 201

    def test_public_order_lookup(self, client, picanha):
        created = client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])).json()

        response = client.get(f"/api/public/orders/{created['order']['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["order"]["id"] == created["order"]["id"]
        assert [h["status"] for h in data["history"]] == ["pendente"]

    def test_public_order_lookup_unknown(self, client, db_session):
        assert client.get("/api/public/orders/00000000-0000-0000-0000-000000000000").status_code == 404

    def test_transition_endpoint(self, client, fake_redis, picanha, kitchen_headers):
        order_id = client.post(
            "/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])
        ).json()["order"]["id"]

        response = client.post(
            f"/api/admin/orders/{order_id}/transition",
            json={"status": "em_preparo"},
            headers=kitchen_headers,
        )

        assert response.status_code == 200
        assert response.json()["order"]["status"] == "em_preparo"
        assert response.json()["notification"]["url"].startswith("https://wa.me/")
        assert f"order:{order_id}" in fake_redis.channels_published()

    def test_invalid_transition_endpoint(self, client, picanha, auth_headers):
        order_id = client.post(
            "/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])
        ).json()["order"]["id"]

        response = client.post(
            f"/api/admin/orders/{order_id}/transition",
            json={"status": "concluido"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert client.get(f"/api/public/orders/{order_id}").json()["order"]["status"] == "pendente"

    def test_unknown_status_value_rejected(self, client, picanha, auth_headers):
        order_id = client.post(
            "/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])
        ).json()["order"]["id"]

        response = client.post(
            f"/api/admin/orders/{order_id}/transition",
            json={"status": "pronto"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_order_detail_lists_allowed_transitions(self, client, picanha, auth_headers):
        order_id = client.post(
            "/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])
        ).json()["order"]["id"]

        response = client.get(f"/api/admin/orders/{order_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["allowed_transitions"] == ["em_preparo", "cancelado"]

    def test_board_groups_by_status(self, client, picanha, auth_headers):
        client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"]))

        response = client.get("/api/admin/orders/board", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert len(data["columns"]["pendente"]) == 1
        assert data["columns"]["concluido"] == []
