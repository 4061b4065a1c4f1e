"""
Tests for customer identification at checkout and customer admin.
"""

import pytest
from sqlalchemy import func, select

from rest_api.models import Customer
from rest_api.services.domain import CustomerService
from shared.utils.exceptions import ValidationError
from tests.conftest import checkout_payload


class TestResolveOrCreate:
    def test_creates_with_normalized_digits(self, db_session):
        customer = CustomerService(db_session).resolve_or_create("Ana", "+55 (75) 99999-9999", "Rua A, 1")
        db_session.commit()

        assert customer.id is not None
        assert customer.whatsapp_digits == "5575999999999"
        assert customer.whatsapp == "+55 (75) 99999-9999"

    def test_same_number_reuses_first_customer(self, db_session):
        service = CustomerService(db_session)
        first = service.resolve_or_create("Ana", "+5575999999999")
        db_session.commit()

        second = service.resolve_or_create("Ana Silva", "+55 75 99999-9999")
        db_session.commit()

        assert second.id == first.id
        assert second.nome == "Ana"
        assert db_session.scalar(select(func.count(Customer.id))) == 1

    def test_invalid_number_rejected(self, db_session):
        with pytest.raises(ValidationError):
            CustomerService(db_session).resolve_or_create("Ana", "12345")

    def test_deleted_customer_reactivated(self, db_session):
        service = CustomerService(db_session)
        customer = service.resolve_or_create("Ana", "75999999999")
        db_session.commit()
        service.delete(customer.id, None, None)

        again = service.resolve_or_create("Ana", "75999999999")
        db_session.commit()

        assert again.id == customer.id
        assert again.is_active is True


class TestCheckoutIdentity:
    def test_two_checkouts_same_phone_share_customer(self, client, db_session, picanha):
        first = client.post(
            "/api/public/checkout",
            json=checkout_payload(picanha, options=["Ao ponto"], nome="Ana", whatsapp="+5575999999999"),
        )
        second = client.post(
            "/api/public/checkout",
            json=checkout_payload(picanha, options=["Ao ponto"], nome="Ana Silva", whatsapp="+5575999999999"),
        )

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["order"]["customer"]["id"] == second.json()["order"]["customer"]["id"]
        assert second.json()["order"]["customer"]["nome"] == "Ana"
        assert db_session.scalar(select(func.count(Customer.id))) == 1


class TestCustomerAdmin:
    def test_search_includes_order_stats(self, client, picanha, attendant_headers):
        client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"]))
        client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Mal passado"]))

        response = client.get("/api/admin/customers", params={"q": "ana"}, headers=attendant_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["order_count"] == 2
        assert data[0]["last_order_at"] is not None

    def test_search_by_phone_digits(self, client, picanha, attendant_headers):
        client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"]))

        response = client.get("/api/admin/customers", params={"q": "99999"}, headers=attendant_headers)

        assert [c["nome"] for c in response.json()] == ["Ana Souza"]

    def test_search_wildcards_are_literal(self, client, picanha, attendant_headers):
        client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"]))

        response = client.get("/api/admin/customers", params={"q": "%"}, headers=attendant_headers)

        assert response.json() == []

    def test_customer_orders(self, client, picanha, attendant_headers):
        order = client.post(
            "/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])
        ).json()["order"]

        response = client.get(
            f"/api/admin/customers/{order['customer']['id']}/orders", headers=attendant_headers
        )

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [order["id"]]

    def test_create_duplicate_phone_rejected(self, client, attendant_headers):
        body = {"nome": "Bruno", "whatsapp": "75988880000"}
        assert client.post("/api/admin/customers", json=body, headers=attendant_headers).status_code == 201

        duplicate = client.post(
            "/api/admin/customers",
            json={"nome": "Bruno Lima", "whatsapp": "(75) 98888-0000"},
            headers=attendant_headers,
        )
        assert duplicate.status_code == 400

    def test_update_and_delete(self, client, attendant_headers):
        created = client.post(
            "/api/admin/customers",
            json={"nome": "Carla", "whatsapp": "75977770000"},
            headers=attendant_headers,
        ).json()

        updated = client.patch(
            f"/api/admin/customers/{created['id']}",
            json={"endereco": "Rua Nova, 5"},
            headers=attendant_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["endereco"] == "Rua Nova, 5"

        deleted = client.delete(f"/api/admin/customers/{created['id']}", headers=attendant_headers)
        assert deleted.status_code == 204
        assert client.get(f"/api/admin/customers/{created['id']}", headers=attendant_headers).status_code == 404

    def test_kitchen_cannot_list_customers(self, client, kitchen_headers):
        assert client.get("/api/admin/customers", headers=kitchen_headers).status_code == 403
