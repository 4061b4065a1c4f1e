"""
Tests for catalog and store administration, plus the public storefront reads.
"""

import json

import pytest

from tests.conftest import checkout_payload, create_staff, login


def _create_group(client, headers, **overrides):
    body = {
        "nome": "Molhos",
        "tipo": "multiple",
        "options": [
            {"nome": "Barbecue", "additional_price_cents": 200},
            {"nome": "Alho", "additional_price_cents": 150},
        ],
    }
    body.update(overrides)
    response = client.post("/api/admin/complement-groups", json=body, headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()


class TestCategories:
    def test_create_assigns_next_order(self, client, auth_headers):
        first = client.post("/api/admin/categories", json={"nome": "Espetos"}, headers=auth_headers)
        second = client.post("/api/admin/categories", json={"nome": "Bebidas"}, headers=auth_headers)

        assert first.status_code == 201
        assert second.json()["ordem"] == first.json()["ordem"] + 1

    def test_update_and_list(self, client, auth_headers):
        created = client.post("/api/admin/categories", json={"nome": "Espetos"}, headers=auth_headers).json()

        response = client.patch(
            f"/api/admin/categories/{created['id']}",
            json={"nome": "Espetinhos", "ativo": False},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["ativo"] is False
        names = [c["nome"] for c in client.get("/api/admin/categories", headers=auth_headers).json()]
        assert names == ["Espetinhos"]

    def test_delete_with_items_rejected(self, client, auth_headers):
        category = client.post("/api/admin/categories", json={"nome": "Espetos"}, headers=auth_headers).json()
        client.post(
            "/api/admin/menu-items",
            json={"nome": "Espeto de frango", "price_cents": 900, "category_id": category["id"]},
            headers=auth_headers,
        )

        response = client.delete(f"/api/admin/categories/{category['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_delete_empty_category(self, client, auth_headers):
        category = client.post("/api/admin/categories", json={"nome": "Sobremesas"}, headers=auth_headers).json()

        assert client.delete(f"/api/admin/categories/{category['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/admin/categories/{category['id']}", headers=auth_headers).status_code == 404

    def test_blank_name_rejected(self, client, auth_headers):
        response = client.post("/api/admin/categories", json={"nome": ""}, headers=auth_headers)
        assert response.status_code == 422


class TestMenuItems:
    def test_create_with_complement_groups(self, client, auth_headers):
        group = _create_group(client, auth_headers)

        response = client.post(
            "/api/admin/menu-items",
            json={
                "nome": "Espeto de carne",
                "price_cents": 1200,
                "complement_group_ids": [group["id"]],
                "image_urls": ["https://cdn.example.com/espeto.jpg"],
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["complement_group_ids"] == [group["id"]]
        assert data["image_urls"] == ["https://cdn.example.com/espeto.jpg"]

    def test_unknown_group_rejected(self, client, auth_headers):
        response = client.post(
            "/api/admin/menu-items",
            json={"nome": "Espeto", "price_cents": 1200, "complement_group_ids": [999]},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_unknown_category_rejected(self, client, auth_headers):
        response = client.post(
            "/api/admin/menu-items",
            json={"nome": "Espeto", "price_cents": 1200, "category_id": 999},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("price", [0, -100])
    def test_non_positive_price_rejected(self, client, auth_headers, price):
        response = client.post(
            "/api/admin/menu-items",
            json={"nome": "Espeto", "price_cents": price},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_unlink_groups_on_update(self, client, auth_headers):
        group = _create_group(client, auth_headers)
        item = client.post(
            "/api/admin/menu-items",
            json={"nome": "Espeto", "price_cents": 1200, "complement_group_ids": [group["id"]]},
            headers=auth_headers,
        ).json()

        response = client.patch(
            f"/api/admin/menu-items/{item['id']}",
            json={"complement_group_ids": []},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["complement_group_ids"] == []

    def test_search(self, client, auth_headers):
        for nome in ("Espeto de frango", "Espeto de carne", "Guaraná"):
            client.post("/api/admin/menu-items", json={"nome": nome, "price_cents": 500}, headers=auth_headers)

        response = client.get("/api/admin/menu-items", params={"search": "espeto"}, headers=auth_headers)

        assert sorted(i["nome"] for i in response.json()) == ["Espeto de carne", "Espeto de frango"]

    def test_price_change_keeps_order_snapshot(self, client, auth_headers, picanha):
        order = client.post(
            "/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"])
        ).json()["order"]

        client.patch(f"/api/admin/menu-items/{picanha.id}", json={"price_cents": 9900}, headers=auth_headers)

        detail = client.get(f"/api/public/orders/{order['id']}").json()
        assert detail["order"]["items"][0]["unit_price_cents"] == 2600


class TestComplementGroups:
    def test_options_created_in_order(self, client, auth_headers):
        group = _create_group(client, auth_headers)

        assert [o["nome"] for o in group["options"]] == ["Barbecue", "Alho"]
        assert [o["ordem"] for o in group["options"]] == [0, 1]

    def test_explicit_option_order_kept(self, client, auth_headers):
        response = client.post(
            "/api/admin/complement-groups",
            json={"nome": "Molhos", "options": [{"nome": "Alho", "ordem": 5}, {"nome": "Barbecue", "ordem": 1}]},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert [(o["nome"], o["ordem"]) for o in response.json()["options"]] == [("Barbecue", 1), ("Alho", 5)]

    def test_duplicate_option_names_rejected(self, client, auth_headers):
        response = client.post(
            "/api/admin/complement-groups",
            json={"nome": "Molhos", "options": [{"nome": "Alho"}, {"nome": "alho "}]},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_required_group_needs_options(self, client, auth_headers):
        response = client.post(
            "/api/admin/complement-groups",
            json={"nome": "Ponto", "obrigatorio": True, "options": []},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_replace_options(self, client, auth_headers):
        group = _create_group(client, auth_headers)

        response = client.patch(
            f"/api/admin/complement-groups/{group['id']}",
            json={"options": [{"nome": "Pimenta", "additional_price_cents": 100}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [o["nome"] for o in response.json()["options"]] == ["Pimenta"]


class TestRestaurantConfig:
    def test_defaults_before_first_save(self, client, auth_headers):
        response = client.get("/api/admin/config", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status_funcionamento"] == "aberto"

    def test_save_is_last_write_wins(self, client, auth_headers):
        body = {"nome_restaurante": "Espetaria do Zé", "taxa_entrega_cents": 700}
        assert client.put("/api/admin/config", json=body, headers=auth_headers).status_code == 200

        body = {"nome_restaurante": "Espetaria do Zé", "status_funcionamento": "fechado"}
        response = client.put("/api/admin/config", json=body, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status_funcionamento"] == "fechado"
        assert data["taxa_entrega_cents"] == 0

    def test_invalid_color_rejected(self, client, auth_headers):
        response = client.put(
            "/api/admin/config",
            json={"nome_restaurante": "Espetaria", "cor_primaria": "vermelho"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_public_config_reports_accepting_orders(self, client, auth_headers):
        client.put(
            "/api/admin/config",
            json={"nome_restaurante": "Espetaria", "status_funcionamento": "fechado", "aceitar_loja_fechada": True},
            headers=auth_headers,
        )

        data = client.get("/api/public/config").json()

        assert data["status_funcionamento"] == "fechado"
        assert data["accepting_orders"] is True

    def test_save_is_audited(self, client, auth_headers):
        client.put("/api/admin/config", json={"nome_restaurante": "Espetaria"}, headers=auth_headers)

        entries = client.get(
            "/api/admin/audit-log", params={"table_name": "restaurant_config"}, headers=auth_headers
        ).json()

        assert len(entries) == 1
        assert entries[0]["action"] == "CREATE"
        assert json.loads(entries[0]["changes"])["nome_restaurante"] == "Espetaria"


class TestDeliveryZones:
    def test_crud(self, client, auth_headers):
        created = client.post(
            "/api/admin/delivery-zones",
            json={"nome": "Centro", "taxa_entrega_cents": 500, "pedido_minimo_cents": 2000},
            headers=auth_headers,
        )
        assert created.status_code == 201
        zone_id = created.json()["id"]

        updated = client.patch(
            f"/api/admin/delivery-zones/{zone_id}",
            json={"taxa_entrega_cents": 600},
            headers=auth_headers,
        )
        assert updated.json()["taxa_entrega_cents"] == 600

        assert client.delete(f"/api/admin/delivery-zones/{zone_id}", headers=auth_headers).status_code == 204
        assert client.get("/api/admin/delivery-zones", headers=auth_headers).json() == []

    def test_duplicate_name_rejected(self, client, auth_headers):
        client.post("/api/admin/delivery-zones", json={"nome": "Centro"}, headers=auth_headers)

        response = client.post("/api/admin/delivery-zones", json={"nome": "centro"}, headers=auth_headers)
        assert response.status_code == 400

    def test_public_list_hides_inactive(self, client, auth_headers):
        client.post("/api/admin/delivery-zones", json={"nome": "Centro"}, headers=auth_headers)
        client.post("/api/admin/delivery-zones", json={"nome": "Zona Rural", "ativo": False}, headers=auth_headers)

        names = [z["nome"] for z in client.get("/api/public/delivery-zones").json()]
        assert names == ["Centro"]


class TestStorefrontMenu:
    def test_menu_includes_complements(self, client, seed_menu):
        data = client.get("/api/public/menu").json()

        picanha = next(i for i in data["items"] if i["nome"] == "Espeto de Picanha")
        groups = {g["nome"]: g for g in picanha["complement_groups"]}
        assert groups["Ponto da carne"]["obrigatorio"] is True
        assert groups["Ponto da carne"]["tipo"] == "single"
        assert {o["nome"] for o in groups["Adicionais"]["options"]} >= {"Bacon", "Queijo"}

    def test_hidden_items_and_categories(self, client, auth_headers):
        hidden = client.post(
            "/api/admin/categories", json={"nome": "Oculta", "ativo": False}, headers=auth_headers
        ).json()
        client.post(
            "/api/admin/menu-items",
            json={"nome": "Na categoria oculta", "price_cents": 500, "category_id": hidden["id"]},
            headers=auth_headers,
        )
        client.post(
            "/api/admin/menu-items",
            json={"nome": "Indisponível", "price_cents": 500, "ativo": False},
            headers=auth_headers,
        )
        client.post("/api/admin/menu-items", json={"nome": "Visível", "price_cents": 500}, headers=auth_headers)

        data = client.get("/api/public/menu").json()

        assert [i["nome"] for i in data["items"]] == ["Visível"]
        assert data["categories"] == []

    def test_featured_first(self, client, auth_headers):
        client.post("/api/admin/menu-items", json={"nome": "A comum", "price_cents": 500}, headers=auth_headers)
        client.post(
            "/api/admin/menu-items",
            json={"nome": "Z destaque", "price_cents": 500, "destaque": True},
            headers=auth_headers,
        )

        names = [i["nome"] for i in client.get("/api/public/menu").json()["items"]]
        assert names == ["Z destaque", "A comum"]


class TestUsersAdmin:
    def test_create_with_role_template(self, client, auth_headers):
        response = client.post(
            "/api/admin/users",
            json={"email": "Cozinha@Test.com", "password": "senha12345", "nome": "Cozinha", "role": "cozinha"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "cozinha@test.com"
        assert data["permissions"] == ["manage_orders"]

    def test_duplicate_email_rejected(self, client, auth_headers, kitchen_user):
        response = client.post(
            "/api/admin/users",
            json={"email": kitchen_user.email, "password": "senha12345", "nome": "Outro", "role": "cozinha"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_unknown_permission_rejected(self, client, auth_headers):
        response = client.post(
            "/api/admin/users",
            json={
                "email": "novo@test.com",
                "password": "senha12345",
                "nome": "Novo",
                "role": "atendente",
                "permissions": ["launch_rockets"],
            },
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_cannot_delete_self(self, client, auth_headers, admin_user):
        response = client.delete(f"/api/admin/users/{admin_user.id}", headers=auth_headers)
        assert response.status_code == 400

    def test_cannot_demote_last_admin(self, client, db_session, auth_headers, admin_user):
        create_staff(db_session, "gerente@test.com", "gerente", permissions=["manage_users"])
        headers = login(client, "gerente@test.com")

        response = client.patch(f"/api/admin/users/{admin_user.id}", json={"role": "gerente"}, headers=headers)
        assert response.status_code == 400


class TestDashboard:
    def test_counts(self, client, auth_headers, seed_menu):
        picanha = seed_menu["Espeto de Picanha"]
        client.post("/api/public/checkout", json=checkout_payload(picanha, options=["Ao ponto"]))

        data = client.get("/api/admin/dashboard", headers=auth_headers).json()

        assert data["total_customers"] == 1
        assert data["total_menu_items"] == len(seed_menu)
        assert data["pending_orders"] == 1
        assert len(data["recent_orders"]) == 1

    def test_requires_view_dashboard(self, client, kitchen_headers):
        assert client.get("/api/admin/dashboard", headers=kitchen_headers).status_code == 403
