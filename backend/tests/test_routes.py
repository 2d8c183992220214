# Overview: Pytest coverage for the JSON API surface and its error envelope.

import pytest


@pytest.fixture
def stocked(db_session, make_product):
    return make_product(name="Arroz Costeño 1kg", stock=10, price=4.5, barcode="7751234")


def _sale_payload(product, cashier, quantity, **extra):
    payload = {
        "items": [{
            "product_id": product.id,
            "product_name": product.name,
            "quantity": quantity,
            "unit_price": product.price,
            "total_price": product.price * quantity,
        }],
        "subtotal": product.price * quantity,
        "total": product.price * quantity,
        "payment_method": "cash",
        "cashier_id": cashier.id,
        "cashier_name": cashier.full_name,
    }
    payload.update(extra)
    return payload


class TestSystemRoutes:
    def test_health(self, client, db_session):
        resp = client.get("/api/system/health")

        assert resp.status_code == 200
        assert resp.get_json()["database"]["status"] == "healthy"

    def test_unknown_route_uses_json_envelope(self, client, db_session):
        resp = client.get("/api/nope")

        assert resp.status_code == 404
        assert "error" in resp.get_json()


class TestAuthRoutes:
    def test_login(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "caja1", "password": "secreto123"})

        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == cashier.id

    def test_login_bad_credentials(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "caja1", "password": "mala"})
        assert resp.status_code == 401

    def test_login_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "caja1"})

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Usuario y contraseña son requeridos"
        assert body["details"] == {"fields": ["password"]}


class TestProductRoutes:
    def test_create_and_fetch(self, client, db_session):
        resp = client.post("/api/products", json={"name": "Atún Florida", "price": 6.2, "stock": 12})
        assert resp.status_code == 201
        product_id = resp.get_json()["product"]["id"]

        resp = client.get(f"/api/products/{product_id}")
        assert resp.status_code == 200
        assert resp.get_json()["product"]["stock"] == 12

    def test_validation_error_envelope(self, client, db_session):
        resp = client.post("/api/products", json={"price": 1})

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["details"]["field"] == "name"
        assert "requerido" in body["error"]

    def test_duplicate_barcode(self, client, stocked):
        resp = client.post("/api/products", json={"name": "Otro", "price": 1, "barcode": "7751234"})
        assert resp.status_code == 409

    def test_barcode_lookup(self, client, stocked):
        assert client.get("/api/products/barcode/7751234").get_json()["product"]["id"] == stocked.id
        assert client.get("/api/products/barcode/000").status_code == 404

    def test_patch_and_delete(self, client, stocked):
        resp = client.patch(f"/api/products/{stocked.id}", json={"price": 5, "category": None})
        assert resp.status_code == 200
        assert resp.get_json()["product"]["price"] == 5

        assert client.patch(f"/api/products/{stocked.id}", json={"bogus": 1}).status_code == 400

        assert client.delete(f"/api/products/{stocked.id}").status_code == 200
        assert client.get("/api/products").get_json()["count"] == 0
        assert client.delete("/api/products/missing").status_code == 404

    def test_adjust_and_restock(self, client, stocked, cashier):
        resp = client.post(
            f"/api/products/{stocked.id}/adjust-stock",
            json={"quantity": -4, "reason": "Merma", "user_id": cashier.id},
        )
        assert resp.status_code == 201
        assert resp.get_json()["product"]["stock"] == 6

        resp = client.post(f"/api/products/{stocked.id}/adjust-stock", json={"quantity": -7})
        assert resp.status_code == 409

        resp = client.post(f"/api/products/{stocked.id}/restock", json={"quantity": 4})
        assert resp.get_json()["product"]["stock"] == 10

        movements = client.get(f"/api/stock-movements?product_id={stocked.id}").get_json()
        assert [m["movement_type"] for m in movements["items"]] == ["restock", "adjustment"]

    def test_stock_lists_and_stats(self, client, db_session, make_product):
        make_product(name="Cero", stock=0)
        make_product(name="Poco", stock=2)
        make_product(name="Mucho", stock=20)

        assert client.get("/api/products/out-of-stock").get_json()["count"] == 1
        assert client.get("/api/products/low-stock").get_json()["count"] == 1
        stats = client.get("/api/products/stats").get_json()
        assert (stats["total"], stats["out_of_stock"], stats["low_stock"]) == (3, 1, 1)


class TestSaleRoutes:
    def test_sale_lifecycle(self, client, stocked, cashier):
        resp = client.post("/api/sales", json=_sale_payload(stocked, cashier, 3))
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["daily_number"] == 1
        sale_id = body["sale"]["id"]

        resp = client.post("/api/sales", json=_sale_payload(stocked, cashier, 8))
        assert resp.status_code == 409
        assert resp.get_json()["error"] == 'Stock insuficiente para "Arroz Costeño 1kg". Disponible: 7, Solicitado: 8'
        assert resp.get_json()["details"]["available"] == 7

        resp = client.get(f"/api/sales/{sale_id}")
        assert resp.get_json()["sale"]["items"][0]["quantity"] == 3

        resp = client.post(f"/api/sales/{sale_id}/cancel", json={"user_id": cashier.id})
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["is_active"] is False
        assert client.get(f"/api/products/{stocked.id}").get_json()["product"]["stock"] == 10

        resp = client.post(f"/api/sales/{sale_id}/cancel", json={"user_id": cashier.id})
        assert resp.status_code == 409

    def test_reports(self, client, stocked, cashier):
        client.post("/api/sales", json=_sale_payload(stocked, cashier, 2))
        client.post("/api/sales", json=_sale_payload(stocked, cashier, 1, payment_method="card"))

        assert client.get("/api/sales/today").get_json()["count"] == 2
        assert client.get("/api/sales?payment_method=card").get_json()["count"] == 1

        metrics = client.get("/api/sales/metrics").get_json()
        assert metrics["total_tickets"] == 2

        top = client.get("/api/sales/top-products?limit=5").get_json()["items"]
        assert top[0]["quantity"] == 3

        by_method = client.get("/api/sales/by-payment-method").get_json()["items"]
        assert {row["payment_method"] for row in by_method} == {"cash", "card"}

    def test_bad_sale_payload(self, client, stocked, cashier):
        resp = client.post("/api/sales", json=_sale_payload(stocked, cashier, 1, items=[]))
        assert resp.status_code == 400

        resp = client.post("/api/sales", json=_sale_payload(stocked, cashier, 1, total=0))
        assert resp.status_code == 400

    def test_unknown_sale(self, client, db_session):
        assert client.get("/api/sales/missing").status_code == 404
        assert client.post("/api/sales/missing/cancel", json={"user_id": "u1"}).status_code == 404
