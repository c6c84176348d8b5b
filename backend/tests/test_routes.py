"""
HTTP API tests.

Verifies:
- protected endpoints return 401 without a token
- permission checks return 403 with the required code
- domain errors map to their status codes with {"error", "details"}
- the happy paths return the serialized order
"""

from datetime import timedelta

import pytest

from lotpos.services import sales_service
from lotpos.time_utils import today


@pytest.fixture
def cement(make_product):
    return make_product(name="Cement 50kg", price="100.00")


def _sale_body(product, qty=1, price="100.00", **extra):
    body = {"items": [{"product_id": product.id, "quantity": qty, "unit_price": price}]}
    body.update(extra)
    return body


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/sales/"),
            ("POST", "/api/sales/"),
            ("GET", "/api/sales/1"),
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/sales/production-queue"),
            ("GET", "/api/discount-approvals/"),
            ("GET", "/api/ledger/customer/1"),
            ("GET", "/api/inventory/batches?product_id=1"),
            ("GET", "/api/notifications/"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client):
        resp = client.get("/api/sales/", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:

    def test_create_invoice(self, client, cashier_headers, cement, make_batch):
        make_batch(cement, 10)
        resp = client.post("/api/sales/", json=_sale_body(cement, 2), headers=cashier_headers)

        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["total_amount"] == "200.00"
        assert order["items"][0]["item_assignments"][0]["quantity_deducted"] == "2.000"

    def test_insufficient_stock_is_400_with_details(self, client, cashier_headers, cement, make_batch):
        make_batch(cement, 1)
        resp = client.post("/api/sales/", json=_sale_body(cement, 3), headers=cashier_headers)

        assert resp.status_code == 400
        body = resp.get_json()
        assert "error" in body
        assert body["details"]["available"] == "1.000"

    def test_missing_items_is_400(self, client, cashier_headers):
        resp = client.post("/api/sales/", json={"items": []}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_production_user_cannot_sell(self, client, make_user, headers_for, cement):
        floor = make_user("floor", "Production")
        resp = client.post("/api/sales/", json=_sale_body(cement), headers=headers_for(floor))

        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "pos_access"

    def test_get_missing_order_is_404(self, client, cashier_headers):
        resp = client.get("/api/sales/999", headers=cashier_headers)
        assert resp.status_code == 404

    def test_other_branch_order_is_403(self, client, cashier_headers, admin_caller, cement, other_branch):
        remote = sales_service.create_sale(
            admin_caller, items=_sale_body(cement)["items"], order_type="draft", branch_id=other_branch.id
        )
        resp = client.get(f"/api/sales/{remote.id}", headers=cashier_headers)
        assert resp.status_code == 403

    def test_list_filters_by_type(self, client, cashier_headers, cement):
        client.post("/api/sales/", json=_sale_body(cement, order_type="draft"), headers=cashier_headers)
        client.post("/api/sales/", json=_sale_body(cement, order_type="quotation"), headers=cashier_headers)

        resp = client.get("/api/sales/?order_type=draft", headers=cashier_headers)
        assert resp.status_code == 200
        assert [o["order_type"] for o in resp.get_json()["orders"]] == ["draft"]

    def test_date_only_range_covers_the_whole_day(self, client, cashier_headers, cement):
        client.post("/api/sales/", json=_sale_body(cement, order_type="draft"), headers=cashier_headers)
        day = today().isoformat()

        resp = client.get(f"/api/sales/?start_date={day}&end_date={day}", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["total"] == 1

        earlier = (today() - timedelta(days=1)).isoformat()
        resp = client.get(f"/api/sales/?end_date={earlier}", headers=cashier_headers)
        assert resp.get_json()["total"] == 0

    def test_cancel_requires_manager(self, client, cashier_headers, manager_headers, cement, make_batch):
        make_batch(cement, 10)
        created = client.post("/api/sales/", json=_sale_body(cement), headers=cashier_headers).get_json()
        order_id = created["order"]["id"]

        assert client.delete(f"/api/sales/{order_id}", headers=cashier_headers).status_code == 403

        resp = client.delete(f"/api/sales/{order_id}", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["cancellation"]["restored_batches"][0]["quantity_restored"] == "1.000"

        assert client.delete(f"/api/sales/{order_id}", headers=manager_headers).status_code == 404

    def test_convert_draft(self, client, cashier_headers, cement, make_batch):
        make_batch(cement, 10)
        draft = client.post(
            "/api/sales/", json=_sale_body(cement, order_type="draft"), headers=cashier_headers
        ).get_json()["order"]

        resp = client.post(f"/api/sales/drafts/{draft['id']}/convert", json={}, headers=cashier_headers)

        assert resp.status_code == 200
        assert resp.get_json()["order"]["order_type"] == "invoice"
        assert resp.get_json()["order"]["invoice_number"] == draft["invoice_number"]


# =============================================================================
# DISCOUNTS AND PRODUCTION
# =============================================================================


class TestWorkflowRoutes:

    def test_manager_approves_discount(self, client, cashier_headers, manager_headers, cement, make_batch):
        make_batch(cement, 10)
        order = client.post(
            "/api/sales/", json=_sale_body(cement, price="90.00"), headers=cashier_headers
        ).get_json()["order"]
        assert order["discount_status"] == "pending"

        assert client.put(f"/api/discount-approvals/{order['id']}/approve", json={}, headers=cashier_headers).status_code == 403

        resp = client.put(f"/api/discount-approvals/{order['id']}/approve", json={}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["order"]["discount_status"] == "approved"

    def test_invalid_production_transition(self, client, cashier_headers, manager_headers, make_product, make_recipe, make_batch):
        coil = make_product(name="Steel coil", price="5.00")
        make_batch(coil, 50)
        roofing = make_recipe(coil, factor="2", price="30.00")
        order = client.post(
            "/api/sales/", json=_sale_body(roofing, price="30.00"), headers=cashier_headers
        ).get_json()["order"]

        resp = client.put(
            f"/api/sales/{order['id']}/production-status",
            json={"production_status": "delivered", "dispatcher_name": "Bola"},
            headers=manager_headers,
        )

        assert resp.status_code == 400
        assert resp.get_json()["details"]["allowed_transitions"] == ["queue", "rejected"]


# =============================================================================
# SYSTEM AND AUTH
# =============================================================================


class TestSystemRoutes:

    def test_health(self, client, setup_roles):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_health_degraded_without_roles(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["roles"]["status"] == "degraded"

    def test_me(self, client, cashier, cashier_headers):
        resp = client.get("/api/auth/me", headers=cashier_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["branch_id"] == cashier.branch_id
        assert "pos_access" in body["permissions"]

    def test_logout_revokes_token(self, client, cashier_headers):
        assert client.post("/api/auth/logout", headers=cashier_headers).status_code == 200
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401

    def test_no_cors_headers_by_default(self, client):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_cors_headers_for_configured_origin(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "CORS_ORIGINS", ["https://pos.example.com"])

        allowed = client.get("/api/health", headers={"Origin": "https://pos.example.com"})
        assert allowed.headers["Access-Control-Allow-Origin"] == "https://pos.example.com"
        assert allowed.headers["Vary"] == "Origin"

        other = client.get("/api/health", headers={"Origin": "https://elsewhere.example.com"})
        assert "Access-Control-Allow-Origin" not in other.headers
