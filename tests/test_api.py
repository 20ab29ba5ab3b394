from __future__ import annotations

import copy
from decimal import Decimal

import pytest

from conftest import TEST_CONFIG
from garagedesk.config import config_from_dict
from garagedesk.db import DbError
from garagedesk.web.app import create_app
from garagedesk.web.policy import POLICY, PUBLIC_ENDPOINTS


def _onboard(http, headers, stock=10):
    resp = http.post(
        "/api/clients/with-vehicles",
        json={
            "clientName": "Amina Hassan",
            "phone": "0722000002",
            "vehicles": [{"regNo": "KDD 456B", "makeModel": "Nissan Note", "vehicleType": "Hatchback"}],
        },
        headers=headers,
    )
    assert resp.status_code == 201, resp.get_json()
    vehicle_id = resp.get_json()["data"]["vehicles"][0]["id"]

    resp = http.post(
        "/api/parts",
        json={"name": "Brake pad", "part_number": "BP-01", "price": "200.00", "stock_quantity": stock},
        headers=headers,
    )
    assert resp.status_code == 201, resp.get_json()
    return vehicle_id, resp.get_json()["data"]["part"]["id"]


def _create_service(http, headers, vehicle_id, part_id, quantity=2, status="completed"):
    return http.post(
        "/api/services",
        json={
            "vehicle_id": vehicle_id,
            "description": "Brake service",
            "labour_cost": 600,
            "status": status,
            "parts": [{"part_id": part_id, "quantity": quantity, "unit_price": 200}],
        },
        headers=headers,
    )


def test_public_endpoints(http):
    assert http.get("/health").get_json()["status"] == "OK"
    assert http.get("/").status_code == 200


def test_missing_token(http):
    resp = http.get("/api/parts")
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Access token required"}


def test_garbage_token(http):
    resp = http.get("/api/parts", headers={"Authorization": "Bearer not.a.token"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired token"


def test_every_route_is_covered_by_the_policy_table(app):
    endpoints = {rule.endpoint for rule in app.url_map.iter_rules()} - {"static"}
    assert endpoints - set(POLICY) - PUBLIC_ENDPOINTS == set()
    assert set(POLICY) - endpoints == set()


@pytest.mark.parametrize(
    "role, method, path",
    [
        ("mechanic", "delete", "/api/clients/1"),
        ("receptionist", "post", "/api/services/1/parts"),
        ("mechanic", "post", "/api/invoices"),
        ("receptionist", "get", "/api/reports/summary"),
        ("receptionist", "post", "/api/auth/users"),
    ],
)
def test_role_denied(http, token_for, role, method, path):
    resp = getattr(http, method)(path, json={}, headers=token_for(role))
    assert resp.status_code == 403
    assert resp.get_json()["success"] is False


def test_unknown_route(http, admin_headers):
    resp = http.get("/api/nope", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Route not found: /api/nope"


def test_signup_login_me(http):
    resp = http.post(
        "/api/auth/signup",
        json={"full_name": "Grace Desk", "email": "grace@garage.test", "password": "Recept10n", "role": "receptionist"},
    )
    assert resp.status_code == 201

    resp = http.post("/api/auth/login", json={"email": "grace@garage.test", "password": "Recept10n"})
    assert resp.status_code == 200
    token = resp.get_json()["data"]["token"]

    resp = http.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.get_json()["data"]["user"]["full_name"] == "Grace Desk"


def test_signup_cannot_choose_a_role(http):
    resp = http.post(
        "/api/auth/signup",
        json={"full_name": "Mallory", "email": "mallory@garage.test", "password": "Passw0rd", "role": "admin"},
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["user"]["role"] == "receptionist"

    resp = http.get("/api/invoices/stats/revenue", headers={"Authorization": f"Bearer {data['token']}"})
    assert resp.status_code == 403


def test_admin_creates_user_with_role(http, admin_headers):
    resp = http.post(
        "/api/auth/users",
        json={"full_name": "Otieno Mech", "email": "otieno@garage.test", "password": "Passw0rd", "role": "mechanic"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"]["user"]["role"] == "mechanic"

    resp = http.post("/api/auth/login", json={"email": "otieno@garage.test", "password": "Passw0rd"})
    assert resp.get_json()["data"]["user"]["role"] == "mechanic"


def test_password_whitespace_survives_signup_and_login(http):
    resp = http.post(
        "/api/auth/signup", json={"full_name": "Space Case", "email": "space@garage.test", "password": "Abcdefg1 "}
    )
    assert resp.status_code == 201

    resp = http.post("/api/auth/login", json={"email": "space@garage.test", "password": "Abcdefg1 "})
    assert resp.status_code == 200
    resp = http.post("/api/auth/login", json={"email": "space@garage.test", "password": "Abcdefg1"})
    assert resp.status_code == 401


def test_non_string_password_is_a_validation_error(http):
    resp = http.post(
        "/api/auth/signup", json={"full_name": "Num Pass", "email": "num@garage.test", "password": 12345678}
    )
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == [{"field": "password", "message": "password must be a string"}]

    resp = http.post("/api/auth/login", json={"email": "num@garage.test", "password": 12345678})
    assert resp.status_code == 400


def test_service_to_paid_invoice(http, admin_headers, store):
    vehicle_id, part_id = _onboard(http, admin_headers)

    resp = _create_service(http, admin_headers, vehicle_id, part_id, status="in_progress")
    assert resp.status_code == 201
    service = resp.get_json()["data"]
    assert Decimal(service["parts_total"]) == Decimal("400")
    assert Decimal(service["total_amount"]) == Decimal("1000")
    assert store.tables["parts"][part_id]["stock_quantity"] == 8

    resp = http.post(
        "/api/invoices", json={"service_record_id": service["id"], "discount": 10}, headers=admin_headers
    )
    assert resp.status_code == 400

    resp = http.put(f"/api/services/{service['id']}", json={"status": "completed"}, headers=admin_headers)
    assert resp.status_code == 200

    resp = http.post(
        "/api/invoices",
        json={"service_record_id": service["id"], "discount": 10, "tax_rate": 16},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    invoice = resp.get_json()["data"]["invoice"]
    assert (invoice["subtotal"], invoice["tax_amount"], invoice["total_amount"]) == ("1000.00", "144.00", "1044.00")
    assert invoice["invoice_number"].startswith("INV-")

    resp = http.post("/api/invoices", json={"service_record_id": service["id"]}, headers=admin_headers)
    assert resp.status_code == 409

    resp = http.patch(f"/api/invoices/{invoice['id']}/pay", json={"payment_method": "mpesa"}, headers=admin_headers)
    assert resp.get_json()["data"]["invoice"]["payment_status"] == "paid"

    resp = http.get("/api/invoices?payment_status=paid", headers=admin_headers)
    body = resp.get_json()
    assert body["pagination"]["totalItems"] == 1
    assert body["data"][0]["id"] == invoice["id"]


def test_default_tax_rate_comes_from_config(http, admin_headers):
    vehicle_id, part_id = _onboard(http, admin_headers)
    service = _create_service(http, admin_headers, vehicle_id, part_id).get_json()["data"]
    resp = http.post("/api/invoices", json={"service_record_id": service["id"]}, headers=admin_headers)
    assert resp.get_json()["data"]["invoice"]["total_amount"] == "1160.00"


def test_insufficient_stock_over_http(http, admin_headers, store):
    vehicle_id, part_id = _onboard(http, admin_headers, stock=5)
    resp = _create_service(http, admin_headers, vehicle_id, part_id, quantity=6)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Insufficient stock for part 'Brake pad'. Available: 5, requested: 6"
    assert store.tables["parts"][part_id]["stock_quantity"] == 5
    assert store.rows("service_records") == []


def test_add_part_endpoint(http, token_for, admin_headers, store):
    vehicle_id, part_id = _onboard(http, admin_headers)
    service = _create_service(http, admin_headers, vehicle_id, part_id, status="pending").get_json()["data"]

    resp = http.post(
        f"/api/services/{service['id']}/parts",
        json={"part_id": part_id, "quantity": 1, "unit_price": "180.00"},
        headers=token_for("mechanic"),
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert Decimal(data["service"]["parts_total"]) == Decimal("580")
    assert Decimal(data["service"]["total_amount"]) == Decimal("1180")
    assert store.tables["parts"][part_id]["stock_quantity"] == 7


def test_stock_patch(http, admin_headers, store):
    _, part_id = _onboard(http, admin_headers, stock=3)

    resp = http.patch(f"/api/parts/{part_id}/stock", json={"quantity": 4, "operation": "add"}, headers=admin_headers)
    assert resp.get_json()["data"]["part"]["stock_quantity"] == 7

    resp = http.patch(
        f"/api/parts/{part_id}/stock", json={"quantity": 8, "operation": "subtract"}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert store.tables["parts"][part_id]["stock_quantity"] == 7

    resp = http.patch(f"/api/parts/{part_id}/stock", json={"quantity": 0}, headers=admin_headers)
    assert resp.status_code == 400


def test_part_update_cannot_touch_stock(http, admin_headers):
    _, part_id = _onboard(http, admin_headers)
    resp = http.put(f"/api/parts/{part_id}", json={"stock_quantity": 99}, headers=admin_headers)
    assert resp.status_code == 400


def test_used_part_cannot_be_deleted(http, admin_headers):
    vehicle_id, part_id = _onboard(http, admin_headers)
    _create_service(http, admin_headers, vehicle_id, part_id)
    resp = http.delete(f"/api/parts/{part_id}", headers=admin_headers)
    assert resp.status_code == 400


def test_field_errors_are_listed(http, admin_headers):
    resp = http.post("/api/services", json={"vehicle_id": "abc"}, headers=admin_headers)
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["errors"] == [{"field": "vehicle_id", "message": "vehicle_id must be an integer"}]


def test_pagination_over_http(http, admin_headers):
    for i in range(3):
        http.post("/api/clients", json={"name": f"Client {i}", "phone": f"07000000{i}"}, headers=admin_headers)
    body = http.get("/api/clients?page=2&limit=2", headers=admin_headers).get_json()
    assert len(body["data"]) == 1
    assert body["pagination"]["totalPages"] == 2
    assert body["pagination"]["hasNextPage"] is False
    assert body["pagination"]["hasPrevPage"] is True


def test_duplicate_phone_conflicts(http, admin_headers):
    payload = {"name": "Dup", "phone": "0799999999"}
    assert http.post("/api/clients", json=payload, headers=admin_headers).status_code == 201
    assert http.post("/api/clients", json=payload, headers=admin_headers).status_code == 409


def test_vehicle_needs_exactly_one_owner(http, admin_headers):
    resp = http.post(
        "/api/vehicles", json={"registration_number": "KZZ 1", "make_model": "Isuzu D-Max"}, headers=admin_headers
    )
    assert resp.status_code == 400


def test_reports_summary(http, admin_headers, monkeypatch):
    from garagedesk import reports

    monkeypatch.setattr(reports, "revenue_report", lambda conn, d1, d2: {"invoices_count": 0})
    monkeypatch.setattr(reports, "top_parts", lambda conn, limit=10: [])
    resp = http.get("/api/reports/summary", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["revenue"] == {"invoices_count": 0}


def _boom(*args, **kwargs):
    raise RuntimeError("disk on fire")


def test_internal_error_is_hidden_in_production(http, app, admin_headers, monkeypatch):
    monkeypatch.setattr(app.extensions["garagedesk.services"].repos.part_repo, "list_page", _boom)
    resp = http.get("/api/parts", headers=admin_headers)
    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Internal server error"}


def test_internal_error_detail_in_development(db, repos, monkeypatch):
    data = copy.deepcopy(TEST_CONFIG)
    data["app"]["environment"] = "development"
    app = create_app(config_from_dict(data), db=db, repos=repos)
    http = app.test_client()
    with db.transaction() as conn:
        auth = app.extensions["garagedesk.services"].auth
        token = auth.issue_token(
            auth.create_user(conn, full_name="Dev Admin", email="dev@garage.test", password="Dev12345", role="admin")
        )

    monkeypatch.setattr(repos.part_repo, "list_page", _boom)
    resp = http.get("/api/parts", headers={"Authorization": f"Bearer {token}"})
    body = resp.get_json()
    assert resp.status_code == 500
    assert body["message"] == "disk on fire"
    assert body["error"] == "RuntimeError"


def test_health_reports_database_outage(http, db, monkeypatch):
    def _down():
        raise DbError("Database unavailable: connection refused")

    monkeypatch.setattr(db, "ping", _down)
    resp = http.get("/health")
    body = resp.get_json()
    assert resp.status_code == 503
    assert body["status"] == "ERROR"
    assert body["message"] == "Database unavailable"


def test_amounts_with_sub_cent_precision_are_rejected(http, admin_headers, store):
    vehicle_id, part_id = _onboard(http, admin_headers)
    resp = http.post(
        "/api/services",
        json={
            "vehicle_id": vehicle_id,
            "labour_cost": "0.005",
            "parts": [{"part_id": part_id, "quantity": 3, "unit_price": "10.005"}],
        },
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert store.rows("service_records") == []
    assert store.tables["parts"][part_id]["stock_quantity"] == 10

    resp = http.post(
        "/api/services",
        json={"vehicle_id": vehicle_id, "labour_cost": "0.005", "parts": []},
        headers=admin_headers,
    )
    assert resp.get_json()["errors"] == [
        {"field": "labor_cost", "message": "labor_cost must have at most 2 decimal places"}
    ]

    service = _create_service(http, admin_headers, vehicle_id, part_id).get_json()["data"]
    for field in ("discount", "tax_rate"):
        resp = http.post(
            "/api/invoices", json={"service_record_id": service["id"], field: "12.345"}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["field"] == field
    assert store.rows("invoices") == []


def test_add_part_errors_name_the_body_field(http, admin_headers):
    vehicle_id, part_id = _onboard(http, admin_headers)
    service = _create_service(http, admin_headers, vehicle_id, part_id, status="pending").get_json()["data"]

    resp = http.post(
        f"/api/services/{service['id']}/parts",
        json={"part_id": part_id, "quantity": 0, "unit_price": "180.00"},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert [e["field"] for e in resp.get_json()["errors"]] == ["quantity"]

    resp = http.post(
        "/api/services",
        json={"vehicle_id": vehicle_id, "parts": [{"part_id": part_id, "quantity": 0, "unit_price": 1}]},
        headers=admin_headers,
    )
    assert [e["field"] for e in resp.get_json()["errors"]] == ["parts[0].quantity"]
