"""HTTP surface: sessions, error kinds and an end-to-end scenario."""

import io
import json

import pytest

from salesflow.accounts import system_info
from salesflow.errors import Forbidden


def _login(client, username, password):
    return client.post("/api/login", json={"username": username, "password": password})


@pytest.fixture
def viewer_client(app, make_user):
    make_user("viewer", password="viewer-pass", permissions={"queries": True})
    client = app.test_client()
    assert _login(client, "viewer", "viewer-pass").status_code == 200
    return client


def test_unauthenticated_requests_get_401(client):
    response = client.get("/api/queries")
    assert response.status_code == 401
    assert response.get_json()["error"]["kind"] == "unauthenticated"


def test_login_returns_user_and_csrf_token(app, client):
    response = _login(client, app.config["ADMIN_USERNAME"], app.config["ADMIN_PASSWORD"])
    body = response.get_json()

    assert response.status_code == 200
    assert body["user"]["role"] == "admin"
    assert body["user"]["permissions"]["invoices"] is True
    assert "password_hash" not in body["user"]
    assert body["csrf_token"]

    check = client.get("/api/auth/check").get_json()
    assert check["authenticated"] is True


def test_bad_credentials(app, client):
    response = _login(client, app.config["ADMIN_USERNAME"], "wrong")
    assert response.status_code == 401
    assert client.get("/api/auth/check").status_code == 401


def test_inactive_user_cannot_log_in(client, make_user):
    make_user("former", password="pw", is_active=False)
    assert _login(client, "former", "pw").status_code == 401


def test_missing_capability_is_403(viewer_client):
    response = viewer_client.get("/api/quotations")
    assert response.status_code == 403
    assert response.get_json()["error"]["kind"] == "forbidden"

    assert viewer_client.get("/api/users").status_code == 403
    assert viewer_client.get("/api/queries").status_code == 200


def test_unknown_id_is_404(admin_client):
    response = admin_client.get("/api/invoices/999")
    assert response.status_code == 404
    assert response.get_json()["error"]["kind"] == "not_found"


def test_validation_error_is_400(admin_client):
    response = admin_client.post("/api/queries", json={"client_name": "Acme", "items": [{"quantity": "x"}]})
    assert response.status_code == 400
    assert response.get_json()["error"]["kind"] == "validation_error"


def test_end_to_end_scenario(admin_client):
    created = admin_client.post(
        "/api/queries",
        json={
            "client_name": "Acme",
            "query_sent_to": "S1, S2",
            "items": [{"description": "Valve", "quantity": 2}],
        },
    )
    assert created.status_code == 201
    query_id = created.get_json()["id"]

    refused = admin_client.put(
        f"/api/queries/{query_id}/status",
        json={"status": "submitted", "supplier_responses": [{"supplier": "S1", "response": "no"}]},
    )
    assert refused.status_code == 400

    submitted = admin_client.put(
        f"/api/queries/{query_id}/status",
        data={
            "status": "submitted",
            "supplier_responses": json.dumps([{"supplier": "S1", "response": "no"}, {"supplier": "S2", "response": "yes"}]),
            "supplier_attachment_1": (io.BytesIO(b"%PDF-1.4"), "offer.pdf"),
        },
        content_type="multipart/form-data",
    )
    assert submitted.status_code == 200
    assert submitted.get_json()["status"] == "submitted"

    query = admin_client.get(f"/api/queries/{query_id}").get_json()
    assert [r["supplier_name"] for r in query["supplier_responses"]] == ["S1", "S2"]
    assert query["supplier_responses"][1]["attachment_path"].startswith("uploads/queries/")

    quotation = admin_client.post(
        "/api/quotations",
        json={
            "quotation_number": "Q-100",
            "to_client": "Acme",
            "query_id": query_id,
            "items": [{"description": "Valve", "quantity": 2, "unit_price": "50"}],
        },
    )
    quotation_id = quotation.get_json()["id"]
    assert admin_client.get(f"/api/quotations/{quotation_id}").get_json()["grand_total"] == "118.00"

    approved = admin_client.post(f"/api/quotations/{quotation_id}/approve")
    assert approved.status_code == 201
    invoice_id = approved.get_json()["invoice_id"]

    invoice = admin_client.get(f"/api/invoices/{invoice_id}").get_json()
    assert invoice["ref_no"] == "Q-100"
    assert invoice["grand_total"] == "118.00"

    related = admin_client.get(f"/api/queries/{query_id}/related").get_json()
    assert [q["id"] for q in related["quotations"]] == [quotation_id]
    assert [i["id"] for i in related["invoices"]] == [invoice_id]

    assert admin_client.delete(f"/api/queries/{query_id}").status_code == 200
    assert admin_client.get("/api/queries").get_json() == []
    assert [q["id"] for q in admin_client.get("/api/queries?deleted=true").get_json()] == [query_id]

    logs = admin_client.get("/api/admin/activity-logs?entity_type=query").get_json()
    assert {entry["action"] for entry in logs["logs"]} == {"create", "update", "delete"}
    assert logs["pagination"]["total"] == 3


def test_suggestions_endpoint(admin_client):
    admin_client.post("/api/queries", json={"client_name": "Zeta", "query_sent_to": "S1"})
    assert admin_client.get("/api/suggestions/client").get_json() == ["Zeta"]
    assert admin_client.get("/api/suggestions/nope").status_code == 400


def test_excel_download(admin_client):
    query_id = admin_client.post("/api/queries", json={"items": [{"description": "Valve"}]}).get_json()["id"]
    response = admin_client.get(f"/api/queries/{query_id}/excel")
    assert response.status_code == 200
    assert "attachment" in response.headers["Content-Disposition"]


def test_user_administration(admin_client, admin_user):
    created = admin_client.post(
        "/api/users",
        json={"username": "sam", "password": "pw", "permissions": {"quotations": True, "bogus": True}},
    )
    assert created.status_code == 201
    user_id = created.get_json()["id"]

    user = admin_client.get(f"/api/users/{user_id}").get_json()
    assert user["permissions"] == {
        "queries": False,
        "quotations": True,
        "purchase_orders": False,
        "invoices": False,
        "admin": False,
    }
    assert user["status"] == "active"

    duplicate = admin_client.post("/api/users", json={"username": "sam", "password": "x"})
    assert duplicate.status_code == 400

    assert admin_client.delete(f"/api/users/{admin_user.id}").status_code == 400
    assert admin_client.delete(f"/api/users/{user_id}").status_code == 200
    assert admin_client.get(f"/api/users/{user_id}").get_json()["is_active"] is False


def test_system_info(admin_client, queries_only):
    admin_client.post("/api/queries", json={"client_name": "Acme"})

    info = admin_client.get("/api/admin/system-info").get_json()
    assert info["version"] == "1.0.0"
    assert info["database"]["type"] == "sqlite"
    assert info["statistics"]["total_queries"] == 1
    assert info["statistics"]["total_users"] == 2
    assert info["server"]["status"] == "running"

    with pytest.raises(Forbidden):
        system_info(queries_only)
