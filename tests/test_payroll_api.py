import pytest
from flask_jwt_extended import create_access_token

from hrms_payroll.extensions import db

from conftest import employee, termination_request

API = "/api/v1/payroll"


@pytest.fixture
def client(app):
    return app.test_client()


def _headers(app, roles=("admin",), perms=()):
    token = create_access_token(identity="1", additional_claims={"roles": list(roles), "perms": list(perms)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(app):
    return _headers(app)


def _create_approved(client, admin, kind, **fields):
    r = client.post(f"{API}/config/{kind}", json=fields, headers=admin)
    assert r.status_code == 201, r.get_json()
    entity_id = r.get_json()["data"]["id"]
    r = client.post(f"{API}/config/{kind}/{entity_id}/approve", json={}, headers=admin)
    assert r.status_code == 200
    return entity_id


def test_requires_token_and_permission(app, client):
    assert client.get(f"{API}/runs").status_code == 401

    clerk = _headers(app, roles=("employee",), perms=("payroll.run.read",))
    assert client.get(f"{API}/runs", headers=clerk).status_code == 200
    r = client.post(f"{API}/runs", json={"run_id": "PR-1", "period": "2025-01-31"}, headers=clerk)
    assert r.status_code == 403

    wildcard = _headers(app, roles=("hr",), perms=("payroll.*",))
    r = client.post(f"{API}/runs", json={"run_id": "PR-1", "period": "2025-01-31"}, headers=wildcard)
    assert r.status_code == 201


def test_config_approval_flow(client, admin):
    r = client.post(f"{API}/config/tax-rule", json={"name": "Income Tax", "rate": 10}, headers=admin)
    assert r.status_code == 201
    body = r.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "draft"
    assert body["data"]["created_by"] == 1
    tax_id = body["data"]["id"]

    r = client.patch(f"{API}/config/tax-rule/{tax_id}", json={"rate": 12}, headers=admin)
    assert r.get_json()["data"]["rate"] == 12

    r = client.post(f"{API}/config/tax-rule/{tax_id}/approve", headers=admin)
    assert r.get_json()["data"]["status"] == "approved"
    assert r.get_json()["data"]["approved_by"] == 1

    r = client.post(f"{API}/config/tax-rule/{tax_id}/reject", headers=admin)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "CONFIG_TRANSITION"

    r = client.get(f"{API}/config/tax-rule?status=approved", headers=admin)
    assert [x["id"] for x in r.get_json()["data"]] == [tax_id]

    assert client.get(f"{API}/config/bogus", headers=admin).status_code == 404
    r = client.post(f"{API}/config/allowance", json={"amount": 10}, headers=admin)
    assert r.status_code == 422


def test_run_end_to_end(client, admin):
    _create_approved(client, admin, "pay-grade", grade="Junior", base_salary=9000)
    _create_approved(client, admin, "pay-grade", grade="Senior", base_salary=13000)
    housing = _create_approved(client, admin, "allowance", name="Housing", amount=2000)
    transport = _create_approved(client, admin, "allowance", name="Transport", amount=1000)
    _create_approved(client, admin, "tax-rule", name="Income Tax", rate=10)
    gratuity = _create_approved(client, admin, "termination-benefit", name="Gratuity", amount=10000)

    charlie = employee("CHARLIE", "Junior")
    kevin = employee("KEVIN", "Senior", bank=False)
    termination_request(charlie)
    from hrms_payroll.services.payroll_engine import engine_from_app
    engine = engine_from_app()
    engine.link_allowance(charlie.id, housing)
    engine.link_allowance(charlie.id, transport)

    r = client.post(f"{API}/disbursements/termination-benefits", headers=admin, json={
        "employee_id": charlie.id, "benefit_id": gratuity, "status": "approved", "payment_date": "2025-01-31",
    })
    assert r.status_code == 200, r.get_json()
    assert r.get_json()["data"]["payment_date"] == "2025-01-31"

    for reason, amount in (("Late arrival", 100), ("Unpaid leave", 250)):
        r = client.post(f"{API}/penalties", headers=admin,
                        json={"employee_id": "CHARLIE", "reason": reason, "amount": amount})
        assert r.status_code == 201

    r = client.post(f"{API}/runs", json={"run_id": "PR-2025-001", "period": "2025-01-31"}, headers=admin)
    assert r.status_code == 201

    r = client.post(f"{API}/runs/PR-2025-001/calculate", json={}, headers=admin)
    data = r.get_json()["data"]
    assert all(x["ok"] for x in data["results"])
    assert data["run"]["employee_count"] == 2
    assert data["run"]["exception_count"] == 1
    assert data["run"]["total_net_pay"] == 19450.0 + 11700.0

    r = client.get(f"{API}/runs/PR-2025-001/settlements", headers=admin)
    rows = {x["employee_id"]: x for x in r.get_json()["data"]}
    assert rows[charlie.id]["net_pay"] == 19450.0
    assert rows[charlie.id]["deductions_total"] == 2550.0
    assert rows[kevin.id]["exceptions"] == "Missing bank account"

    r = client.get(f"{API}/runs/PR-2025-001/exceptions", headers=admin)
    items = r.get_json()["data"]
    assert len(items) == 1 and items[0]["severity"] == "high"

    r = client.get(f"{API}/runs/PR-2025-001/payslips/{charlie.id}", headers=admin)
    slip = r.get_json()["data"]
    assert slip["employee"]["code"] == "CHARLIE"
    assert slip["earnings_details"]["base_salary"] == 9000.0
    assert slip["payment_status"] == "pending"

    r = client.delete(f"{API}/runs/PR-2025-001/employees/{kevin.id}/exceptions", headers=admin)
    assert r.get_json()["data"]["exceptions"] is None

    r = client.post(f"{API}/runs/PR-2025-001/finalize", headers=admin)
    assert r.get_json()["data"]["status"] == "finalized"
    assert r.get_json()["data"]["exception_count"] == 0

    r = client.post(f"{API}/runs/PR-2025-001/employees/{charlie.id}/settle", headers=admin)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "RUN_STATE"

    r = client.post(f"{API}/runs/PR-2025-001/pay", headers=admin)
    assert r.get_json()["data"]["payment_status"] == "paid"


def test_error_envelopes(client, admin):
    r = client.get(f"{API}/runs/NOPE", headers=admin)
    assert r.status_code == 404
    err = r.get_json()["error"]
    assert err["code"] == "RUN_NOT_FOUND"
    assert err["detail"] == {"run": "NOPE"}

    r = client.post(f"{API}/runs", json={"run_id": "PR-1", "period": "31/01/2025"}, headers=admin)
    assert r.status_code == 422

    r = client.post(f"{API}/disbursements/termination-benefits", headers=admin,
                    json={"employee_id": 1, "benefit_id": 1, "status": "approved"})
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "MISSING_REFERENCE"

    db.session.rollback()
    emp = employee("BOB", "Senior")
    r = client.post(f"{API}/disbursements/signing-bonuses", headers=admin,
                    json={"employee_id": emp.id, "signing_bonus_id": 1, "status": "pending",
                          "payment_date": "2025-01-31"})
    assert r.status_code == 422


def test_approve_needs_a_numeric_actor(app, client, admin):
    r = client.post(f"{API}/config/allowance", json={"name": "Housing", "amount": 2000}, headers=admin)
    entity_id = r.get_json()["data"]["id"]

    token = create_access_token(identity="admin", additional_claims={"roles": ["admin"], "perms": []})
    r = client.post(f"{API}/config/allowance/{entity_id}/approve",
                    headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 422

    r = client.get(f"{API}/config/allowance", headers=admin)
    row = r.get_json()["data"][0]
    assert row["status"] == "draft"
    assert row["approved_by"] is None


def test_bad_bodies_are_422(client, admin):
    r = client.post(f"{API}/config/tax-rule", json={"name": "Levy", "rate": -20}, headers=admin)
    assert r.status_code == 422

    client.post(f"{API}/runs", json={"run_id": "PR-1", "period": "2025-01-31"}, headers=admin)
    r = client.post(f"{API}/runs/PR-1/calculate", json=[1, 2], headers=admin)
    assert r.status_code == 422
    assert r.get_json()["success"] is False
