import os
from datetime import date
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from gongsu_api import create_app
from gongsu_api.extensions import db
from gongsu_api.models.audit import AuditLog
from gongsu_api.models.master import Company, Site, Team
from gongsu_api.models.user import User
from gongsu_api.models.worker import Worker
from gongsu_api.seed_rbac import run as seed_rbac
from gongsu_api.services.advance_ledger import seed_default_items


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    with app.app_context():
        db.create_all()
        seed_rbac()
        seed_default_items()
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, position, password="pw"):
    u = User(email=email, full_name=email.split("@")[0], position=position, status="active")
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return u


def _headers(user=None, roles=None):
    uid = str(user.id) if user else "1"
    claims = {"roles": roles if roles is not None else ["admin"], "email": user.email if user else "admin@x"}
    token = create_access_token(identity=uid, additional_claims=claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(app):
    return _headers(_user("admin@gongsu.local", "관리자"))


@pytest.fixture
def crew(app):
    co = Company(name="한빛건설")
    db.session.add(co)
    db.session.flush()
    team = Team(name="1팀", company_id=co.id, support_rate=Decimal("100000"))
    site = Site(name="A현장", company_id=co.id)
    db.session.add_all([team, site])
    db.session.flush()
    w = Worker(name="김철수", team_id=team.id, unit_price=Decimal("160000"))
    db.session.add(w)
    db.session.commit()
    return team, site, w


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "ok"


def test_login_and_me(client, app):
    u = _user("lead@gongsu.local", "팀장", password="secret")
    r = client.post("/api/v1/auth/login", json={"email": "LEAD@gongsu.local", "password": "secret"})
    assert r.status_code == 200
    body = r.get_json()["data"]
    assert "general" in body["user"]["roles"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access']}"})
    assert me.get_json()["data"]["id"] == u.id

    bad = client.post("/api/v1/auth/login", json={"email": "lead@gongsu.local", "password": "nope"})
    assert bad.status_code == 401


def test_requires_token(client):
    assert client.get("/api/v1/settlements?team_id=1&month=2025-05").status_code == 401


def test_report_to_settlement_flow(client, admin, crew):
    team, site, w = crew
    for day, entry in (("2025-05-02", {"workerId": w.id, "manDay": 1.0, "unitPrice": 150000}),
                       ("2025-05-03", {"workerId": w.id, "manDay": 0.5})):
        r = client.post("/api/v1/daily-reports", headers=admin,
                        json={"date": day, "site_id": site.id, "team_id": team.id, "workers": [entry]})
        assert r.status_code == 201, r.get_json()

    r = client.get(f"/api/v1/settlements?team_id={team.id}&month=2025-05", headers=admin)
    body = r.get_json()
    assert body["meta"]["source"] == "live"
    [e] = body["data"]
    assert (e["gross_pay"], e["tax_amount"], e["net_pay"]) == (230000, 7590, 222410)

    r = client.post("/api/v1/settlements/save", headers=admin, json={"entries": body["data"]})
    assert r.get_json()["data"]["saved"] == 1

    r = client.get(f"/api/v1/settlements?team_id={team.id}&month=2025-05", headers=admin)
    assert r.get_json()["meta"]["source"] == "saved"

    r = client.post(f"/api/v1/settlements/{e['id']}/status", headers=admin, json={"status": "paid"})
    assert r.get_json()["data"]["status"] == "paid"

    r = client.post("/api/v1/settlements/recalculate", headers=admin,
                    json={"team_id": team.id, "month": "2025-05", "persist": "false"})
    assert r.status_code == 422

    r = client.post("/api/v1/settlements/recalculate", headers=admin, json={"team_id": team.id, "month": "2025-05"})
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "SETTLEMENT_LOCKED"

    r = client.get(f"/api/v1/settlements/{e['id']}/breakdown", headers=admin)
    b = r.get_json()["data"]
    assert b["income_tax"] == 7590
    assert b["net_pay"] == 230000 - b["total_deduction"]

    assert AuditLog.query.filter_by(category="PAYROLL").count() >= 2


def test_invalid_month_is_422(client, admin, crew):
    team, _, _ = crew
    r = client.get(f"/api/v1/settlements?team_id={team.id}&month=2025-13", headers=admin)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "INVALID_MONTH"


def test_report_validation(client, admin, crew):
    team, site, w = crew
    r = client.post("/api/v1/daily-reports", headers=admin, json={
        "date": "2025-05-01", "site_id": site.id, "team_id": team.id,
        "workers": [{"workerId": w.id, "manDay": -1}],
    })
    assert r.status_code == 422
    assert r.get_json()["error"]["errors"][0]["index"] == 0


def test_advances_and_deduction_items(client, admin, crew):
    team, _, w = crew
    r = client.post("/api/v1/deduction-items", headers=admin, json={"label": "식대"})
    assert r.status_code == 201
    meal = r.get_json()["data"]["id"]

    r = client.put("/api/v1/advances", headers=admin, json={
        "team_id": team.id, "worker_id": w.id, "year_month": "2025-05",
        "accommodation": 200000, "items": {meal: 30000},
    })
    assert r.get_json()["data"]["total_deduction"] == 230000

    r = client.patch(f"/api/v1/deduction-items/{meal}", headers=admin, json={"is_active": "false"})
    assert r.status_code == 422

    r = client.patch(f"/api/v1/deduction-items/{meal}", headers=admin, json={"is_active": False})
    assert r.get_json()["data"]["is_active"] is False

    newcomer = Worker(name="이영희", team_id=team.id, unit_price=Decimal("150000"))
    db.session.add(newcomer)
    db.session.commit()

    r = client.get(f"/api/v1/advances?team_id={team.id}&year_month=2025-05", headers=admin)
    body = r.get_json()
    rows = {row["worker_id"]: row for row in body["data"]}
    assert set(rows) == {w.id, newcomer.id}
    assert rows[w.id]["total_deduction"] == 200000
    assert rows[newcomer.id]["total_deduction"] == 0
    assert body["meta"]["grand_total"] == sum(row["total_deduction"] for row in body["data"])
    assert body["meta"]["item_totals"]["accommodation"] == 200000
    assert meal not in body["meta"]["item_totals"]


def test_deduction_item_writes_are_admin_only(client, app):
    lead = _user("lead@gongsu.local", "팀장")
    h = _headers(lead, roles=["general"])
    assert client.post("/api/v1/deduction-items", headers=h, json={"label": "식대"}).status_code == 403


def test_permissions_from_db(client, app, crew):
    team, _, _ = crew
    lead = _user("lead@gongsu.local", "팀장")
    # no perms in the token: falls back to the roles granted in the DB
    h = _headers(lead, roles=["general"])
    assert client.get(f"/api/v1/settlements?team_id={team.id}&month=2025-05", headers=h).status_code == 403
    assert client.get("/api/v1/workers", headers=h).status_code == 403

    from gongsu_api.models.security import Role, UserRole
    db.session.add(UserRole(user_id=lead.id, role_id=Role.query.filter_by(code="general").first().id))
    db.session.commit()
    assert client.get("/api/v1/workers", headers=h).status_code == 200


def test_support_status(client, admin, crew):
    team, site, w = crew
    other = Site(name="B현장")
    db.session.add(other)
    db.session.commit()
    for d in ("2025-05-01", "2025-05-02", "2025-05-03"):
        client.post("/api/v1/daily-reports", headers=admin,
                    json={"date": d, "site_id": other.id, "team_id": team.id,
                          "workers": [{"workerId": w.id, "manDay": 1}]})

    r = client.get("/api/v1/support/status?month=2025-05&view=matrix", headers=admin)
    m = r.get_json()["data"]
    [row] = m["rows"]
    assert row["cells"][str(other.id)] == {"man_day": 3, "amount": 300000}
    assert m["totals"]["external_amount"] == 300000

    r = client.get("/api/v1/support/status?month=2025-05&view=list", headers=admin)
    assert r.get_json()["meta"]["count"] == 3

    assert client.get("/api/v1/support/status?month=2025-05&view=pie", headers=admin).status_code == 422


def test_bulk_rate(client, admin, crew):
    team, _, w = crew
    w2 = Worker(name="이영희", team_id=team.id, unit_price=0)
    db.session.add(w2)
    db.session.commit()
    r = client.post("/api/v1/workers/bulk-rate", headers=admin, json={"items": [
        {"worker_id": w.id, "unit_price": 170000},
        {"worker_id": w2.id, "unit_price": 150000},
    ]})
    assert r.get_json()["data"]["updated"] == 2
    assert db.session.get(Worker, w2.id).unit_price == 150000

    r = client.post("/api/v1/workers/bulk-rate", headers=admin, json={"items": [{"worker_id": 999, "unit_price": 1}]})
    assert r.status_code == 404


def test_payroll_config_and_audit(client, admin):
    r = client.get("/api/v1/payroll-config", headers=admin)
    assert r.get_json()["data"]["tax_rate"] == pytest.approx(0.033)

    r = client.put("/api/v1/payroll-config", headers=admin, json={"tax_rate": 1.5})
    assert r.status_code == 422

    r = client.put("/api/v1/payroll-config", headers=admin,
                   json={"insurance_config": {"threshold_days": 10}})
    assert r.get_json()["data"]["insurance_config"]["threshold_days"] == 10

    r = client.get("/api/v1/audit-logs?category=payroll", headers=admin)
    logs = r.get_json()["data"]
    assert logs and logs[0]["category"] == "PAYROLL"


def test_body_flags_must_be_booleans(client, admin):
    r = client.post("/api/v1/teams", headers=admin, json={"name": "2팀", "is_active": "false"})
    assert r.status_code == 422
    r = client.post("/api/v1/master/companies", headers=admin, json={"name": "대한건설", "is_active": "no"})
    assert r.status_code == 422
    r = client.post("/api/v1/master/companies", headers=admin, json={"name": "대한건설", "is_active": False})
    assert r.status_code == 201
    assert r.get_json()["data"]["is_active"] is False
