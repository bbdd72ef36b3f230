import os
from datetime import date
from decimal import Decimal

import pytest

from gongsu_api import create_app
from gongsu_api.extensions import db
from gongsu_api.models.daily_report import DailyReport
from gongsu_api.models.master import Company, Site, Team
from gongsu_api.services.support_matrix import build_support_records, build_matrix


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def world(session):
    a = Company(name="가나건설")
    b = Company(name="다라건설")
    session.add_all([a, b])
    session.flush()
    t1 = Team(name="철근1팀", company_id=a.id, support_rate=Decimal("100000"))
    t2 = Team(name="목수팀", company_id=b.id, support_rate=Decimal("120000"))
    t3 = Team(name="무소속팀", support_rate=None)
    s_a = Site(name="A현장", company_id=a.id)
    s_b = Site(name="B현장", company_id=b.id)
    s_x = Site(name="X현장")
    session.add_all([t1, t2, t3, s_a, s_b, s_x])
    session.commit()
    return {"t1": t1, "t2": t2, "t3": t3, "s_a": s_a, "s_b": s_b, "s_x": s_x}


def _report(session, site, team, day, entries):
    session.add(DailyReport(date=day, site_id=site.id, site_name=site.name, team_id=team.id, workers=entries))
    session.commit()


def test_cell_amount_is_man_days_times_rate(session, world):
    t1, s_b = world["t1"], world["s_b"]
    for d in (1, 2, 3):
        _report(session, s_b, t1, date(2025, 5, d), [{"workerId": 1, "manDay": 1.0}])

    records = build_support_records("2025-05")
    assert len(records) == 3
    assert all(r["is_external"] for r in records)

    m = build_matrix(records)
    [row] = m["rows"]
    cell = row["cells"][str(s_b.id)]
    assert cell["man_day"] == 3
    assert cell["amount"] == 300000
    assert m["totals"]["external_amount"] == 300000
    assert m["totals"]["internal_amount"] == 0


def test_entry_team_overrides_report_team(session, world):
    t1, t2, s_a = world["t1"], world["t2"], world["s_a"]
    _report(session, s_a, t1, date(2025, 5, 1), [
        {"workerId": 1, "manDay": 1},
        {"workerId": 2, "manDay": 0.5, "teamId": t2.id},
        {"workerId": 3, "manDay": 1, "teamId": 9999},   # unknown team, skipped
    ])
    records = build_support_records("2025-05")
    by_team = {r["provider_team_id"]: r for r in records}
    assert set(by_team) == {t1.id, t2.id}
    assert by_team[t1.id]["is_external"] is False
    assert by_team[t2.id]["is_external"] is True
    assert by_team[t2.id]["amount"] == 60000


def test_missing_companies_compare_as_unknown(session, world):
    t3, s_x = world["t3"], world["s_x"]
    _report(session, s_x, t3, date(2025, 5, 1), [{"workerId": 1, "manDay": 2}])
    [r] = build_support_records("2025-05")
    assert r["provider_company_id"] == "unknown"
    assert r["is_external"] is False
    # no support rate -> zero amount, man-days still counted
    assert r["amount"] == 0
    assert r["man_day"] == 2


def test_row_totals_and_column_order(session, world):
    t1, t2 = world["t1"], world["t2"]
    s_a, s_b, s_x = world["s_a"], world["s_b"], world["s_x"]
    _report(session, s_b, t1, date(2025, 5, 1), [{"workerId": 1, "manDay": 1}])
    _report(session, s_a, t1, date(2025, 5, 2), [{"workerId": 1, "manDay": 0.5}])
    _report(session, s_x, t1, date(2025, 5, 3), [{"workerId": 1, "manDay": 1}])
    _report(session, s_a, t2, date(2025, 5, 3), [{"workerId": 2, "manDay": 1}])
    _report(session, s_a, t2, date(2025, 6, 1), [{"workerId": 2, "manDay": 1}])  # other month

    m = build_matrix(build_support_records("2025-05"))
    # unowned site first (empty company name), then 가나건설, then 다라건설
    assert [c["name"] for c in m["columns"]] == ["X현장", "A현장", "B현장"]
    # rows by team name
    assert [r["team_name"] for r in m["rows"]] == ["목수팀", "철근1팀"]

    for row in m["rows"]:
        assert row["total_man_day"] == sum(c["man_day"] for c in row["cells"].values())
        assert row["total_amount"] == sum(c["amount"] for c in row["cells"].values())

    t1_row = next(r for r in m["rows"] if r["team_id"] == t1.id)
    assert t1_row["total_man_day"] == Decimal("2.5")
    assert t1_row["total_amount"] == 250000
    assert m["totals"]["man_day"] == Decimal("3.5")


def test_empty_month(session, world):
    m = build_matrix(build_support_records("2025-05"))
    assert m["rows"] == [] and m["columns"] == []
