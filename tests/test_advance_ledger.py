import os
from decimal import Decimal

import pytest

from gongsu_api import create_app
from gongsu_api.extensions import db
from gongsu_api.common.errors import APIError, InvalidMonth
from gongsu_api.models.master import Team
from gongsu_api.models.payroll.advance import AdvancePayment, DeductionItem
from gongsu_api.models.worker import Worker
from gongsu_api.services import advance_ledger as ledger


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
def worker(session):
    team = Team(name="1팀")
    session.add(team)
    session.flush()
    w = Worker(name="김철수", team_id=team.id, unit_price=Decimal("160000"))
    session.add(w)
    session.commit()
    ledger.seed_default_items()
    return w


def test_seed_is_idempotent(session):
    assert ledger.seed_default_items() == 10
    assert ledger.seed_default_items() == 0
    items = ledger.list_items()
    assert [i.id for i in items][:2] == ["prevMonthCarryover", "accommodation"]
    assert [i.order for i in items] == list(range(1, 11))


def test_add_item_appends_with_custom_id(session, worker):
    it = ledger.add_item("  식대  ")
    assert it.id.startswith("custom_")
    assert it.label == "식대"
    assert it.order == 11
    assert it.is_active is True


def test_blank_label_rejected(session, worker):
    with pytest.raises(APIError):
        ledger.add_item("   ")
    with pytest.raises(APIError):
        ledger.rename_item("gloves", "")


def test_total_counts_active_items_only(session, worker):
    meal = ledger.add_item("식대")
    a = ledger.save_advance({
        "team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025-05",
        "accommodation": 200000, "gloves": 5000,
        "items": {meal.id: 30000, "  ": 999, "stale": "abc"},
    })
    assert a.id == f"{worker.team_id}_{worker.id}_2025-05"
    assert a.items == {meal.id: 30000.0, "stale": 0.0}
    assert a.total_deduction == 235000

    ledger.set_active("gloves", False)
    [row] = ledger.list_advances(worker.team_id, "2025-05")
    assert row["total_deduction"] == 230000
    # stored value survives deactivation
    assert row["gloves"] == 5000


def test_deleting_item_keeps_stored_values(session, worker):
    meal = ledger.add_item("식대")
    a = ledger.save_advance({
        "team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025-05",
        "items": {meal.id: 30000},
    })
    ledger.delete_item(meal.id)
    assert session.get(DeductionItem, meal.id) is None

    stored = session.get(AdvancePayment, a.id)
    assert stored.items[meal.id] == 30000
    assert ledger.total_for_worker(stored) == 0


def test_deduction_value_reads_legacy_columns(session, worker):
    a = ledger.save_advance({
        "team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025-05",
        "prevMonthCarryover": 12000, "items": {"water": 999},
    })
    assert ledger.deduction_value(a, "prevMonthCarryover") == 12000
    # legacy ids are not kept in the items map
    assert a.items == {}
    # legacy ids never read from the items map
    assert ledger.deduction_value(a, "water") == 0
    assert ledger.deduction_value(a, "missing") == 0


def test_save_is_upsert(session, worker):
    payload = {"team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025-05", "deposit": 100000}
    ledger.save_advance(payload)
    ledger.save_advance(dict(payload, deposit=50000))
    assert AdvancePayment.query.count() == 1
    assert ledger.list_advances_for_month("2025-05")[0]["total_deduction"] == 50000


def test_invalid_month_and_delete(session, worker):
    with pytest.raises(InvalidMonth):
        ledger.save_advance({"team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025/05"})

    a = ledger.save_advance({"team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025-06"})
    ledger.delete_advance(a.id)
    assert session.get(AdvancePayment, a.id) is None
    [row] = ledger.list_advances(worker.team_id, "2025-06")
    assert row["updated_at"] is None and row["total_deduction"] == 0
    with pytest.raises(APIError):
        ledger.delete_advance(a.id)


def test_team_ledger_covers_roster_and_grand_total(session, worker):
    other = Worker(name="이영희", team_id=worker.team_id, unit_price=Decimal("150000"))
    gone = Worker(name="박민수", team_id=worker.team_id, status="inactive")
    session.add_all([other, gone])
    session.commit()
    meal = ledger.add_item("식대")
    ledger.save_advance({
        "team_id": worker.team_id, "worker_id": worker.id, "year_month": "2025-05",
        "accommodation": 200000, "gloves": 5000, "items": {meal.id: 30000},
    })
    ledger.save_advance({
        "team_id": worker.team_id, "worker_id": other.id, "year_month": "2025-05",
        "accommodation": 100000, "gloves": 5000,
    })
    ledger.set_active("gloves", False)

    rows, totals = ledger.advance_sheet("2025-05", worker.team_id)
    assert [r["worker_id"] for r in rows] == [worker.id, other.id]
    assert totals["grand_total"] == sum(r["total_deduction"] for r in rows) == 330000
    assert totals["item_totals"]["accommodation"] == 300000
    assert totals["item_totals"][meal.id] == 30000
    assert "gloves" not in totals["item_totals"]


def test_roster_worker_without_advance_gets_empty_row(session, worker):
    newcomer = Worker(name="최신입", team_id=worker.team_id)
    session.add(newcomer)
    session.commit()
    ledger.save_advance({"team_id": worker.team_id, "worker_id": worker.id,
                         "year_month": "2025-05", "deposit": 100000})

    rows, totals = ledger.advance_sheet("2025-05", worker.team_id)
    by_worker = {r["worker_id"]: r for r in rows}
    assert set(by_worker) == {worker.id, newcomer.id}
    blank = by_worker[newcomer.id]
    assert blank["id"] == f"{worker.team_id}_{newcomer.id}_2025-05"
    assert blank["total_deduction"] == 0 and blank["items"] == {}
    assert totals["grand_total"] == 100000
    # the empty row is never written
    assert AdvancePayment.query.count() == 1
