from datetime import date
from decimal import Decimal

import pytest

from gongsu_api.models.daily_report import DailyReport
from gongsu_api.models.worker import Worker
from gongsu_api.services.settlement_service import compute_settlement
from gongsu_api.services.periods import month_bounds, parse_month
from gongsu_api.common.errors import InvalidMonth
from gongsu_api.models import load_all

# register every mapper so relationships on unsaved instances resolve
load_all()


def _worker(wid=1, price="160000", team_id=1, name="김철수"):
    return Worker(id=wid, team_id=team_id, name=name, role="기공", unit_price=Decimal(price))


def _report(day, site, entries, team_id=1, rid=None):
    return DailyReport(id=rid, date=day, site_name=site, team_id=team_id, workers=entries)


def test_mixed_snapshot_and_current_rate():
    w = _worker()
    reports = [
        _report(date(2025, 5, 2), "A현장", [{"workerId": 1, "manDay": 1.0, "unitPrice": 150000}]),
        _report(date(2025, 5, 3), "A현장", [{"workerId": 1, "manDay": 0.5}]),
    ]
    [e] = compute_settlement([w], reports, "2025-05")

    assert e["id"] == "1_2025-05"
    assert e["days_worked"] == Decimal("1.5")
    assert e["gross_pay"] == 230000
    assert e["tax_amount"] == 7590
    assert e["net_pay"] == 222410
    # two distinct prices -> average rounded half-up
    assert e["unit_price"] == 153333
    assert e["labor_site"] == "A현장"
    assert e["status"] == "pending"


def test_net_is_gross_minus_floored_tax():
    w = _worker(price="123457")
    reports = [_report(date(2025, 5, 1), "B현장", [{"workerId": 1, "manDay": 1}])]
    [e] = compute_settlement([w], reports, "2025-05", Decimal("0.033"))
    assert e["tax_amount"] == Decimal("4074")   # floor(4074.081)
    assert e["net_pay"] == e["gross_pay"] - e["tax_amount"]


def test_worker_without_entries():
    w = _worker(price="170000")
    [e] = compute_settlement([w], [], "2025-05")
    assert e["days_worked"] == 0
    assert e["gross_pay"] == 0
    assert e["tax_amount"] == 0
    assert e["unit_price"] == 170000
    assert e["labor_site"] == "-"


def test_single_price_is_reported_as_is():
    w = _worker(price="200000")
    reports = [
        _report(date(2025, 5, d), "A현장", [{"workerId": 1, "manDay": 1, "unitPrice": 180000}])
        for d in (1, 2, 3)
    ]
    [e] = compute_settlement([w], reports, "2025-05")
    assert e["unit_price"] == 180000
    assert e["gross_pay"] == 540000


def test_primary_site_tie_keeps_first_seen():
    w = _worker()
    reports = [
        _report(date(2025, 5, 1), "A현장", [{"workerId": 1, "manDay": 1}]),
        _report(date(2025, 5, 2), "B현장", [{"workerId": 1, "manDay": 1}]),
    ]
    [e] = compute_settlement([w], reports, "2025-05")
    assert e["labor_site"] == "A현장"
    assert e["reported_site"] == "A현장"


def test_primary_site_is_largest_total():
    w = _worker()
    reports = [
        _report(date(2025, 5, 1), "A현장", [{"workerId": 1, "manDay": 1}]),
        _report(date(2025, 5, 2), "B현장", [{"workerId": 1, "manDay": 1}]),
        _report(date(2025, 5, 3), "B현장", [{"workerId": 1, "manDay": 0.5}]),
    ]
    [e] = compute_settlement([w], reports, "2025-05")
    assert e["labor_site"] == "B현장"


def test_legacy_keys_and_unknown_workers():
    a, b = _worker(1), _worker(2, price="100000", name="이영희")
    reports = [_report(date(2025, 5, 1), "A현장", [
        {"id": 1, "gongsu": 1},
        {"workerId": 2, "manDay": "0.5"},
        {"workerId": 99, "manDay": 1},   # not on the roster
        {"manDay": 1},                    # no worker id
    ])]
    out = {e["worker_id"]: e for e in compute_settlement([a, b], reports, "2025-05")}
    assert set(out) == {1, 2}
    assert out[1]["gross_pay"] == 160000
    assert out[2]["gross_pay"] == 50000


def test_recompute_is_idempotent():
    w = _worker()
    reports = [
        _report(date(2025, 5, 2), "A현장", [{"workerId": 1, "manDay": 1.0, "unitPrice": 150000}]),
        _report(date(2025, 5, 3), "B현장", [{"workerId": 1, "manDay": 0.5}]),
    ]
    assert compute_settlement([w], reports, "2025-05") == compute_settlement([w], reports, "2025-05")


def test_month_bounds_are_calendar_aware():
    assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds("2025-02") == (date(2025, 2, 1), date(2025, 2, 28))
    assert month_bounds("2025-04")[1] == date(2025, 4, 30)
    assert month_bounds("2025-12")[1] == date(2025, 12, 31)


@pytest.mark.parametrize("bad", ["2025-13", "2025-5", "202505", "", None, "abcd-ef"])
def test_invalid_month(bad):
    with pytest.raises(InvalidMonth):
        parse_month(bad)
