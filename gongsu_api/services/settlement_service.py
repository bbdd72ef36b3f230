"""
Monthly settlement (정산) per worker.

compute_settlement() is the pure aggregation over a team's roster and its
daily reports. The remaining functions are the store around it: saved rows
win over live computation until someone explicitly recalculates.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from gongsu_api.common.errors import APIError, SettlementLocked
from gongsu_api.common.money import to_decimal, floor_won, round_won, cents
from gongsu_api.extensions import db
from gongsu_api.models.daily_report import DailyReport
from gongsu_api.models.master import Team
from gongsu_api.models.payroll.settlement import SettlementEntry, SETTLEMENT_STATUSES
from gongsu_api.models.worker import Worker
from gongsu_api.services import audit_service
from gongsu_api.services.batching import commit_in_batches
from gongsu_api.services.payroll_config import DEFAULT_TAX_RATE, current_tax_rate
from gongsu_api.services.periods import month_bounds, parse_month

log = logging.getLogger(__name__)

ZERO = Decimal("0")
UNKNOWN_SITE = "Unknown Site"
NO_SITE = "-"
DEFAULT_ROLE = "일반공"

# fields a person edits on a saved settlement; recalculation keeps them
MANUAL_FIELDS = (
    "national_pension", "health_insurance", "care_insurance", "employment_insurance",
    "advance_payment", "accommodation_fee", "food_expense", "other_deduction",
)

MONEY_FIELDS = (
    "days_worked", "reported_days", "remaining_days",
    "unit_price", "gross_pay", "reported_gross_pay",
    "tax_rate", "tax_amount",
) + MANUAL_FIELDS + ("net_pay",)

TEXT_FIELDS = ("worker_name", "role", "labor_site", "reported_site")


def settlement_id(worker_id: Any, month: str) -> str:
    return f"{worker_id}_{month}"


# ---------- entry parsing ----------

def _entry_worker_id(entry: Dict[str, Any]) -> Optional[int]:
    raw = entry.get("workerId")
    if raw is None:
        raw = entry.get("id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _entry_man_day(entry: Dict[str, Any]) -> Decimal:
    raw = entry.get("manDay")
    if raw is None:
        raw = entry.get("gongsu")
    return to_decimal(raw, ZERO)


def _entry_unit_price(entry: Dict[str, Any]) -> Optional[Decimal]:
    return to_decimal(entry.get("unitPrice"))


def _report_site_label(report: DailyReport) -> str:
    if report.site_name:
        return report.site_name
    site = report.site
    return site.name if site is not None and site.name else UNKNOWN_SITE


def _primary_site(site_days: Dict[str, Decimal]) -> str:
    # strict '>' keeps the first-seen site on ties
    best, best_days = NO_SITE, ZERO
    for site, days in site_days.items():
        if days > best_days:
            best, best_days = site, days
    return best


# ---------- pure aggregation ----------

def compute_settlement(
    workers: Sequence[Worker],
    reports: Iterable[DailyReport],
    month: str,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> List[Dict[str, Any]]:
    """
    One settlement dict per roster worker for `month`.

    gross = sum(manDay * snapshot unitPrice) + unpriced manDays * current rate
    tax   = floor(gross * tax_rate)
    net   = gross - tax

    Entries for workers outside the roster are ignored. Reports are consumed
    in the order given; that order decides primary-site ties.
    """
    rate = to_decimal(tax_rate, DEFAULT_TAX_RATE)

    man_days: Dict[int, Decimal] = defaultdict(Decimal)
    snapshot_amount: Dict[int, Decimal] = defaultdict(Decimal)
    unpriced_days: Dict[int, Decimal] = defaultdict(Decimal)
    seen_prices: Dict[int, List[Decimal]] = defaultdict(list)
    site_days: Dict[int, Dict[str, Decimal]] = defaultdict(dict)

    for report in reports:
        entries = report.workers if isinstance(report.workers, list) else []
        site = _report_site_label(report)
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            wid = _entry_worker_id(entry)
            if wid is None:
                continue
            md = _entry_man_day(entry)
            man_days[wid] += md

            price = _entry_unit_price(entry)
            if price is not None:
                snapshot_amount[wid] += md * price
                if price not in seen_prices[wid]:
                    seen_prices[wid].append(price)
            else:
                unpriced_days[wid] += md

            per_site = site_days[wid]
            per_site[site] = per_site.get(site, ZERO) + md

    out: List[Dict[str, Any]] = []
    for w in workers:
        days = man_days.get(w.id, ZERO)
        current_rate = to_decimal(w.unit_price, ZERO)
        missing = unpriced_days.get(w.id, ZERO)
        gross = cents(snapshot_amount.get(w.id, ZERO) + missing * current_rate)

        prices = list(seen_prices.get(w.id, []))
        if missing > 0 and current_rate not in prices:
            prices.append(current_rate)
        if len(prices) == 1:
            unit_price = prices[0]
        elif days > 0:
            unit_price = round_won(gross / days)
        else:
            unit_price = current_rate

        tax = floor_won(gross * rate)
        site = _primary_site(site_days.get(w.id, {}))

        out.append({
            "id": settlement_id(w.id, month),
            "worker_id": w.id,
            "worker_name": w.name,
            "team_id": w.team_id,
            "role": w.role or DEFAULT_ROLE,
            "month": month,
            "labor_site": site,
            "reported_site": site,
            "days_worked": days,
            "reported_days": days,
            "remaining_days": ZERO,
            "unit_price": unit_price,
            "gross_pay": gross,
            "reported_gross_pay": gross,
            "tax_rate": rate,
            "tax_amount": tax,
            "national_pension": ZERO,
            "health_insurance": ZERO,
            "care_insurance": ZERO,
            "employment_insurance": ZERO,
            "advance_payment": ZERO,
            "accommodation_fee": ZERO,
            "food_expense": ZERO,
            "other_deduction": ZERO,
            "net_pay": gross - tax,
            "status": "pending",
        })
    return out


# ---------- reads ----------

def fetch_inputs(team_id: int, month: str) -> Tuple[List[Worker], List[DailyReport]]:
    first, last = month_bounds(month)
    workers = Worker.query.filter(Worker.team_id == team_id).order_by(Worker.id).all()
    reports = (
        DailyReport.query
        .filter(DailyReport.team_id == team_id)
        .filter(DailyReport.date >= first, DailyReport.date <= last)
        .order_by(DailyReport.date.asc(), DailyReport.id.asc())
        .all()
    )
    return workers, reports


def calculate_live_settlement(team_id: int, month: str) -> List[Dict[str, Any]]:
    workers, reports = fetch_inputs(team_id, month)
    log.debug("live settlement team=%s month=%s workers=%d reports=%d",
              team_id, month, len(workers), len(reports))
    return compute_settlement(workers, reports, month, current_tax_rate())


def entry_to_dict(e: SettlementEntry) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "id": e.id,
        "worker_id": e.worker_id,
        "team_id": e.team_id,
        "month": e.month,
        "status": e.status,
        "updated_at": e.updated_at.isoformat() if e.updated_at else None,
    }
    for f in TEXT_FIELDS:
        d[f] = getattr(e, f)
    for f in MONEY_FIELDS:
        d[f] = to_decimal(getattr(e, f), ZERO)
    return d


def saved_entries(team_id: int, month: str) -> List[SettlementEntry]:
    return (
        SettlementEntry.query
        .filter(SettlementEntry.team_id == team_id, SettlementEntry.month == month)
        .order_by(SettlementEntry.worker_id.asc())
        .all()
    )


def get_monthly_settlement(team_id: int, month: str) -> Tuple[List[Dict[str, Any]], str]:
    """Saved rows verbatim when any exist, else the live computation. Returns (entries, source)."""
    parse_month(month)
    rows = saved_entries(team_id, month)
    if rows:
        return [entry_to_dict(r) for r in rows], "saved"
    return calculate_live_settlement(team_id, month), "live"


def get_all_settlements(month: str) -> List[Dict[str, Any]]:
    parse_month(month)
    out: List[Dict[str, Any]] = []
    for team in Team.query.order_by(Team.id).all():
        entries, _ = get_monthly_settlement(team.id, month)
        out.extend(entries)
    return out


# ---------- writes ----------

def _validated(entry: Dict[str, Any]) -> Dict[str, Any]:
    try:
        worker_id = int(entry.get("worker_id"))
    except (TypeError, ValueError):
        raise APIError("worker_id is required on every entry", code="INVALID_ENTRY", status_code=422)
    month = entry.get("month")
    parse_month(month)

    status = entry.get("status") or "pending"
    if status not in SETTLEMENT_STATUSES:
        raise APIError(f"status must be one of {', '.join(SETTLEMENT_STATUSES)}", code="INVALID_ENTRY", status_code=422)

    clean: Dict[str, Any] = {"worker_id": worker_id, "month": month, "status": status}
    if entry.get("team_id") is not None:
        clean["team_id"] = entry["team_id"]
    for f in MONEY_FIELDS:
        if f in entry and entry[f] is not None:
            v = to_decimal(entry[f])
            if v is None:
                raise APIError(f"{f} must be numeric", code="INVALID_ENTRY", status_code=422,
                               payload={"worker_id": worker_id})
            clean[f] = v
    for f in TEXT_FIELDS:
        if f in entry:
            clean[f] = entry[f]
    if "net_pay" not in clean and "gross_pay" in clean:
        clean["net_pay"] = clean["gross_pay"] - clean.get("tax_amount", ZERO)
    return clean


def _upsert(clean: Dict[str, Any]) -> None:
    key = settlement_id(clean["worker_id"], clean["month"])
    row = db.session.get(SettlementEntry, key)
    if row is None:
        row = SettlementEntry(id=key, worker_id=clean["worker_id"], month=clean["month"])
        if "team_id" not in clean:
            w = db.session.get(Worker, clean["worker_id"])
            row.team_id = w.team_id if w is not None else None
        db.session.add(row)
    for f, v in clean.items():
        if f in ("worker_id", "month"):
            continue
        setattr(row, f, v)
    row.updated_at = datetime.utcnow()


def save_settlement(entries: Sequence[Dict[str, Any]]) -> int:
    """Upsert entries keyed by worker+month, committed in chunks. Returns rows written."""
    cleaned = [_validated(e) for e in entries]
    written = commit_in_batches(cleaned, _upsert)
    months = sorted({c["month"] for c in cleaned})
    audit_service.log_event(
        "SAVE", "PAYROLL",
        target_id="settlements",
        target_name=",".join(months) or None,
        details={"count": written, "ids": [settlement_id(c["worker_id"], c["month"]) for c in cleaned][:50]},
    )
    return written


def recalculate_settlement(team_id: int, month: str, persist: bool = True) -> List[Dict[str, Any]]:
    """
    Recompute from daily reports and (optionally) overwrite the saved rows.

    This is the only way a saved settlement picks up report corrections.
    Refused once any entry of the team+month is paid. Manual deduction
    fields and status of existing rows carry over.
    """
    existing = {r.id: r for r in saved_entries(team_id, month)}
    paid = [r.id for r in existing.values() if r.status == "paid"]
    if paid:
        raise SettlementLocked(
            f"settlement for team {team_id} {month} has paid entries",
            payload={"paid": paid},
        )

    live = calculate_live_settlement(team_id, month)
    for entry in live:
        prev = existing.get(entry["id"])
        if prev is None:
            continue
        for f in MANUAL_FIELDS:
            entry[f] = to_decimal(getattr(prev, f), ZERO)
        entry["status"] = prev.status

    if persist and live:
        commit_in_batches([_validated(e) for e in live], _upsert)
        audit_service.log_event(
            "RECALCULATE", "PAYROLL",
            target_id=team_id, target_name=month,
            details={"count": len(live), "replaced": len(existing)},
        )
    return live


def set_status(entry_id: str, status: str) -> SettlementEntry:
    if status not in SETTLEMENT_STATUSES:
        raise APIError(f"status must be one of {', '.join(SETTLEMENT_STATUSES)}", status_code=422)
    row = db.session.get(SettlementEntry, entry_id)
    if row is None:
        raise APIError("Settlement entry not found", code="NOT_FOUND", status_code=404)
    before = row.status
    row.status = status
    row.updated_at = datetime.utcnow()
    db.session.commit()
    audit_service.log_event(
        "UPDATE", "PAYROLL",
        target_id=entry_id, target_name=row.worker_name,
        details={"status": {"before": before, "after": status}},
    )
    return row
