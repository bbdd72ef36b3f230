from __future__ import annotations
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func

from gongsu_api.common.errors import APIError
from gongsu_api.common.money import to_decimal
from gongsu_api.extensions import db
from gongsu_api.models.master import Team
from gongsu_api.models.payroll.advance import AdvancePayment, DeductionItem, LEGACY_DEDUCTION_FIELDS
from gongsu_api.models.worker import Worker
from gongsu_api.services import audit_service
from gongsu_api.services.periods import parse_month

log = logging.getLogger(__name__)

ZERO = Decimal("0")

DEFAULT_DEDUCTION_ITEMS = [
    ("prevMonthCarryover", "전월이월"),
    ("accommodation", "숙소비"),
    ("privateRoom", "개인방"),
    ("gloves", "장갑"),
    ("deposit", "보증금"),
    ("fines", "과태료"),
    ("electricity", "전기료"),
    ("gas", "도시가스"),
    ("internet", "인터넷"),
    ("water", "수도세"),
]


def advance_id(team_id: Any, worker_id: Any, year_month: str) -> str:
    return f"{team_id}_{worker_id}_{year_month}"


# ---------- catalog ----------

def list_items(active_only: bool = False) -> List[DeductionItem]:
    q = DeductionItem.query
    if active_only:
        q = q.filter(DeductionItem.is_active.is_(True))
    return q.order_by(DeductionItem.order.asc(), DeductionItem.id.asc()).all()


def item_row(it: DeductionItem) -> Dict[str, Any]:
    return {"id": it.id, "label": it.label, "order": it.order, "is_active": bool(it.is_active)}


def seed_default_items() -> int:
    added = 0
    for order, (item_id, label) in enumerate(DEFAULT_DEDUCTION_ITEMS, start=1):
        if db.session.get(DeductionItem, item_id) is None:
            db.session.add(DeductionItem(id=item_id, label=label, order=order, is_active=True))
            added += 1
    db.session.commit()
    if added:
        log.info("seeded %d deduction items", added)
    return added


def _clean_label(label: Any) -> str:
    s = (label or "").strip() if isinstance(label, str) else ""
    if not s:
        raise APIError("label is required", code="INVALID_LABEL", status_code=422)
    return s


def _item_or_404(item_id: str) -> DeductionItem:
    it = db.session.get(DeductionItem, item_id)
    if it is None:
        raise APIError("Deduction item not found", code="NOT_FOUND", status_code=404)
    return it


def add_item(label: str) -> DeductionItem:
    clean = _clean_label(label)
    max_order = db.session.query(func.max(DeductionItem.order)).scalar() or 0
    it = DeductionItem(id=f"custom_{uuid.uuid4().hex[:8]}", label=clean, order=max_order + 1, is_active=True)
    db.session.add(it)
    db.session.commit()
    audit_service.log_event("CREATE", "PAYROLL", target_id=it.id, target_name=clean,
                            details={"kind": "deduction_item"})
    return it


def rename_item(item_id: str, label: str) -> DeductionItem:
    it = _item_or_404(item_id)
    before = it.label
    it.label = _clean_label(label)
    db.session.commit()
    audit_service.log_event("UPDATE", "PAYROLL", target_id=it.id, target_name=it.label,
                            details={"label": {"before": before, "after": it.label}})
    return it


def set_active(item_id: str, active: bool) -> DeductionItem:
    it = _item_or_404(item_id)
    it.is_active = bool(active)
    db.session.commit()
    audit_service.log_event("UPDATE", "PAYROLL", target_id=it.id, target_name=it.label,
                            details={"is_active": it.is_active})
    return it


def reorder_items(ordered_ids: Sequence[str]) -> List[DeductionItem]:
    by_id = {it.id: it for it in list_items()}
    unknown = [i for i in ordered_ids if i not in by_id]
    if unknown:
        raise APIError("unknown deduction item ids", status_code=422, payload={"ids": unknown})
    for pos, item_id in enumerate(ordered_ids, start=1):
        by_id[item_id].order = pos
    db.session.commit()
    return list_items()


def delete_item(item_id: str) -> None:
    """Drop the catalog entry only; values already stored under the id stay on the advances."""
    it = _item_or_404(item_id)
    label = it.label
    db.session.delete(it)
    db.session.commit()
    audit_service.log_event("DELETE", "PAYROLL", target_id=item_id, target_name=label,
                            details={"kind": "deduction_item"})


# ---------- totals ----------

def deduction_value(advance: AdvancePayment, item_id: str) -> Decimal:
    column = LEGACY_DEDUCTION_FIELDS.get(item_id)
    if column is not None:
        return to_decimal(getattr(advance, column, None), ZERO)
    items = advance.items if isinstance(advance.items, dict) else {}
    return to_decimal(items.get(item_id), ZERO)


def total_for_worker(advance: AdvancePayment, catalog: Optional[Sequence[DeductionItem]] = None) -> Decimal:
    """Sum of the advance's values over *active* catalog items."""
    if catalog is None:
        catalog = list_items(active_only=True)
    return sum((deduction_value(advance, it.id) for it in catalog if it.is_active), ZERO)


def advance_row(a: AdvancePayment, catalog: Sequence[DeductionItem]) -> Dict[str, Any]:
    values = {legacy_id: to_decimal(getattr(a, col), ZERO) for legacy_id, col in LEGACY_DEDUCTION_FIELDS.items()}
    return {
        "id": a.id,
        "worker_id": a.worker_id,
        "worker_name": a.worker_name,
        "team_id": a.team_id,
        "team_name": a.team_name,
        "year_month": a.year_month,
        "items": dict(a.items or {}),
        **values,
        "total_deduction": total_for_worker(a, catalog),
        "updated_at": a.updated_at.isoformat() if a.updated_at else None,
    }


# ---------- advances ----------

def _blank_advance(worker: Worker, team_id: int, year_month: str) -> AdvancePayment:
    # transient, never added to the session
    a = AdvancePayment(
        id=advance_id(team_id, worker.id, year_month),
        worker_id=worker.id,
        worker_name=worker.name,
        team_id=team_id,
        team_name=worker.team.name if worker.team is not None else None,
        year_month=year_month,
        items={},
    )
    for column in LEGACY_DEDUCTION_FIELDS.values():
        setattr(a, column, ZERO)
    return a


def team_advances(team_id: int, year_month: str) -> List[AdvancePayment]:
    """Stored rows for the team+month plus an empty one for every active roster worker without a row."""
    parse_month(year_month)
    stored = {
        a.worker_id: a
        for a in AdvancePayment.query
        .filter(AdvancePayment.team_id == team_id, AdvancePayment.year_month == year_month)
        .all()
    }
    roster = (
        Worker.query
        .filter(Worker.team_id == team_id, Worker.status == "active")
        .order_by(Worker.id)
        .all()
    )
    out = []
    for w in roster:
        a = stored.pop(w.id, None)
        out.append(a if a is not None else _blank_advance(w, team_id, year_month))
    # rows kept for workers who have since left the team
    out.extend(stored[wid] for wid in sorted(stored))
    return out


def month_advances(year_month: str) -> List[AdvancePayment]:
    parse_month(year_month)
    return (
        AdvancePayment.query
        .filter(AdvancePayment.year_month == year_month)
        .order_by(AdvancePayment.team_id, AdvancePayment.worker_id)
        .all()
    )


def list_advances(team_id: int, year_month: str) -> List[Dict[str, Any]]:
    catalog = list_items(active_only=True)
    return [advance_row(a, catalog) for a in team_advances(team_id, year_month)]


def list_advances_for_month(year_month: str) -> List[Dict[str, Any]]:
    catalog = list_items(active_only=True)
    return [advance_row(a, catalog) for a in month_advances(year_month)]


def ledger_totals(advances: Sequence[AdvancePayment],
                  catalog: Optional[Sequence[DeductionItem]] = None) -> Dict[str, Any]:
    """Per-item column totals and the grand total, over active items only."""
    if catalog is None:
        catalog = list_items(active_only=True)
    active = [it for it in catalog if it.is_active]
    item_totals = {it.id: sum((deduction_value(a, it.id) for a in advances), ZERO) for it in active}
    grand_total = sum((total_for_worker(a, active) for a in advances), ZERO)
    return {"item_totals": item_totals, "grand_total": grand_total}


def advance_sheet(year_month: str, team_id: Optional[int] = None) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Rows plus totals for one team, or for every team when team_id is None."""
    advances = team_advances(team_id, year_month) if team_id else month_advances(year_month)
    catalog = list_items(active_only=True)
    rows = [advance_row(a, catalog) for a in advances]
    return rows, ledger_totals(advances, catalog)


def advance_total_for(worker_id: int, year_month: str) -> Decimal:
    """Total across every team row the worker has this month (usually one)."""
    catalog = list_items(active_only=True)
    rows = AdvancePayment.query.filter_by(worker_id=worker_id, year_month=year_month).all()
    return sum((total_for_worker(a, catalog) for a in rows), ZERO)


def _normalize_items(raw: Any) -> Dict[str, float]:
    """Trimmed keys, numeric values; legacy ids live in their own columns and are dropped."""
    if not isinstance(raw, dict):
        return {}
    out: Dict[str, float] = {}
    for k, v in raw.items():
        key = k.strip() if isinstance(k, str) else ""
        if not key or key in LEGACY_DEDUCTION_FIELDS:
            continue
        d = to_decimal(v, ZERO)
        out[key] = float(d)
    return out


def save_advance(payload: Dict[str, Any]) -> AdvancePayment:
    """Upsert one worker's month by team+worker+month."""
    try:
        team_id = int(payload.get("team_id"))
        worker_id = int(payload.get("worker_id"))
    except (TypeError, ValueError):
        raise APIError("team_id and worker_id are required", code="INVALID_ADVANCE", status_code=422)
    year_month = payload.get("year_month")
    parse_month(year_month)

    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise APIError("Worker not found", code="NOT_FOUND", status_code=404)
    team = db.session.get(Team, team_id)

    key = advance_id(team_id, worker_id, year_month)
    a = db.session.get(AdvancePayment, key)
    created = a is None
    if created:
        a = AdvancePayment(id=key, worker_id=worker_id, team_id=team_id, year_month=year_month, items={})
        db.session.add(a)

    a.worker_name = payload.get("worker_name") or worker.name
    a.team_name = payload.get("team_name") or (team.name if team is not None else None)

    if "items" in payload:
        a.items = _normalize_items(payload.get("items"))
    for legacy_id, column in LEGACY_DEDUCTION_FIELDS.items():
        if legacy_id in payload:
            setattr(a, column, to_decimal(payload.get(legacy_id), ZERO))
        elif created:
            setattr(a, column, ZERO)

    a.total_deduction = total_for_worker(a)
    db.session.commit()
    audit_service.log_event("CREATE" if created else "UPDATE", "PAYROLL",
                            target_id=key, target_name=a.worker_name,
                            details={"kind": "advance", "total": float(a.total_deduction)})
    return a


def delete_advance(adv_id: str) -> None:
    a = db.session.get(AdvancePayment, adv_id)
    if a is None:
        raise APIError("Advance payment not found", code="NOT_FOUND", status_code=404)
    name = a.worker_name
    db.session.delete(a)
    db.session.commit()
    audit_service.log_event("DELETE", "PAYROLL", target_id=adv_id, target_name=name,
                            details={"kind": "advance"})
