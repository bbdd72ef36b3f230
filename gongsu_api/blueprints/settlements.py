from __future__ import annotations

from flask import Blueprint, current_app, request

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.money import plain, to_decimal
from gongsu_api.common.paging import bool_field
from gongsu_api.extensions import db
from gongsu_api.models.payroll.settlement import SettlementEntry
from gongsu_api.services import settlement_service as svc
from gongsu_api.services.advance_ledger import advance_total_for
from gongsu_api.services.payroll_config import calculate_deductions, get_config

bp = Blueprint("settlements", __name__, url_prefix="/api/v1/settlements")


def _team_month():
    team_id = request.args.get("team_id", type=int)
    month = (request.args.get("month") or "").strip()
    return team_id, month


@bp.get("")
@requires_perms("payroll.settlement.read")
def team_settlement():
    team_id, month = _team_month()
    if not team_id or not month:
        return fail("team_id and month are required", 422)
    entries, source = svc.get_monthly_settlement(team_id, month)
    return ok(plain(entries), source=source, count=len(entries))


@bp.get("/all")
@requires_perms("payroll.settlement.read")
def all_settlements():
    month = (request.args.get("month") or "").strip()
    if not month:
        return fail("month is required", 422)
    entries = svc.get_all_settlements(month)
    return ok(plain(entries), count=len(entries))


@bp.post("/save")
@requires_perms("payroll.settlement.write")
def save():
    data = request.get_json(silent=True, force=True) or {}
    entries = data.get("entries")
    if not isinstance(entries, list) or not entries:
        return fail("entries must be a non-empty list", 422)
    if not all(isinstance(e, dict) for e in entries):
        return fail("each entry must be an object", 422)
    written = svc.save_settlement(entries)
    current_app.logger.info("settlement saved: %d entries", written)
    return ok({"saved": written})


@bp.post("/recalculate")
@requires_perms("payroll.settlement.write")
def recalculate():
    data = request.get_json(silent=True, force=True) or {}
    try:
        team_id = int(data.get("team_id"))
    except (TypeError, ValueError):
        return fail("team_id is required", 422)
    month = (data.get("month") or "").strip()
    try:
        persist = bool_field(data, "persist", True)
    except ValueError as e:
        return fail(str(e), 422)
    entries = svc.recalculate_settlement(team_id, month, persist=persist)
    return ok(plain(entries), persisted=persist, count=len(entries))


@bp.post("/<string:entry_id>/status")
@requires_perms("payroll.settlement.write")
def change_status(entry_id: str):
    data = request.get_json(silent=True, force=True) or {}
    status = (data.get("status") or "").strip()
    row = svc.set_status(entry_id, status)
    return ok(plain(svc.entry_to_dict(row)))


@bp.get("/<string:entry_id>/breakdown")
@requires_perms("payroll.settlement.read")
def breakdown(entry_id: str):
    """4대보험 / tax / advance view of one saved entry."""
    row = db.session.get(SettlementEntry, entry_id)
    if not row:
        return fail("Settlement entry not found", 404)
    cfg = get_config()
    advance = advance_total_for(row.worker_id, row.month)
    result = calculate_deductions(
        to_decimal(row.gross_pay, 0),
        cfg.insurance_config,
        to_decimal(cfg.tax_rate),
        advance,
    )
    threshold = (cfg.insurance_config or {}).get("threshold_days")
    days = to_decimal(row.days_worked, 0)
    return ok(plain({
        "entry_id": row.id,
        "worker_id": row.worker_id,
        "month": row.month,
        "gross_pay": to_decimal(row.gross_pay, 0),
        "days_worked": days,
        "insurance_applicable": threshold is not None and days >= threshold,
        **result,
    }))
