from __future__ import annotations
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.money import to_decimal
from gongsu_api.common.paging import paginate
from gongsu_api.extensions import db
from gongsu_api.models.daily_report import DailyReport
from gongsu_api.models.master import Site, Team
from gongsu_api.services import audit_service
from gongsu_api.services.periods import month_bounds

bp = Blueprint("daily_reports", __name__, url_prefix="/api/v1/daily-reports")


def _d(s) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s))
    except ValueError:
        return None


def _row(r: DailyReport):
    return {
        "id": r.id,
        "date": r.date.isoformat() if r.date else None,
        "site_id": r.site_id,
        "site_name": r.site_name,
        "team_id": r.team_id,
        "team_name": r.team.name if r.team else None,
        "workers": r.workers or [],
        "total_man_day": float(sum((to_decimal(e.get("manDay", e.get("gongsu")), 0) for e in (r.workers or [])
                                    if isinstance(e, dict)), 0)),
        "memo": r.memo,
        "created_by": r.created_by,
        "created_at": r.created_at.isoformat() if r.created_at else None,
        "updated_at": r.updated_at.isoformat() if r.updated_at else None,
    }


def _clean_entries(raw: Any) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Validated copy of the entry list plus per-index errors."""
    if not isinstance(raw, list):
        return [], [{"index": None, "message": "workers must be a list"}]
    out, errors = [], []
    for idx, e in enumerate(raw):
        if not isinstance(e, dict):
            errors.append({"index": idx, "message": "entry must be an object"})
            continue
        wid = e.get("workerId", e.get("id"))
        try:
            wid = int(wid)
        except (TypeError, ValueError):
            errors.append({"index": idx, "message": "workerId is required"})
            continue
        md = to_decimal(e.get("manDay", e.get("gongsu")))
        if md is None or md < 0:
            errors.append({"index": idx, "message": "manDay must be a non-negative number"})
            continue
        entry = {"workerId": wid, "manDay": float(md)}
        if e.get("name"):
            entry["name"] = str(e["name"])
        if e.get("teamId") is not None:
            try:
                entry["teamId"] = int(e["teamId"])
            except (TypeError, ValueError):
                errors.append({"index": idx, "message": "teamId must be an integer"})
                continue
        if e.get("unitPrice") is not None:
            price = to_decimal(e.get("unitPrice"))
            if price is None or price < 0:
                errors.append({"index": idx, "message": "unitPrice must be a non-negative number"})
                continue
            entry["unitPrice"] = float(price)
        out.append(entry)
    return out, errors


def _apply(r: DailyReport, data: dict):
    """Returns (message, errors) on failure, None when fields were applied."""
    if "date" in data:
        d = _d(data.get("date"))
        if not d:
            return "date must be YYYY-MM-DD", None
        r.date = d
    if "site_id" in data:
        site = db.session.get(Site, data.get("site_id")) if data.get("site_id") is not None else None
        if site is None:
            return "site_id not found", None
        r.site_id = site.id
        r.site_name = site.name
    if "team_id" in data:
        team = db.session.get(Team, data.get("team_id")) if data.get("team_id") is not None else None
        if team is None:
            return "team_id not found", None
        r.team_id = team.id
    if "workers" in data:
        entries, errors = _clean_entries(data.get("workers"))
        if errors:
            return "invalid worker entries", errors
        r.workers = entries
    if "memo" in data:
        r.memo = (data.get("memo") or "").strip() or None
    return None


@bp.get("")
@requires_perms("reports.read")
def list_reports():
    qry = DailyReport.query
    team_id = request.args.get("team_id", type=int)
    if team_id:
        qry = qry.filter(DailyReport.team_id == team_id)
    site_id = request.args.get("site_id", type=int)
    if site_id:
        qry = qry.filter(DailyReport.site_id == site_id)

    month = request.args.get("month")
    if month:
        first, last = month_bounds(month)
        qry = qry.filter(DailyReport.date >= first, DailyReport.date <= last)
    dfrom, dto = _d(request.args.get("from")), _d(request.args.get("to"))
    if dfrom:
        qry = qry.filter(DailyReport.date >= dfrom)
    if dto:
        qry = qry.filter(DailyReport.date <= dto)

    qry = qry.order_by(DailyReport.date.desc(), DailyReport.id.desc())
    items, meta = paginate(qry)
    return ok([_row(r) for r in items], **meta)


@bp.get("/<int:report_id>")
@requires_perms("reports.read")
def get_report(report_id: int):
    r = db.session.get(DailyReport, report_id)
    if not r:
        return fail("Daily report not found", 404)
    return ok(_row(r))


@bp.post("")
@requires_perms("reports.create")
def create_report():
    data = request.get_json(silent=True, force=True) or {}
    missing = [k for k in ("date", "site_id", "team_id") if data.get(k) in (None, "")]
    if missing:
        return fail(f"{', '.join(missing)} required", 422)

    r = DailyReport(workers=[])
    res = _apply(r, data)
    if res:
        message, errors = res
        return fail(message, 422, errors=errors)
    try:
        r.created_by = int(get_jwt_identity())
    except (TypeError, ValueError):
        r.created_by = None
    db.session.add(r)
    db.session.commit()
    audit_service.log_event("CREATE", "SITE", target_id=r.id, target_name=r.site_name,
                            details={"kind": "daily_report", "date": r.date.isoformat(), "entries": len(r.workers)})
    return ok(_row(r), 201)


@bp.put("/<int:report_id>")
@requires_perms("reports.update")
def update_report(report_id: int):
    r = db.session.get(DailyReport, report_id)
    if not r:
        return fail("Daily report not found", 404)
    data = request.get_json(silent=True, force=True) or {}
    res = _apply(r, data)
    if res:
        db.session.rollback()
        message, errors = res
        return fail(message, 422, errors=errors)
    db.session.commit()
    audit_service.log_event("UPDATE", "SITE", target_id=r.id, target_name=r.site_name,
                            details={"kind": "daily_report", "fields": sorted(data.keys())})
    return ok(_row(r))


@bp.delete("/<int:report_id>")
@requires_perms("reports.delete")
def delete_report(report_id: int):
    r = db.session.get(DailyReport, report_id)
    if not r:
        return fail("Daily report not found", 404)
    label = r.site_name
    db.session.delete(r)
    db.session.commit()
    audit_service.log_event("DELETE", "SITE", target_id=report_id, target_name=label,
                            details={"kind": "daily_report"})
    return ok({"id": report_id, "deleted": True})
