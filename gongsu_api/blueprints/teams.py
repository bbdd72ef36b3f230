from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import asc, desc

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.money import to_decimal, plain
from gongsu_api.common.paging import sort_params, text_q, paginate, bool_arg, bool_field
from gongsu_api.extensions import db
from gongsu_api.models.master import Company, Team
from gongsu_api.services import audit_service

bp = Blueprint("teams", __name__, url_prefix="/api/v1/teams")

SUPPORT_MODELS = ("man_day", "fixed")


def _row(t: Team):
    return {
        "id": t.id,
        "name": t.name,
        "company_id": t.company_id,
        "company_name": t.company.name if t.company else None,
        "support_rate": plain(to_decimal(t.support_rate)),
        "support_model": t.support_model,
        "description": t.description,
        "is_active": bool(t.is_active),
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def _apply(t: Team, data: dict):
    """Copy validated fields from `data`; returns an error message or None."""
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return "name is required"
        t.name = name
    if "company_id" in data:
        cid = data.get("company_id")
        if cid is not None and not db.session.get(Company, cid):
            return "company_id not found"
        t.company_id = cid
    if "support_rate" in data:
        raw = data.get("support_rate")
        rate = to_decimal(raw)
        if raw is not None and (rate is None or rate < 0):
            return "support_rate must be a non-negative number"
        t.support_rate = rate
    if "support_model" in data:
        model = data.get("support_model") or "man_day"
        if model not in SUPPORT_MODELS:
            return f"support_model must be one of {', '.join(SUPPORT_MODELS)}"
        t.support_model = model
    if "description" in data:
        t.description = (data.get("description") or "").strip() or None
    if "is_active" in data:
        try:
            t.is_active = bool_field(data, "is_active")
        except ValueError as e:
            return str(e)
    return None


@bp.get("")
@requires_perms("master.teams.read")
def list_teams():
    qry = Team.query
    try:
        is_active = bool_arg("is_active")
    except ValueError as e:
        return fail(str(e), 422)
    if is_active is not None:
        qry = qry.filter(Team.is_active.is_(is_active))
    company_id = request.args.get("company_id", type=int)
    if company_id:
        qry = qry.filter(Team.company_id == company_id)
    s = text_q()
    if s:
        qry = qry.filter(Team.name.ilike(f"%{s}%"))

    sorts = sort_params({"id": Team.id, "name": Team.name, "created_at": Team.created_at})
    for col, asc_order in sorts:
        qry = qry.order_by(asc(col) if asc_order else desc(col))
    if not sorts:
        qry = qry.order_by(asc(Team.name))

    items, meta = paginate(qry)
    return ok([_row(t) for t in items], **meta)


@bp.get("/<int:team_id>")
@requires_perms("master.teams.read")
def get_team(team_id: int):
    t = db.session.get(Team, team_id)
    if not t:
        return fail("Team not found", 404)
    return ok(_row(t))


@bp.post("")
@requires_perms("master.teams.create")
def create_team():
    data = request.get_json(silent=True, force=True) or {}
    if not (data.get("name") or "").strip():
        return fail("name is required", 422)
    t = Team(support_model="man_day", is_active=True)
    err = _apply(t, data)
    if err:
        return fail(err, 422)
    db.session.add(t)
    db.session.commit()
    audit_service.log_event("CREATE", "MANPOWER", target_id=t.id, target_name=t.name, details={"kind": "team"})
    return ok(_row(t), 201)


@bp.put("/<int:team_id>")
@requires_perms("master.teams.update")
def update_team(team_id: int):
    t = db.session.get(Team, team_id)
    if not t:
        return fail("Team not found", 404)
    data = request.get_json(silent=True, force=True) or {}
    err = _apply(t, data)
    if err:
        db.session.rollback()
        return fail(err, 422)
    db.session.commit()
    audit_service.log_event("UPDATE", "MANPOWER", target_id=t.id, target_name=t.name,
                            details={"fields": sorted(data.keys())})
    return ok(_row(t))


@bp.delete("/<int:team_id>")
@requires_perms("master.teams.delete")
def delete_team(team_id: int):
    t = db.session.get(Team, team_id)
    if not t:
        return fail("Team not found", 404)
    t.is_active = False
    db.session.commit()
    audit_service.log_event("DELETE", "MANPOWER", target_id=t.id, target_name=t.name, details={"kind": "team"})
    return ok({"id": t.id, "deleted": True})
