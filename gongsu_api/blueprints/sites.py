from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import asc, desc

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.paging import sort_params, text_q, paginate
from gongsu_api.extensions import db
from gongsu_api.models.daily_report import DailyReport
from gongsu_api.models.master import Company, Site
from gongsu_api.services import audit_service

bp = Blueprint("sites", __name__, url_prefix="/api/v1/sites")

SITE_STATUSES = ("active", "paused", "closed")


def _row(s: Site):
    return {
        "id": s.id,
        "name": s.name,
        "company_id": s.company_id,
        "company_name": s.company.name if s.company else None,
        "status": s.status,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


def _apply(s: Site, data: dict):
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return "name is required"
        s.name = name
    if "company_id" in data:
        cid = data.get("company_id")
        if cid is not None and not db.session.get(Company, cid):
            return "company_id not found"
        s.company_id = cid
    if "status" in data:
        status = data.get("status") or "active"
        if status not in SITE_STATUSES:
            return f"status must be one of {', '.join(SITE_STATUSES)}"
        s.status = status
    return None


@bp.get("")
@requires_perms("master.sites.read")
def list_sites():
    qry = Site.query
    status = request.args.get("status")
    if status:
        if status not in SITE_STATUSES:
            return fail(f"status must be one of {', '.join(SITE_STATUSES)}", 422)
        qry = qry.filter(Site.status == status)
    company_id = request.args.get("company_id", type=int)
    if company_id:
        qry = qry.filter(Site.company_id == company_id)
    s = text_q()
    if s:
        qry = qry.filter(Site.name.ilike(f"%{s}%"))

    sorts = sort_params({"id": Site.id, "name": Site.name, "status": Site.status})
    for col, asc_order in sorts:
        qry = qry.order_by(asc(col) if asc_order else desc(col))
    if not sorts:
        qry = qry.order_by(asc(Site.name))

    items, meta = paginate(qry)
    return ok([_row(x) for x in items], **meta)


@bp.get("/<int:site_id>")
@requires_perms("master.sites.read")
def get_site(site_id: int):
    s = db.session.get(Site, site_id)
    if not s:
        return fail("Site not found", 404)
    return ok(_row(s))


@bp.post("")
@requires_perms("master.sites.create")
def create_site():
    data = request.get_json(silent=True, force=True) or {}
    if not (data.get("name") or "").strip():
        return fail("name is required", 422)
    s = Site(status="active")
    err = _apply(s, data)
    if err:
        return fail(err, 422)
    db.session.add(s)
    db.session.commit()
    audit_service.log_event("CREATE", "SITE", target_id=s.id, target_name=s.name)
    return ok(_row(s), 201)


@bp.put("/<int:site_id>")
@requires_perms("master.sites.update")
def update_site(site_id: int):
    s = db.session.get(Site, site_id)
    if not s:
        return fail("Site not found", 404)
    data = request.get_json(silent=True, force=True) or {}
    err = _apply(s, data)
    if err:
        db.session.rollback()
        return fail(err, 422)
    db.session.commit()
    audit_service.log_event("UPDATE", "SITE", target_id=s.id, target_name=s.name,
                            details={"fields": sorted(data.keys())})
    return ok(_row(s))


@bp.delete("/<int:site_id>")
@requires_perms("master.sites.delete")
def delete_site(site_id: int):
    s = db.session.get(Site, site_id)
    if not s:
        return fail("Site not found", 404)
    if DailyReport.query.filter_by(site_id=s.id).first():
        return fail("Site has daily reports; close it instead", 409, code="SITE_IN_USE")
    name = s.name
    db.session.delete(s)
    db.session.commit()
    audit_service.log_event("DELETE", "SITE", target_id=site_id, target_name=name)
    return ok({"id": site_id, "deleted": True})
