# gongsu_api/blueprints/master_companies.py
from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import asc, desc, or_

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.paging import sort_params, text_q, paginate, bool_arg, bool_field
from gongsu_api.extensions import db
from gongsu_api.models.master import Company
from gongsu_api.services import audit_service

bp = Blueprint("master_companies", __name__, url_prefix="/api/v1/master/companies")


def _row(x: Company):
    return {
        "id": x.id,
        "code": x.code,
        "name": x.name,
        "is_active": bool(x.is_active),
        "created_at": x.created_at.isoformat() if x.created_at else None,
    }


@bp.get("")
@requires_perms("master.companies.read")
def list_companies():
    qry = Company.query

    try:
        is_active = bool_arg("is_active")
    except ValueError as e:
        return fail(str(e), 422)
    if is_active is not None:
        qry = qry.filter(Company.is_active.is_(is_active))

    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(Company.name.ilike(like), Company.code.ilike(like)))

    allowed = {"id": Company.id, "name": Company.name, "code": Company.code, "created_at": Company.created_at}
    sorts = sort_params(allowed)
    for col, asc_order in sorts:
        qry = qry.order_by(asc(col) if asc_order else desc(col))
    if not sorts:
        qry = qry.order_by(asc(Company.name))

    items, meta = paginate(qry)
    return ok([_row(i) for i in items], **meta)


@bp.get("/<int:comp_id>")
@requires_perms("master.companies.read")
def get_company(comp_id: int):
    x = db.session.get(Company, comp_id)
    if not x:
        return fail("Company not found", 404)
    return ok(_row(x))


@bp.post("")
@requires_perms("master.companies.create")
def create_company():
    data = request.get_json(silent=True, force=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return fail("name is required", 422)
    try:
        is_active = bool_field(data, "is_active", True)
    except ValueError as e:
        return fail(str(e), 422)

    dup = Company.query.filter(db.func.lower(Company.name) == name.lower()).first()
    if dup:
        return fail("Company with same name already exists", 409)

    obj = Company(name=name, is_active=is_active)
    code = (data.get("code") or "").strip()
    if code:
        obj.code = code
    db.session.add(obj)
    db.session.commit()
    audit_service.log_event("CREATE", "SITE", target_id=obj.id, target_name=obj.name, details={"kind": "company"})
    return ok(_row(obj), 201)


@bp.put("/<int:comp_id>")
@requires_perms("master.companies.update")
def update_company(comp_id: int):
    obj = db.session.get(Company, comp_id)
    if not obj:
        return fail("Company not found", 404)

    data = request.get_json(silent=True, force=True) or {}
    try:
        is_active = bool_field(data, "is_active")
    except ValueError as e:
        return fail(str(e), 422)
    if "name" in data:
        candidate = (data.get("name") or "").strip()
        if not candidate:
            return fail("name cannot be empty", 422)
        dup = Company.query.filter(
            Company.id != obj.id,
            db.func.lower(Company.name) == candidate.lower()
        ).first()
        if dup:
            return fail("Company with same name already exists", 409)
        obj.name = candidate
    if is_active is not None:
        obj.is_active = is_active
    if "code" in data:
        obj.code = (data.get("code") or "").strip() or None

    db.session.commit()
    audit_service.log_event("UPDATE", "SITE", target_id=obj.id, target_name=obj.name, details={"kind": "company"})
    return ok(_row(obj))


@bp.delete("/<int:comp_id>")
@requires_perms("master.companies.delete")
def delete_company(comp_id: int):
    obj = db.session.get(Company, comp_id)
    if not obj:
        return fail("Company not found", 404)
    obj.soft_delete()
    db.session.commit()
    audit_service.log_event("DELETE", "SITE", target_id=obj.id, target_name=obj.name, details={"kind": "company"})
    return ok({"id": obj.id, "deleted": True})
