from __future__ import annotations

from flask import Blueprint, current_app, request
from sqlalchemy import asc, desc, or_

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.money import to_decimal, plain
from gongsu_api.common.paging import sort_params, text_q, paginate
from gongsu_api.extensions import db
from gongsu_api.models.master import Team
from gongsu_api.models.worker import Worker, SALARY_MODELS
from gongsu_api.services import audit_service
from gongsu_api.services.batching import commit_in_batches

bp = Blueprint("workers", __name__, url_prefix="/api/v1/workers")


def _row(w: Worker):
    return {
        "id": w.id,
        "name": w.name,
        "team_id": w.team_id,
        "team_name": w.team.name if w.team else None,
        "user_id": w.user_id,
        "role": w.role,
        "unit_price": plain(to_decimal(w.unit_price)),
        "salary_model": w.salary_model,
        "phone": w.phone,
        "status": w.status,
        "created_at": w.created_at.isoformat() if w.created_at else None,
        "updated_at": w.updated_at.isoformat() if w.updated_at else None,
    }


def _apply(w: Worker, data: dict):
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return "name is required"
        w.name = name
    if "team_id" in data:
        tid = data.get("team_id")
        if tid is not None and not db.session.get(Team, tid):
            return "team_id not found"
        w.team_id = tid
    if "role" in data:
        w.role = (data.get("role") or "").strip() or "일반공"
    if "unit_price" in data:
        price = to_decimal(data.get("unit_price"))
        if price is None or price < 0:
            return "unit_price must be a non-negative number"
        w.unit_price = price
    if "salary_model" in data:
        model = data.get("salary_model") or "daily"
        if model not in SALARY_MODELS:
            return f"salary_model must be one of {', '.join(SALARY_MODELS)}"
        w.salary_model = model
    if "phone" in data:
        w.phone = (data.get("phone") or "").strip() or None
    if "status" in data:
        w.status = (data.get("status") or "active").strip()
    if "user_id" in data:
        w.user_id = data.get("user_id")
    return None


@bp.get("")
@requires_perms("workers.read")
def list_workers():
    qry = Worker.query
    team_id = request.args.get("team_id", type=int)
    if team_id:
        qry = qry.filter(Worker.team_id == team_id)
    salary_model = request.args.get("salary_model")
    if salary_model:
        qry = qry.filter(Worker.salary_model == salary_model)
    status = request.args.get("status")
    if status:
        qry = qry.filter(Worker.status == status)
    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(Worker.name.ilike(like), Worker.phone.ilike(like)))

    sorts = sort_params({"id": Worker.id, "name": Worker.name, "unit_price": Worker.unit_price})
    for col, asc_order in sorts:
        qry = qry.order_by(asc(col) if asc_order else desc(col))
    if not sorts:
        qry = qry.order_by(asc(Worker.name), asc(Worker.id))

    items, meta = paginate(qry)
    return ok([_row(w) for w in items], **meta)


@bp.get("/<int:worker_id>")
@requires_perms("workers.read")
def get_worker(worker_id: int):
    w = db.session.get(Worker, worker_id)
    if not w:
        return fail("Worker not found", 404)
    return ok(_row(w))


@bp.post("")
@requires_perms("workers.create")
def create_worker():
    data = request.get_json(silent=True, force=True) or {}
    if not (data.get("name") or "").strip():
        return fail("name is required", 422)
    w = Worker(role="일반공", unit_price=0, salary_model="daily", status="active")
    err = _apply(w, data)
    if err:
        return fail(err, 422)
    db.session.add(w)
    db.session.commit()
    audit_service.log_event("CREATE", "MANPOWER", target_id=w.id, target_name=w.name)
    return ok(_row(w), 201)


@bp.put("/<int:worker_id>")
@requires_perms("workers.update")
def update_worker(worker_id: int):
    w = db.session.get(Worker, worker_id)
    if not w:
        return fail("Worker not found", 404)
    data = request.get_json(silent=True, force=True) or {}
    before_price = plain(to_decimal(w.unit_price))
    err = _apply(w, data)
    if err:
        db.session.rollback()
        return fail(err, 422)
    db.session.commit()
    details = {"fields": sorted(data.keys())}
    if "unit_price" in data:
        details["unit_price"] = {"before": before_price, "after": plain(to_decimal(w.unit_price))}
    audit_service.log_event("UPDATE", "MANPOWER", target_id=w.id, target_name=w.name, details=details)
    return ok(_row(w))


@bp.delete("/<int:worker_id>")
@requires_perms("workers.delete")
def delete_worker(worker_id: int):
    w = db.session.get(Worker, worker_id)
    if not w:
        return fail("Worker not found", 404)
    name = w.name
    db.session.delete(w)
    db.session.commit()
    audit_service.log_event("DELETE", "MANPOWER", target_id=worker_id, target_name=name)
    return ok({"id": worker_id, "deleted": True})


@bp.post("/bulk-rate")
@requires_perms("workers.update")
def bulk_rate():
    """
    Body: {"items": [{"worker_id": 1, "unit_price": 150000}, ...]}
    Written in WRITE_BATCH_SIZE chunks; a failure reports how many rows landed.
    """
    data = request.get_json(silent=True, force=True) or {}
    items = data.get("items")
    if not isinstance(items, list) or not items:
        return fail("items must be a non-empty list", 422)

    updates = []
    errors = []
    for idx, it in enumerate(items):
        if not isinstance(it, dict):
            errors.append({"index": idx, "message": "item must be an object"})
            continue
        try:
            wid = int(it.get("worker_id"))
        except (TypeError, ValueError):
            errors.append({"index": idx, "message": "worker_id is required"})
            continue
        price = to_decimal(it.get("unit_price"))
        if price is None or price < 0:
            errors.append({"index": idx, "message": "unit_price must be a non-negative number"})
            continue
        updates.append((wid, price))
    if errors:
        return fail("invalid items", 422, code="INVALID_ITEMS", errors=errors)

    known = {w.id for w in Worker.query.filter(Worker.id.in_([wid for wid, _ in updates])).all()}
    missing = sorted({wid for wid, _ in updates if wid not in known})
    if missing:
        return fail("unknown worker ids", 404, detail={"worker_ids": missing})

    def _set_price(pair):
        wid, price = pair
        db.session.get(Worker, wid).unit_price = price

    written = commit_in_batches(updates, _set_price)
    current_app.logger.info("bulk rate update: %d workers", written)
    audit_service.log_event("UPDATE", "MANPOWER", target_id="workers", target_name="bulk-rate",
                            details={"count": written})
    return ok({"updated": written})
