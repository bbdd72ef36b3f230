from __future__ import annotations

from flask import Blueprint, request

from gongsu_api.common.auth import requires_perms, requires_roles
from gongsu_api.common.http import ok, fail
from gongsu_api.common.paging import bool_arg, bool_field
from gongsu_api.services import advance_ledger as ledger

bp = Blueprint("deduction_items", __name__, url_prefix="/api/v1/deduction-items")


@bp.get("")
@requires_perms("payroll.advance.read")
def list_items():
    try:
        active_only = bool_arg("active_only") or False
    except ValueError as e:
        return fail(str(e), 422)
    return ok([ledger.item_row(it) for it in ledger.list_items(active_only=active_only)])


@bp.post("")
@requires_roles("admin")
def add_item():
    data = request.get_json(silent=True, force=True) or {}
    it = ledger.add_item(data.get("label"))
    return ok(ledger.item_row(it), 201)


@bp.post("/seed")
@requires_roles("admin")
def seed_items():
    added = ledger.seed_default_items()
    return ok({"added": added, "items": [ledger.item_row(it) for it in ledger.list_items()]})


@bp.put("/order")
@requires_roles("admin")
def reorder():
    data = request.get_json(silent=True, force=True) or {}
    ids = data.get("ids")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        return fail("ids must be a list of item ids", 422)
    return ok([ledger.item_row(it) for it in ledger.reorder_items(ids)])


@bp.patch("/<string:item_id>")
@requires_roles("admin")
def update_item(item_id: str):
    data = request.get_json(silent=True, force=True) or {}
    if "label" not in data and "is_active" not in data:
        return fail("label or is_active is required", 422)
    try:
        active = bool_field(data, "is_active")
    except ValueError as e:
        return fail(str(e), 422)
    it = None
    if "label" in data:
        it = ledger.rename_item(item_id, data.get("label"))
    if active is not None:
        it = ledger.set_active(item_id, active)
    return ok(ledger.item_row(it))


@bp.delete("/<string:item_id>")
@requires_roles("admin")
def delete_item(item_id: str):
    ledger.delete_item(item_id)
    return ok({"id": item_id, "deleted": True})
