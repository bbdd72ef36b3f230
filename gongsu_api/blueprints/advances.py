from __future__ import annotations

from flask import Blueprint, request

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.money import plain
from gongsu_api.services import advance_ledger as ledger

bp = Blueprint("advances", __name__, url_prefix="/api/v1/advances")


@bp.get("")
@requires_perms("payroll.advance.read")
def list_advances():
    year_month = (request.args.get("year_month") or request.args.get("month") or "").strip()
    if not year_month:
        return fail("year_month is required", 422)
    team_id = request.args.get("team_id", type=int)
    rows, totals = ledger.advance_sheet(year_month, team_id or None)
    items = [ledger.item_row(it) for it in ledger.list_items(active_only=True)]
    return ok(plain(rows), count=len(rows), items=items, **plain(totals))


@bp.put("")
@requires_perms("payroll.advance.write")
def save_advance():
    data = request.get_json(silent=True, force=True) or {}
    a = ledger.save_advance(data)
    return ok(plain(ledger.advance_row(a, ledger.list_items(active_only=True))))


@bp.delete("/<string:adv_id>")
@requires_perms("payroll.advance.write")
def delete_advance(adv_id: str):
    ledger.delete_advance(adv_id)
    return ok({"id": adv_id, "deleted": True})
