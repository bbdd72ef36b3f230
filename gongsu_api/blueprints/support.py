from flask import Blueprint, request

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.common.money import plain
from gongsu_api.services.support_matrix import build_support_records, build_matrix, totals

bp = Blueprint("support", __name__, url_prefix="/api/v1/support")

VIEWS = ("matrix", "list")


@bp.get("/status")
@requires_perms("support.read")
def support_status():
    month = (request.args.get("month") or "").strip()
    if not month:
        return fail("month is required", 422)
    view = (request.args.get("view") or "matrix").strip().lower()
    if view not in VIEWS:
        return fail(f"view must be one of {', '.join(VIEWS)}", 422)

    records = build_support_records(month)
    if view == "list":
        return ok(plain(records), month=month, view=view, count=len(records), totals=plain(totals(records)))
    return ok(plain(build_matrix(records)), month=month, view=view, count=len(records))
