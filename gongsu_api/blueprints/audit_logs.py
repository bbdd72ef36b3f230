from flask import Blueprint, request

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok
from gongsu_api.services.audit_service import get_logs, row

bp = Blueprint("audit_logs", __name__, url_prefix="/api/v1/audit-logs")

MAX_LIMIT = 500


@bp.get("")
@requires_perms("audit.read")
def list_logs():
    limit = request.args.get("limit", default=100, type=int) or 100
    limit = max(1, min(limit, MAX_LIMIT))
    category = (request.args.get("category") or "").strip().upper() or None
    actor_id = (request.args.get("actor_id") or "").strip() or None
    logs = get_logs(limit=limit, category=category, actor_id=actor_id)
    return ok([row(a) for a in logs], count=len(logs))
