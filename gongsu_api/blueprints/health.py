from flask import Blueprint
from sqlalchemy import text

from gongsu_api.common.http import ok, fail
from gongsu_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        from flask import current_app
        current_app.logger.exception("health check failed: %s", e)
        return fail("database unavailable", status=503, code="DB_UNAVAILABLE")
    return ok({"status": "ok"})
