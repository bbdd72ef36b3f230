from flask import Blueprint, request

from gongsu_api.common.auth import requires_perms
from gongsu_api.common.http import ok, fail
from gongsu_api.services import audit_service
from gongsu_api.services.payroll_config import get_config, update_config, config_row

bp = Blueprint("payroll_config", __name__, url_prefix="/api/v1/payroll-config")


@bp.get("")
@requires_perms("payroll.config.read")
def read_config():
    return ok(config_row(get_config()))


@bp.put("")
@requires_perms("payroll.config.write")
def write_config():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict) or not data:
        return fail("body must be a non-empty object", 422)
    before = config_row(get_config())
    cfg = update_config(data)
    after = config_row(cfg)
    audit_service.log_event("UPDATE", "PAYROLL", target_id=cfg.id, target_name="payroll_config",
                            details={"before": {k: before[k] for k in ("tax_rate", "insurance_config")},
                                     "after": {k: after[k] for k in ("tax_rate", "insurance_config")}})
    return ok(after)
