from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from flask import current_app, has_app_context

from gongsu_api.common.errors import APIError
from gongsu_api.common.money import to_decimal, round_won
from gongsu_api.extensions import db
from gongsu_api.models.payroll.config import PayrollConfig

log = logging.getLogger(__name__)

DEFAULT_TAX_RATE = Decimal("0.033")   # 사업소득세 3.3%

DEFAULT_INSURANCE_CONFIG = {
    "threshold_days": 8,
    "pension_rate": 0.045,          # 국민연금
    "health_rate": 0.03545,         # 건강보험
    "care_rate_of_health": 0.1295,  # 장기요양, applied to the health premium
    "employment_rate": 0.009,       # 고용보험
}

_RATE_KEYS = ("pension_rate", "health_rate", "care_rate_of_health", "employment_rate")


def _default_tax_rate() -> Decimal:
    if has_app_context():
        return to_decimal(current_app.config.get("SETTLEMENT_TAX_RATE"), DEFAULT_TAX_RATE)
    return DEFAULT_TAX_RATE


def current_tax_rate() -> Decimal:
    """Configured withholding rate without creating the config row."""
    cfg = PayrollConfig.query.order_by(PayrollConfig.id).first()
    if cfg is None or cfg.tax_rate is None:
        return _default_tax_rate()
    return to_decimal(cfg.tax_rate, _default_tax_rate())


def _sanitize_insurance(raw: Any) -> Dict[str, Any]:
    src = raw if isinstance(raw, dict) else {}
    out = dict(DEFAULT_INSURANCE_CONFIG)
    threshold = src.get("threshold_days")
    if isinstance(threshold, (int, float)) and not isinstance(threshold, bool) and threshold > 0:
        out["threshold_days"] = int(threshold)
    for k in _RATE_KEYS:
        v = to_decimal(src.get(k))
        if v is not None and v >= 0:
            out[k] = float(v)
    return out


def get_config() -> PayrollConfig:
    """Return the config row, creating it or backfilling missing keys on first read."""
    cfg = PayrollConfig.query.order_by(PayrollConfig.id).first()
    if cfg is None:
        cfg = PayrollConfig(tax_rate=_default_tax_rate(), insurance_config=dict(DEFAULT_INSURANCE_CONFIG))
        db.session.add(cfg)
        db.session.commit()
        log.info("created default payroll config")
        return cfg

    cleaned = _sanitize_insurance(cfg.insurance_config)
    if cleaned != cfg.insurance_config:
        cfg.insurance_config = cleaned
        db.session.commit()
    return cfg


def update_config(patch: Dict[str, Any]) -> PayrollConfig:
    cfg = get_config()
    if "tax_rate" in patch:
        rate = to_decimal(patch.get("tax_rate"))
        if rate is None or rate < 0 or rate >= 1:
            raise APIError("tax_rate must be a number in [0, 1)", code="INVALID_TAX_RATE", status_code=422)
        cfg.tax_rate = rate

    ins = patch.get("insurance_config")
    if ins is not None:
        if not isinstance(ins, dict):
            raise APIError("insurance_config must be an object", status_code=422)
        merged = dict(cfg.insurance_config or DEFAULT_INSURANCE_CONFIG)
        if "threshold_days" in ins:
            t = ins["threshold_days"]
            if isinstance(t, bool) or not isinstance(t, int) or t <= 0:
                raise APIError("threshold_days must be a positive integer", status_code=422)
            merged["threshold_days"] = t
        for k in _RATE_KEYS:
            if k in ins:
                v = to_decimal(ins[k])
                if v is None or v < 0:
                    raise APIError(f"{k} must be a non-negative number", status_code=422)
                merged[k] = float(v)
        cfg.insurance_config = merged

    db.session.commit()
    return cfg


def config_row(cfg: PayrollConfig) -> Dict[str, Any]:
    return {
        "tax_rate": float(cfg.tax_rate) if cfg.tax_rate is not None else None,
        "insurance_config": cfg.insurance_config,
        "updated_at": cfg.updated_at.isoformat() if cfg.updated_at else None,
    }


def calculate_deductions(
    gross_pay: Decimal,
    insurance_config: Optional[Dict[str, Any]] = None,
    tax_rate: Optional[Decimal] = None,
    advance_deduction: Decimal = Decimal("0"),
) -> Dict[str, Decimal]:
    """
    4대보험 + income tax + advances for one gross amount, each rounded to the won.
    Care insurance is a share of the health premium, not of gross.
    """
    ins = _sanitize_insurance(insurance_config)
    rate = tax_rate if tax_rate is not None else DEFAULT_TAX_RATE
    gross = to_decimal(gross_pay, Decimal("0"))

    pension = round_won(gross * Decimal(str(ins["pension_rate"])))
    health = round_won(gross * Decimal(str(ins["health_rate"])))
    care = round_won(health * Decimal(str(ins["care_rate_of_health"])))
    employment = round_won(gross * Decimal(str(ins["employment_rate"])))
    total_insurance = pension + health + care + employment

    income_tax = round_won(gross * to_decimal(rate, DEFAULT_TAX_RATE))
    advance = to_decimal(advance_deduction, Decimal("0"))
    total = total_insurance + income_tax + advance

    return {
        "pension": pension,
        "health": health,
        "care": care,
        "employment": employment,
        "total_insurance": total_insurance,
        "income_tax": income_tax,
        "advance_deduction": advance,
        "total_deduction": total,
        "net_pay": gross - total,
    }
