# gongsu_api/models/payroll/__init__.py
from gongsu_api.extensions import db  # noqa

from .settlement import SettlementEntry
from .advance import AdvancePayment, DeductionItem, LEGACY_DEDUCTION_FIELDS
from .config import PayrollConfig

__all__ = [
    "SettlementEntry",
    "AdvancePayment", "DeductionItem", "LEGACY_DEDUCTION_FIELDS",
    "PayrollConfig",
]
