# gongsu_api/common/money.py
from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")
WON = Decimal("1")


def to_decimal(x: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Finite Decimal from a number or numeric string; `default` otherwise."""
    if x is None or x == "" or isinstance(x, bool):
        return default
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return default
    if not d.is_finite():
        return default
    return d


def floor_won(x: Decimal) -> Decimal:
    return x.to_integral_value(rounding=ROUND_FLOOR)


def round_won(x: Decimal) -> Decimal:
    return x.quantize(WON, rounding=ROUND_HALF_UP)


def cents(x: Decimal) -> Decimal:
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


def plain(value: Any) -> Any:
    """Decimals -> int/float for JSON; walks dicts and lists."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(v) for v in value]
    return value
