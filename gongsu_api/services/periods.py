from __future__ import annotations
import calendar
import re
from datetime import date
from typing import Tuple

from gongsu_api.common.errors import InvalidMonth

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_month(month: str | None) -> Tuple[int, int]:
    """'2025-05' -> (2025, 5). Raises InvalidMonth for anything else."""
    m = _MONTH_RE.match((month or "").strip())
    if not m:
        raise InvalidMonth(f"month must be YYYY-MM, got {month!r}")
    year, mon = int(m.group(1)), int(m.group(2))
    if not 1 <= mon <= 12:
        raise InvalidMonth(f"month out of range: {month!r}")
    return year, mon


def month_bounds(month: str) -> Tuple[date, date]:
    """First and last calendar day of the month (inclusive)."""
    year, mon = parse_month(month)
    last = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last)
