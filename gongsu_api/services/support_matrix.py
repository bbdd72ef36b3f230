"""
Support (지원) cross-charge status: which team put how many man-days into
which site, and what that is worth at the team's support rate.

A record is external when the providing team and the receiving site belong
to different companies. Missing company ids compare as "unknown", so two
unowned parties count as internal.
"""
from __future__ import annotations
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from gongsu_api.common.money import to_decimal, cents
from gongsu_api.models.daily_report import DailyReport
from gongsu_api.models.master import Company, Site, Team
from gongsu_api.services.periods import month_bounds

log = logging.getLogger(__name__)

ZERO = Decimal("0")
UNKNOWN_COMPANY = "unknown"


def _company_key(company_id: Optional[int]) -> str:
    return str(company_id) if company_id is not None else UNKNOWN_COMPANY


def _as_int(raw: Any) -> Optional[int]:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def compute_support_records(
    teams: Mapping[int, Team],
    sites: Mapping[int, Site],
    companies: Mapping[int, Company],
    reports: Iterable[DailyReport],
) -> List[Dict[str, Any]]:
    """One record per report entry whose team and site both resolve."""
    records: List[Dict[str, Any]] = []
    for report in reports:
        site = sites.get(report.site_id)
        if site is None:
            continue
        entries = report.workers if isinstance(report.workers, list) else []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            team_id = _as_int(entry.get("teamId"))
            if team_id is None:
                team_id = report.team_id
            team = teams.get(team_id)
            if team is None:
                continue

            man_day = to_decimal(entry.get("manDay", entry.get("gongsu")), ZERO)
            rate = to_decimal(team.support_rate, ZERO)
            site_company = companies.get(site.company_id)
            records.append({
                "id": f"{report.id}_{entry.get('workerId', entry.get('id'))}",
                "date": report.date.isoformat() if report.date else None,
                "provider_team_id": team.id,
                "provider_team_name": team.name,
                "provider_company_id": _company_key(team.company_id),
                "receiver_site_id": site.id,
                "receiver_site_name": site.name,
                "receiver_company_id": _company_key(site.company_id),
                "receiver_company_name": site_company.name if site_company is not None else "",
                "man_day": man_day,
                "team_rate": rate,
                "amount": cents(man_day * rate),
                "is_external": _company_key(team.company_id) != _company_key(site.company_id),
            })
    return records


def build_support_records(month: str) -> List[Dict[str, Any]]:
    first, last = month_bounds(month)
    teams = {t.id: t for t in Team.query.all()}
    sites = {s.id: s for s in Site.query.all()}
    companies = {c.id: c for c in Company.query.all()}
    reports = (
        DailyReport.query
        .filter(DailyReport.date >= first, DailyReport.date <= last)
        .order_by(DailyReport.date.asc(), DailyReport.id.asc())
        .all()
    )
    records = compute_support_records(teams, sites, companies, reports)
    log.debug("support records month=%s reports=%d records=%d", month, len(reports), len(records))
    return records


def totals(records: Iterable[Dict[str, Any]]) -> Dict[str, Decimal]:
    out = {"man_day": ZERO, "external_amount": ZERO, "internal_amount": ZERO}
    for r in records:
        out["man_day"] += r["man_day"]
        if r["is_external"]:
            out["external_amount"] += r["amount"]
        else:
            out["internal_amount"] += r["amount"]
    return out


def build_matrix(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Teams as rows, sites as columns. Columns are ordered by the owning
    company's name, then site name; rows by team name.
    """
    teams: Dict[int, str] = {}
    sites: Dict[int, Dict[str, Any]] = {}
    cells: Dict[tuple, Dict[str, Decimal]] = {}

    for r in records:
        teams.setdefault(r["provider_team_id"], r["provider_team_name"])
        sites.setdefault(r["receiver_site_id"], {
            "id": r["receiver_site_id"],
            "name": r["receiver_site_name"],
            "company_id": r["receiver_company_id"],
            "company_name": r.get("receiver_company_name") or "",
        })
        cell = cells.setdefault((r["provider_team_id"], r["receiver_site_id"]),
                                {"man_day": ZERO, "amount": ZERO})
        cell["man_day"] += r["man_day"]
        cell["amount"] += r["amount"]

    columns = sorted(sites.values(), key=lambda s: (s["company_name"] or "", s["name"] or "", s["id"]))
    ordered_teams = sorted(teams.items(), key=lambda kv: (kv[1] or "", kv[0]))

    rows = []
    for team_id, team_name in ordered_teams:
        row_cells: "OrderedDict[str, Dict[str, Decimal]]" = OrderedDict()
        total_md, total_amt = ZERO, ZERO
        for col in columns:
            cell = cells.get((team_id, col["id"]))
            if cell is None:
                continue
            row_cells[str(col["id"])] = dict(cell)
            total_md += cell["man_day"]
            total_amt += cell["amount"]
        rows.append({
            "team_id": team_id,
            "team_name": team_name,
            "cells": row_cells,
            "total_man_day": total_md,
            "total_amount": total_amt,
        })

    return {"columns": columns, "rows": rows, "totals": totals(records)}
