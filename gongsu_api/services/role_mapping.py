"""
Position (직책) -> system role.

Job titles are free text on user accounts. Access checks only understand
three system roles, so every title in use must be mapped here or through
the POSITION_ROLE_MAP setting. An unknown title is an error, not a quiet
downgrade to 'general'.
"""
from __future__ import annotations
import json
from types import MappingProxyType
from typing import Mapping

from flask import current_app, has_app_context

from gongsu_api.common.errors import UnmappedPosition

SYSTEM_ROLES = ("admin", "manager", "general")

DEFAULT_POSITION_ROLES = {
    "관리자": "admin",
    "사장": "admin",
    "실장": "admin",
    "메니저": "manager",
    "메니저 1": "manager",
    "메니저 2": "manager",
    "메니저 3": "manager",
    "대표": "general",
    "팀장": "general",
    "반장": "general",
    "일반": "general",
    "신규": "general",
}

_EXT_KEY = "position_roles"


class PositionMapError(Exception):
    """Configured position map is malformed; raised while the app starts."""


def load_position_map(extra: Mapping[str, str] | str | None = None) -> Mapping[str, str]:
    if isinstance(extra, str):
        try:
            extra = json.loads(extra) if extra.strip() else None
        except ValueError as e:
            raise PositionMapError(f"POSITION_ROLE_MAP is not valid JSON: {e}") from e
    if extra is not None and not isinstance(extra, Mapping):
        raise PositionMapError("POSITION_ROLE_MAP must be an object of title -> role")

    merged = dict(DEFAULT_POSITION_ROLES)
    for title, role in (extra or {}).items():
        key = str(title).strip()
        if not key:
            raise PositionMapError("POSITION_ROLE_MAP has an empty title")
        if role not in SYSTEM_ROLES:
            raise PositionMapError(f"position {key!r} maps to unknown role {role!r}")
        merged[key] = role
    return MappingProxyType(merged)


def init_app(app):
    app.extensions[_EXT_KEY] = load_position_map(app.config.get("POSITION_ROLE_MAP"))


def _current_map() -> Mapping[str, str]:
    if has_app_context():
        m = current_app.extensions.get(_EXT_KEY)
        if m is not None:
            return m
    return DEFAULT_POSITION_ROLES


def resolve_system_role(title: str, mapping: Mapping[str, str] | None = None) -> str:
    key = (title or "").strip()
    if key.lower() in SYSTEM_ROLES:
        return key.lower()
    mapping = mapping if mapping is not None else _current_map()
    role = mapping.get(key)
    if role is None:
        raise UnmappedPosition(f"no system role mapped for position {key!r}", payload={"position": key})
    return role
