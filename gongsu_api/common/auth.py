# gongsu_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Iterable, Set

from flask import g
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from gongsu_api.common.http import fail
from gongsu_api.extensions import db
from gongsu_api.models.user import User
from gongsu_api.models.security import Role, Permission, UserRole, RolePermission


# ---------- helpers ----------

def _wildcard_match(user_perm: str, required: str) -> bool:
    """
    Match required permission against a user's permission with simple wildcards.
    Examples:
      user_perm: 'payroll.*'                     matches required: 'payroll.settlement.read'
      user_perm: 'payroll.settlement.*'          matches required: 'payroll.settlement.write'
      user_perm: 'payroll.settlement.read'       matches only exact
    """
    if user_perm == required:
        return True
    if user_perm.endswith(".*"):
        prefix = user_perm[:-2]
        return required.startswith(prefix + ".")
    return False


def _has_any_perm(user_perms: Set[str], required_perms: Iterable[str]) -> bool:
    if not required_perms:
        return True
    if not user_perms:
        return False
    for req in required_perms:
        if any(_wildcard_match(up, req) for up in user_perms):
            return True
    return False


def _collect_perms_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def _load_user(uid) -> User | None:
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None


def current_actor() -> dict:
    """Identity of the caller for audit records; empty fields outside a JWT request."""
    try:
        claims = get_jwt() or {}
        uid = get_jwt_identity()
    except Exception:
        return {"id": None, "email": None, "name": None}
    return {"id": uid, "email": claims.get("email"), "name": claims.get("name")}


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Uses roles in JWT if present; falls back to DB (including the role
      mapped from the user's position).
    - 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            claims = get_jwt() or {}
            roles = set(claims.get("roles") or [])
            if "admin" in roles:
                return fn(*args, **kwargs)

            if not roles:
                user = _load_user(get_jwt_identity())
                if not user:
                    return fail("Unauthorized", status=401)
                roles = set(user.role_codes())

            if "admin" in roles:
                return fn(*args, **kwargs)
            if not any(r in roles for r in codes):
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer


def requires_perms(*perm_codes: str):
    """
    Require that the current user has ANY of the given permission codes.

    Fast path: 'perms' and 'roles' from JWT claims.
    Fallback:  permissions via role mappings in the DB, cached on `g`
               for the rest of the request.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if not perm_codes:
                return fn(*args, **kwargs)

            claims = get_jwt() or {}
            jwt_roles = set(claims.get("roles") or [])
            if "admin" in jwt_roles:
                return fn(*args, **kwargs)

            jwt_perms = set(claims.get("perms") or [])
            if jwt_perms and _has_any_perm(jwt_perms, perm_codes):
                return fn(*args, **kwargs)

            # stale token: re-check live
            user = _load_user(get_jwt_identity())
            if not user:
                return fail("Unauthorized", status=401)
            if "admin" in user.role_codes():
                return fn(*args, **kwargs)

            perms = getattr(g, "_perm_cache", None)
            if perms is None:
                perms = _collect_perms_from_db(user.id)
                g._perm_cache = perms
            if not _has_any_perm(perms, perm_codes):
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer
