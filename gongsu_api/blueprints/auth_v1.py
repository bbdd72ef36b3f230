from datetime import timedelta

from flask import Blueprint, request
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    jwt_required, get_jwt_identity
)

from gongsu_api.common.http import ok, fail
from gongsu_api.extensions import db
from gongsu_api.models.user import User
from gongsu_api.services import audit_service

bp = Blueprint("auth_v1", __name__, url_prefix="/api/v1/auth")


def _user_payload(u: User):
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "position": u.position,
        "worker_id": u.worker_id,
        "roles": u.role_codes(),
    }


def _claims(u: User):
    return {"roles": u.role_codes(), "email": u.email, "name": u.full_name}


@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        data = {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", status=401)
    if (u.status or "active") != "active":
        return fail("Account is not active", status=403)

    claims = _claims(u)
    access = create_access_token(identity=str(u.id), additional_claims=claims, expires_delta=timedelta(days=1))
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"roles": claims["roles"]})
    audit_service.log_event("LOGIN", "AUTH", target_id=u.id, target_name=u.email,
                            actor={"id": u.id, "email": u.email, "name": u.full_name})
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=401)
    new_access = create_access_token(identity=str(u.id), additional_claims=_claims(u))
    return ok({"access": new_access})


@bp.get("/me")
@jwt_required()
def me():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=404)
    return ok(_user_payload(u))
