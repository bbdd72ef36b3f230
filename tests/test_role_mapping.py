import os

import pytest

from gongsu_api import create_app
from gongsu_api.extensions import db
from gongsu_api.common.errors import UnmappedPosition
from gongsu_api.models.security import Role, UserRole
from gongsu_api.models.user import User
from gongsu_api.services.role_mapping import (
    PositionMapError, load_position_map, resolve_system_role,
)


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ.pop("POSITION_ROLE_MAP", None)
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app


@pytest.mark.parametrize("title,role", [
    ("관리자", "admin"), ("사장", "admin"), ("실장", "admin"), ("admin", "admin"), ("ADMIN", "admin"),
    ("메니저", "manager"), ("메니저 2", "manager"), ("manager", "manager"),
    ("대표", "general"), ("팀장", "general"), ("반장", "general"), ("일반", "general"), ("신규", "general"),
    (" 팀장 ", "general"),
])
def test_known_titles(title, role):
    assert resolve_system_role(title) == role


def test_unknown_title_is_an_error():
    with pytest.raises(UnmappedPosition):
        resolve_system_role("조공")
    with pytest.raises(UnmappedPosition):
        resolve_system_role("")


def test_extra_map_entries():
    m = load_position_map('{"소장": "manager"}')
    assert resolve_system_role("소장", m) == "manager"
    assert resolve_system_role("관리자", m) == "admin"


@pytest.mark.parametrize("raw", ['{"소장": "boss"}', "[1, 2]", "{not json", '{"  ": "general"}'])
def test_bad_map_is_rejected(raw):
    with pytest.raises(PositionMapError):
        load_position_map(raw)


def test_bad_map_stops_app_start():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["POSITION_ROLE_MAP"] = '{"소장": "superuser"}'
    try:
        with pytest.raises(PositionMapError):
            create_app()
    finally:
        os.environ.pop("POSITION_ROLE_MAP", None)


def test_configured_map_used_inside_app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["POSITION_ROLE_MAP"] = '{"소장": "manager"}'
    try:
        app = create_app()
    finally:
        os.environ.pop("POSITION_ROLE_MAP", None)
    with app.app_context():
        assert resolve_system_role("소장") == "manager"


def test_user_role_codes_include_position(app):
    u = User(email="lead@gongsu.local", full_name="박반장", position="반장")
    u.set_password("x")
    db.session.add(u)
    role = Role(code="manager")
    db.session.add(role)
    db.session.flush()
    db.session.add(UserRole(user_id=u.id, role_id=role.id))
    db.session.commit()

    u = db.session.get(User, u.id)
    assert sorted(u.role_codes()) == ["general", "manager"]
