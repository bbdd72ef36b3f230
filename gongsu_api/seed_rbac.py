# gongsu_api/seed_rbac.py
from gongsu_api.extensions import db
from gongsu_api.models.security import Role, Permission, RolePermission
from gongsu_api.models.user import User

DEFAULT_ROLES = [
    ("admin", "Administrator"),
    ("manager", "Manager"),
    ("general", "General"),
]

DEFAULT_PERMS = [
    # Registry
    "master.companies.read", "master.companies.create", "master.companies.update", "master.companies.delete",
    "master.teams.read", "master.teams.create", "master.teams.update", "master.teams.delete",
    "master.sites.read", "master.sites.create", "master.sites.update", "master.sites.delete",
    "workers.read", "workers.create", "workers.update", "workers.delete",

    # Daily reports (일보)
    "reports.read", "reports.create", "reports.update", "reports.delete",

    # Payroll
    "payroll.settlement.read", "payroll.settlement.write",
    "payroll.advance.read", "payroll.advance.write",
    "payroll.config.read", "payroll.config.write",

    # Support status, audit trail
    "support.read",
    "audit.read",
]

ROLE_PERM_MAP = {
    "admin": DEFAULT_PERMS,
    "manager": [
        "master.companies.read", "master.teams.read", "master.sites.read",
        "workers.read", "workers.create", "workers.update",
        "reports.read", "reports.create", "reports.update",
        "payroll.settlement.read", "payroll.settlement.write",
        "payroll.advance.read", "payroll.advance.write",
        "payroll.config.read",
        "support.read",
    ],
    "general": [
        "master.teams.read", "master.sites.read",
        "workers.read",
        "reports.read", "reports.create",
    ],
}


def _ensure_roles():
    code_to_role = {}
    for code, _name in DEFAULT_ROLES:
        r = Role.query.filter_by(code=code).first()
        if not r:
            r = Role(code=code)
            db.session.add(r)
            db.session.flush()
        code_to_role[code] = r
    return code_to_role


def _ensure_permissions():
    code_to_perm = {}
    for code in DEFAULT_PERMS:
        p = Permission.query.filter_by(code=code).first()
        if not p:
            p = Permission(code=code, name=code.replace(".", " ").title())
            db.session.add(p)
            db.session.flush()
        code_to_perm[code] = p
    return code_to_perm


def _map_role_perms(code_to_role, code_to_perm):
    for rcode, perms in ROLE_PERM_MAP.items():
        r = code_to_role[rcode]
        existing = {(rp.role_id, rp.permission_id) for rp in r.permissions}
        for pcode in perms:
            p = code_to_perm[pcode]
            if (r.id, p.id) not in existing:
                db.session.add(RolePermission(role_id=r.id, permission_id=p.id))


def _assign_admin_role():
    # attach 'admin' to the seeded admin account if it exists
    admin_user = User.query.filter_by(email="admin@gongsu.local").first()
    if not admin_user:
        return
    from gongsu_api.models.security import UserRole
    if not any(ur.role.code == "admin" for ur in admin_user.user_roles):
        admin_role = Role.query.filter_by(code="admin").first()
        if admin_role:
            db.session.add(UserRole(user_id=admin_user.id, role_id=admin_role.id))


def run():
    code_to_role = _ensure_roles()
    code_to_perm = _ensure_permissions()
    _map_role_perms(code_to_role, code_to_perm)
    _assign_admin_role()
    db.session.commit()
    return {"ok": True, "roles": len(DEFAULT_ROLES), "perms": len(DEFAULT_PERMS)}
