from datetime import datetime
from gongsu_api.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

class User(db.Model):
    __tablename__ = "users"

    id            = db.Column(db.Integer, primary_key=True)
    email         = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name     = db.Column(db.String(255), nullable=False)
    position      = db.Column(db.String(60), nullable=True)   # job title, e.g. 관리자 / 팀장
    status        = db.Column(db.String(20), default="active")
    created_at    = db.Column(db.DateTime, default=datetime.utcnow)

    roles = db.relationship(
        "Role",
        secondary="user_roles",
        lazy="joined",
        viewonly=True,
        overlaps="user_roles,user,role,users",
    )

    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    def role_codes(self):
        """Explicit role grants plus the system role mapped from `position`."""
        codes = [r.code for r in self.roles]
        if self.position:
            from gongsu_api.services.role_mapping import resolve_system_role
            sys_role = resolve_system_role(self.position)
            if sys_role not in codes:
                codes.append(sys_role)
        return codes

    @property
    def worker_id(self):
        """First Worker linked to this login, or None."""
        from gongsu_api.models.worker import Worker  # late import to avoid circulars
        w = Worker.query.filter_by(user_id=self.id).first()
        return w.id if w else None
