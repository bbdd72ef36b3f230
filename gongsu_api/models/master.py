from datetime import datetime

from sqlalchemy.sql import func

from gongsu_api.extensions import db


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=True)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    deleted_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def soft_delete(self):
        self.is_active = False
        self.deleted_at = func.now()


class Team(db.Model):
    """
    A labor crew. Workers point at a team; the team points at the company
    that owns it. `support_rate` is what the team bills per man-day when it
    works a site (see services.support_matrix).
    """

    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    name = db.Column(db.String(120), nullable=False)
    support_rate = db.Column(db.Numeric(12, 2), nullable=True)
    support_model = db.Column(
        db.Enum("man_day", "fixed", name="team_support_model_enum"),
        nullable=False,
        default="man_day",
    )
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    company = db.relationship("Company", backref=db.backref("teams", lazy="dynamic"))


class Site(db.Model):
    __tablename__ = "sites"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    name = db.Column(db.String(160), nullable=False)
    status = db.Column(
        db.Enum("active", "paused", "closed", name="site_status_enum"),
        nullable=False,
        default="active",
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    company = db.relationship("Company", backref=db.backref("sites", lazy="dynamic"))
