from datetime import datetime
from gongsu_api.extensions import db

SALARY_MODELS = ("daily", "weekly", "monthly", "support", "service")

class Worker(db.Model):
    __tablename__ = "workers"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    name = db.Column(db.String(80), nullable=False)
    role = db.Column(db.String(40), nullable=False, default="일반공")     # rank string: 일반공 / 기공 / 반장 ...
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)  # current rate per man-day
    salary_model = db.Column(db.Enum(*SALARY_MODELS, name="salary_model_enum"), nullable=False, default="daily")
    phone = db.Column(db.String(20))
    status = db.Column(db.String(16), default="active", nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_worker_team_id", "team_id"),
    )

    team = db.relationship("Team", backref=db.backref("workers", lazy="dynamic"))
