from datetime import datetime
from gongsu_api.extensions import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(40), nullable=False)     # CREATE / UPDATE / DELETE / LOGIN / SAVE ...
    category = db.Column(db.String(40), nullable=False)   # MANPOWER / SITE / PAYROLL / SYSTEM / AUTH
    actor_id = db.Column(db.String(64))
    actor_email = db.Column(db.String(255))
    actor_name = db.Column(db.String(255))
    target_id = db.Column(db.String(120))
    target_name = db.Column(db.String(255))
    details = db.Column(db.JSON)
    ip = db.Column(db.String(64))
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        db.Index("ix_audit_category_ts", "category", "timestamp"),
    )
