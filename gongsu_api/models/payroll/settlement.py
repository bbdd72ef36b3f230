from datetime import datetime
from gongsu_api.extensions import db

SETTLEMENT_STATUSES = ("pending", "completed", "paid")

class SettlementEntry(db.Model):
    """Saved monthly pay record for one worker. Shadows the live computation once present."""
    __tablename__ = "settlements"

    id = db.Column(db.String(64), primary_key=True)   # "{worker_id}_{YYYY-MM}"
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_name = db.Column(db.String(80))
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="SET NULL"), index=True)
    role = db.Column(db.String(40))
    month = db.Column(db.String(7), nullable=False)   # YYYY-MM

    labor_site = db.Column(db.String(160))
    reported_site = db.Column(db.String(160))

    days_worked = db.Column(db.Numeric(8, 2), default=0)
    reported_days = db.Column(db.Numeric(8, 2), default=0)
    remaining_days = db.Column(db.Numeric(8, 2), default=0)

    unit_price = db.Column(db.Numeric(12, 2), default=0)
    gross_pay = db.Column(db.Numeric(14, 2), default=0)
    reported_gross_pay = db.Column(db.Numeric(14, 2), default=0)

    tax_rate = db.Column(db.Numeric(6, 4), default=0.033)
    tax_amount = db.Column(db.Numeric(14, 2), default=0)

    national_pension = db.Column(db.Numeric(14, 2), default=0)
    health_insurance = db.Column(db.Numeric(14, 2), default=0)
    care_insurance = db.Column(db.Numeric(14, 2), default=0)
    employment_insurance = db.Column(db.Numeric(14, 2), default=0)

    advance_payment = db.Column(db.Numeric(14, 2), default=0)
    accommodation_fee = db.Column(db.Numeric(14, 2), default=0)
    food_expense = db.Column(db.Numeric(14, 2), default=0)
    other_deduction = db.Column(db.Numeric(14, 2), default=0)

    net_pay = db.Column(db.Numeric(14, 2), default=0)
    status = db.Column(db.Enum(*SETTLEMENT_STATUSES, name="settlement_status_enum"), default="pending", nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_settlements_team_month", "team_id", "month"),
    )
