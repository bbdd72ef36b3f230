from datetime import datetime
from gongsu_api.extensions import db

# catalog id -> column, for deduction items that predate the dynamic catalog
LEGACY_DEDUCTION_FIELDS = {
    "prevMonthCarryover": "prev_month_carryover",
    "accommodation": "accommodation",
    "privateRoom": "private_room",
    "gloves": "gloves",
    "deposit": "deposit",
    "fines": "fines",
    "electricity": "electricity",
    "gas": "gas",
    "internet": "internet",
    "water": "water",
}


class DeductionItem(db.Model):
    __tablename__ = "deduction_items"

    id = db.Column(db.String(64), primary_key=True)
    label = db.Column(db.String(60), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AdvancePayment(db.Model):
    """Per-worker monthly deductions (가불/공제). One row per team+worker+month."""
    __tablename__ = "advance_payments"

    id = db.Column(db.String(96), primary_key=True)   # "{team_id}_{worker_id}_{YYYY-MM}"
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_name = db.Column(db.String(80))
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="SET NULL"))
    team_name = db.Column(db.String(120))
    year_month = db.Column(db.String(7), nullable=False)

    items = db.Column(db.JSON, nullable=False, default=dict)

    prev_month_carryover = db.Column(db.Numeric(14, 2), nullable=False, default=0)  # 전월이월
    accommodation = db.Column(db.Numeric(14, 2), nullable=False, default=0)         # 숙소비
    private_room = db.Column(db.Numeric(14, 2), nullable=False, default=0)          # 개인방
    gloves = db.Column(db.Numeric(14, 2), nullable=False, default=0)                # 장갑
    deposit = db.Column(db.Numeric(14, 2), nullable=False, default=0)               # 보증금
    fines = db.Column(db.Numeric(14, 2), nullable=False, default=0)                 # 과태료
    electricity = db.Column(db.Numeric(14, 2), nullable=False, default=0)           # 전기료
    gas = db.Column(db.Numeric(14, 2), nullable=False, default=0)                   # 도시가스
    internet = db.Column(db.Numeric(14, 2), nullable=False, default=0)              # 인터넷
    water = db.Column(db.Numeric(14, 2), nullable=False, default=0)                 # 수도세

    total_deduction = db.Column(db.Numeric(14, 2), nullable=False, default=0)       # snapshot at save
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_advance_team_month", "team_id", "year_month"),
    )
