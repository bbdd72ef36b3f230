from datetime import datetime
from gongsu_api.extensions import db

class DailyReport(db.Model):
    """
    One team's day at one site. `workers` is the ordered entry list:
      [{"workerId": 7, "name": "...", "manDay": 1.0, "unitPrice": 150000}, ...]
    `unitPrice` is a snapshot of the worker's rate when the report was written
    and may be absent; `teamId` on an entry overrides the report's team for
    support accounting.
    """
    __tablename__ = "daily_reports"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id", ondelete="RESTRICT"), nullable=True)
    site_name = db.Column(db.String(160))
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=True)
    workers = db.Column(db.JSON, nullable=False, default=list)
    memo = db.Column(db.Text)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_daily_reports_team_date", "team_id", "date"),
        db.Index("ix_daily_reports_date", "date"),
    )

    site = db.relationship("Site", lazy="joined")
    team = db.relationship("Team", lazy="joined")
