from datetime import datetime
from gongsu_api.extensions import db

class PayrollConfig(db.Model):
    """Single-row payroll settings: withholding rate and 4대보험 rates."""
    __tablename__ = "payroll_config"

    id = db.Column(db.Integer, primary_key=True)
    tax_rate = db.Column(db.Numeric(6, 4), nullable=False, default=0.033)
    # {"threshold_days":8,"pension_rate":0.045,"health_rate":0.03545,
    #  "care_rate_of_health":0.1295,"employment_rate":0.009}
    insurance_config = db.Column(db.JSON, nullable=False, default=dict)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
