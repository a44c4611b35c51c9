from datetime import datetime
from hrms_payroll.extensions import db

class TerminationRequest(db.Model):
    """
    Offboarding workflow record owned by recruitment.

    Payroll reads it to link termination benefits, and creates one only when
    the caller hands over the employee's contract reference.
    """
    __tablename__ = "termination_requests"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    contract_id = db.Column(db.String(64), nullable=False)

    initiator = db.Column(db.String(20), nullable=False, default="hr")   # hr / employee / manager
    reason = db.Column(db.String(255))
    status = db.Column(db.String(20), nullable=False, default="pending")  # pending / approved / rejected
    termination_date = db.Column(db.Date)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
