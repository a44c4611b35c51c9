from datetime import datetime
from hrms_payroll.extensions import db


class EmployeePenalty(db.Model):
    """
    One row per employee holding the penalty history as a JSON list:

        [{"reason": "Late arrival", "amount": 100.0, "payroll_run_id": null}, ...]

    Entries without payroll_run_id are outstanding. The list is replaced
    (never mutated in place) so the JSON column change is tracked.
    """
    __tablename__ = "employee_penalties"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), unique=True, nullable=False)
    penalties = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
