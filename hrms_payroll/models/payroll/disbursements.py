from datetime import datetime
from hrms_payroll.extensions import db

DISBURSEMENT_STATUSES = ("pending", "approved", "rejected")


class EmployeeSigningBonus(db.Model):
    __tablename__ = "employee_signing_bonuses"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    signing_bonus_id = db.Column(db.Integer, db.ForeignKey("signing_bonuses.id"), nullable=False)

    given_amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_date = db.Column(db.Date)   # only while status == 'approved'
    status = db.Column(db.Enum(*DISBURSEMENT_STATUSES, name="bonus_status_enum"), nullable=False, default="pending")

    # run whose settlement paid this out
    payroll_run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    signing_bonus = db.relationship("SigningBonus", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("employee_id", "signing_bonus_id", name="uq_emp_signing_bonus"),
    )

    @property
    def config_entity_id(self):
        return self.signing_bonus_id


class EmployeeTerminationBenefit(db.Model):
    __tablename__ = "employee_termination_benefits"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    benefit_id = db.Column(db.Integer, db.ForeignKey("termination_benefits.id"), nullable=False)
    termination_request_id = db.Column(db.Integer, db.ForeignKey("termination_requests.id"), nullable=False)

    given_amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_date = db.Column(db.Date)
    status = db.Column(db.Enum(*DISBURSEMENT_STATUSES, name="benefit_status_enum"), nullable=False, default="pending")

    payroll_run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    benefit = db.relationship("TerminationBenefit", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("employee_id", "benefit_id", name="uq_emp_termination_benefit"),
    )

    @property
    def config_entity_id(self):
        return self.benefit_id
