from datetime import datetime
from hrms_payroll.extensions import db

RUN_STATUSES = ("draft", "processing", "finalized")
PAYMENT_STATUSES = ("pending", "paid")


class PayrollRun(db.Model):
    """Run ledger: one per pay period. The count/total columns are written by reconciliation only."""
    __tablename__ = "payroll_runs"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.String(40), unique=True, nullable=False)   # PR-2025-001
    period = db.Column(db.Date, unique=True, nullable=False)         # period end date
    entity = db.Column(db.String(120))
    status = db.Column(db.Enum(*RUN_STATUSES, name="payroll_run_status_enum"), nullable=False, default="draft")
    payment_status = db.Column(db.Enum(*PAYMENT_STATUSES, name="payroll_payment_status_enum"),
                               nullable=False, default="pending")

    employee_count = db.Column(db.Integer, nullable=False, default=0)
    exception_count = db.Column(db.Integer, nullable=False, default=0)
    total_net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    specialist_id = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    finalized_at = db.Column(db.DateTime)
    paid_at = db.Column(db.DateTime)


class EmployeeSettlement(db.Model):
    __tablename__ = "employee_payroll_details"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    payroll_run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id"), nullable=False, index=True)

    base_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    allowances_total = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    bonus_total = db.Column(db.Numeric(14, 2))      # null when no bonus
    benefit_total = db.Column(db.Numeric(14, 2))    # null when no benefit
    gross_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    tax_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    insurance_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    penalties_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    deductions_total = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    bank_status = db.Column(db.Enum("valid", "missing", name="bank_status_enum"), nullable=False)
    exceptions = db.Column(db.Text)   # '; '-separated, null when clean

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    payroll_run = db.relationship("PayrollRun", lazy="joined")
    employee = db.relationship("Employee", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("employee_id", "payroll_run_id", name="uq_settlement_emp_run"),
    )


class Payslip(db.Model):
    """Point-in-time itemisation of an EmployeeSettlement; written from the same figures."""
    __tablename__ = "payslips"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    payroll_run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id"), nullable=False, index=True)

    earnings_details = db.Column(db.JSON, nullable=False)
    deductions_details = db.Column(db.JSON, nullable=False)
    total_gross_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    payment_status = db.Column(db.Enum(*PAYMENT_STATUSES, name="payslip_payment_status_enum"),
                               nullable=False, default="pending")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    payroll_run = db.relationship("PayrollRun", lazy="joined")
    employee = db.relationship("Employee", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("employee_id", "payroll_run_id", name="uq_payslip_emp_run"),
    )
