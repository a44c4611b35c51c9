from datetime import datetime
from hrms_payroll.extensions import db

CONFIG_STATUSES = ("draft", "approved", "rejected")


class ApprovalMixin:
    """
    Approval gate shared by every compensation config table.

    approved_by / approved_at are set iff status == 'approved'. Rows are never
    deleted; only 'draft' rows may change.
    """
    status = db.Column(db.Enum(*CONFIG_STATUSES, name="config_status_enum"), nullable=False, default="draft")
    created_by = db.Column(db.Integer, nullable=False)
    approved_by = db.Column(db.Integer)
    approved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # selector columns (get_approved by dict) and editable value columns
    SELECTORS = ()
    VALUE_FIELDS = ()


class PayGrade(ApprovalMixin, db.Model):
    __tablename__ = "pay_grades"
    SELECTORS = ("grade",)
    VALUE_FIELDS = ("base_salary", "gross_salary")

    id = db.Column(db.Integer, primary_key=True)
    grade = db.Column(db.String(80), unique=True, nullable=False)
    base_salary = db.Column(db.Numeric(14, 2), nullable=False)
    gross_salary = db.Column(db.Numeric(14, 2))


class Allowance(ApprovalMixin, db.Model):
    __tablename__ = "allowances"
    SELECTORS = ("name",)
    VALUE_FIELDS = ("amount",)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)


class SigningBonus(ApprovalMixin, db.Model):
    __tablename__ = "signing_bonuses"
    SELECTORS = ("position_name",)
    VALUE_FIELDS = ("amount",)

    id = db.Column(db.Integer, primary_key=True)
    position_name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)


class TaxRule(ApprovalMixin, db.Model):
    __tablename__ = "tax_rules"
    SELECTORS = ("name",)
    VALUE_FIELDS = ("rate", "description")

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255))
    rate = db.Column(db.Numeric(6, 2), nullable=False)  # percent


class InsuranceBracket(ApprovalMixin, db.Model):
    __tablename__ = "insurance_brackets"
    SELECTORS = ("name",)
    VALUE_FIELDS = ("min_salary", "max_salary", "employee_rate", "employer_rate")

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    min_salary = db.Column(db.Numeric(14, 2), nullable=False)
    max_salary = db.Column(db.Numeric(14, 2), nullable=False)
    employee_rate = db.Column(db.Numeric(6, 2), nullable=False)  # percent
    employer_rate = db.Column(db.Numeric(6, 2), nullable=False)  # percent

    __table_args__ = (
        db.Index("ix_insurance_brackets_window", "status", "min_salary", "max_salary"),
    )


class TerminationBenefit(ApprovalMixin, db.Model):
    __tablename__ = "termination_benefits"
    SELECTORS = ("name",)
    VALUE_FIELDS = ("amount", "terms")

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    terms = db.Column(db.String(255))


class EmployeeAllowance(db.Model):
    """Which allowances apply to which employee. Linked allowances must be approved to settle."""
    __tablename__ = "employee_allowances"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    allowance_id = db.Column(db.Integer, db.ForeignKey("allowances.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    allowance = db.relationship("Allowance", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("employee_id", "allowance_id", name="uq_emp_allowance"),
    )


CONFIG_KINDS = {
    "pay_grade": PayGrade,
    "allowance": Allowance,
    "signing_bonus": SigningBonus,
    "tax_rule": TaxRule,
    "insurance_bracket": InsuranceBracket,
    "termination_benefit": TerminationBenefit,
}
