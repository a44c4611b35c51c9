# hrms_payroll/models/payroll/__init__.py
# Import order matters: config first, then the run ledger, then rows that
# point at both (disbursements, penalties).
from hrms_payroll.extensions import db  # noqa

from .config import (
    PayGrade, Allowance, SigningBonus, TaxRule, InsuranceBracket, TerminationBenefit,
    EmployeeAllowance, CONFIG_KINDS,
)
from .pay_run import PayrollRun, EmployeeSettlement, Payslip
from .disbursements import EmployeeSigningBonus, EmployeeTerminationBenefit
from .penalties import EmployeePenalty

__all__ = [
    "PayGrade", "Allowance", "SigningBonus", "TaxRule", "InsuranceBracket", "TerminationBenefit",
    "EmployeeAllowance", "CONFIG_KINDS",
    "PayrollRun", "EmployeeSettlement", "Payslip",
    "EmployeeSigningBonus", "EmployeeTerminationBenefit",
    "EmployeePenalty",
]
