# hrms_payroll/services/settlement_calculator.py
"""
Pure settlement arithmetic.

Nothing here touches the database: callers resolve approved configuration
into a SettlementInputs and get back SettlementFigures. Every derived amount
is rounded to cents (ROUND_HALF_UP) as soon as it is produced, so repeated
runs over the same inputs always land on the same stored values.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from hrms_payroll.common.errors import NegativeNetPayWarning

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

MISSING_BANK = "Missing bank account"


def money(x) -> Decimal:
    """Coerce to Decimal (via str for floats) and round to cents."""
    if x is None or x == "":
        return ZERO
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Line:
    """One itemised earning or deduction: an allowance, a bonus, a penalty..."""
    name: str
    amount: Decimal
    ref_id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "amount", money(self.amount))
        if not self.name:
            raise ValueError("line name is required")

    def as_dict(self, name_key: str = "name") -> dict:
        d = {name_key: self.name, "amount": float(self.amount)}
        if self.ref_id is not None:
            d["id"] = self.ref_id
        return d


@dataclass(frozen=True)
class SettlementInputs:
    base_salary: Decimal
    tax_rate: Decimal
    allowances: List[Line] = field(default_factory=list)
    bonuses: List[Line] = field(default_factory=list)
    benefits: List[Line] = field(default_factory=list)
    penalties: List[Line] = field(default_factory=list)
    insurance_rate: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "base_salary", money(self.base_salary))
        object.__setattr__(self, "tax_rate", Decimal(str(self.tax_rate)))
        object.__setattr__(self, "insurance_rate", Decimal(str(self.insurance_rate or 0)))
        if self.base_salary < 0:
            raise ValueError("base_salary cannot be negative")
        if not (ZERO <= self.tax_rate <= HUNDRED):
            raise ValueError("tax_rate must be a percentage between 0 and 100")
        if not (ZERO <= self.insurance_rate <= HUNDRED):
            raise ValueError("insurance_rate must be a percentage between 0 and 100")


@dataclass(frozen=True)
class SettlementFigures:
    base_salary: Decimal
    allowances_total: Decimal
    bonus_total: Decimal
    benefit_total: Decimal
    gross: Decimal
    tax_amount: Decimal
    insurance_amount: Decimal
    penalties_amount: Decimal
    total_deductions: Decimal
    net_pay: Decimal

    @property
    def is_negative(self) -> bool:
        return self.net_pay < 0


def _total(lines: Iterable[Line]) -> Decimal:
    return money(sum((ln.amount for ln in lines), ZERO))


def calculate(inputs: SettlementInputs) -> SettlementFigures:
    allowances_total = _total(inputs.allowances)
    bonus_total = _total(inputs.bonuses)
    benefit_total = _total(inputs.benefits)

    gross = money(inputs.base_salary + allowances_total + bonus_total + benefit_total)
    tax_amount = money(gross * inputs.tax_rate / HUNDRED)
    insurance_amount = money(gross * inputs.insurance_rate / HUNDRED)
    penalties_amount = _total(inputs.penalties)
    total_deductions = money(tax_amount + insurance_amount + penalties_amount)
    net_pay = money(gross - total_deductions)

    return SettlementFigures(
        base_salary=inputs.base_salary,
        allowances_total=allowances_total,
        bonus_total=bonus_total,
        benefit_total=benefit_total,
        gross=gross,
        tax_amount=tax_amount,
        insurance_amount=insurance_amount,
        penalties_amount=penalties_amount,
        total_deductions=total_deductions,
        net_pay=net_pay,
    )


def detect_exceptions(figures: SettlementFigures, bank_status: str) -> List[str]:
    """Exception strings for the settlement. None of these block computation."""
    out: List[str] = []
    if bank_status == "missing":
        out.append(MISSING_BANK)
    if figures.is_negative:
        out.append(NegativeNetPayWarning.describe(figures.net_pay))
    return out
