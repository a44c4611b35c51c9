from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import List, Dict, Any, Optional

from hrms_payroll.models.payroll.pay_run import Payslip
from .settlement_calculator import Line, SettlementFigures, SettlementInputs


@dataclass
class PayslipComponent:
    name: str
    amount: Decimal
    id: Optional[int] = None

@dataclass
class PayslipDTO:
    employee: Dict[str, Any]
    run: Dict[str, Any]
    earnings: List[PayslipComponent]
    deductions: List[PayslipComponent]
    earnings_details: Dict[str, Any]
    deductions_details: Dict[str, Any]
    totals: Dict[str, Any]
    payment_status: str


def _lines(lines: List[Line], name_key: str = "name") -> List[dict]:
    return [ln.as_dict(name_key) for ln in lines]


def build_earnings_details(inputs: SettlementInputs) -> Dict[str, Any]:
    return {
        "base_salary": float(inputs.base_salary),
        "allowances": _lines(inputs.allowances),
        "bonuses": _lines(inputs.bonuses, "position_name"),
        "benefits": _lines(inputs.benefits),
        "refunds": [],
    }


def build_deductions_details(employee_id: int, figures: SettlementFigures, taxes: List[dict],
                             insurance: Optional[dict], penalties: List[Line]) -> Dict[str, Any]:
    """
    Snapshot of what was deducted. Per-rule tax lines carry the rate only; the
    amount deducted is the single rounded tax_amount so the payslip can never
    disagree with the settlement by a cent.
    """
    insurances = []
    if insurance is not None:
        insurances.append({**insurance, "amount": float(figures.insurance_amount)})
    return {
        "taxes": taxes,
        "tax_amount": float(figures.tax_amount),
        "insurances": insurances,
        "penalties": (
            {"employee_id": employee_id, "penalties": _lines(penalties, "reason")}
            if penalties else None
        ),
    }


def payslip_values(employee_id: int, inputs: SettlementInputs, figures: SettlementFigures,
                   taxes: List[dict], insurance: Optional[dict]) -> Dict[str, Any]:
    return {
        "earnings_details": build_earnings_details(inputs),
        "deductions_details": build_deductions_details(employee_id, figures, taxes, insurance, inputs.penalties),
        "total_gross_salary": figures.gross,
        "total_deductions": figures.total_deductions,
        "net_pay": figures.net_pay,
        "payment_status": "pending",
    }


class PayslipService:
    def build_payslip_dto(self, slip: Payslip) -> dict:
        """
        Read model for one stored payslip: flattened earning/deduction lines
        next to the raw snapshot. Returns a dictionary representation of the DTO.
        """
        run = slip.payroll_run
        emp = slip.employee
        earn = slip.earnings_details or {}
        ded = slip.deductions_details or {}

        earnings = [PayslipComponent(name="Base salary", amount=Decimal(str(earn.get("base_salary", 0))))]
        for key, name_key in (("allowances", "name"), ("bonuses", "position_name"),
                              ("benefits", "name"), ("refunds", "name")):
            for x in earn.get(key) or []:
                earnings.append(PayslipComponent(name=x.get(name_key) or key, amount=Decimal(str(x["amount"])),
                                                 id=x.get("id")))

        deductions = []
        if ded.get("tax_amount"):
            names = ", ".join(t["name"] for t in ded.get("taxes") or [])
            deductions.append(PayslipComponent(name=names or "Tax", amount=Decimal(str(ded["tax_amount"]))))
        for x in ded.get("insurances") or []:
            deductions.append(PayslipComponent(name=x.get("name") or "Insurance",
                                               amount=Decimal(str(x["amount"])), id=x.get("id")))
        for x in (ded.get("penalties") or {}).get("penalties") or []:
            deductions.append(PayslipComponent(name=x["reason"], amount=Decimal(str(x["amount"]))))

        dto = PayslipDTO(
            employee={
                "id": emp.id,
                "code": emp.code,
                "name": emp.full_name,
                "department": emp.department,
                "position": emp.position_name,
            },
            run={
                "run_id": run.run_id,
                "period": str(run.period),
                "status": run.status,
            },
            earnings=earnings,
            deductions=deductions,
            earnings_details=earn,
            deductions_details=ded,
            totals={
                "gross_pay": Decimal(str(slip.total_gross_salary or 0)),
                "total_deductions": Decimal(str(slip.total_deductions or 0)),
                "net_pay": Decimal(str(slip.net_pay or 0)),
            },
            payment_status=slip.payment_status,
        )
        return asdict(dto)
