# hrms_payroll/services/repositories.py
"""
Keyed stores for the settlement engine.

Every write is an explicit `get(key)` followed by create-or-overwrite on the
table's unique key. A concurrent insert that wins the race surfaces here as
DuplicateKeyConflict; the engine retries the unit, which then overwrites.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from hrms_payroll.extensions import db
from hrms_payroll.common.errors import DuplicateKeyConflict
from hrms_payroll.models.payroll import (
    PayrollRun, EmployeeSettlement, Payslip,
    EmployeeSigningBonus, EmployeeTerminationBenefit,
    EmployeePenalty, EmployeeAllowance,
)


class _KeyedRepository:
    model = None
    key_fields: tuple = ()

    def __init__(self, session=None):
        self.session = session or db.session

    def _key(self, *values) -> Dict[str, Any]:
        return dict(zip(self.key_fields, values))

    def get(self, *key):
        return self.session.query(self.model).filter_by(**self._key(*key)).one_or_none()

    def upsert(self, *key, values: Dict[str, Any]):
        """Create the row for `key` or overwrite the existing one in place."""
        row = self.get(*key)
        if row is None:
            row = self.model(**self._key(*key), **values)
            self.session.add(row)
            try:
                self.session.flush()
            except IntegrityError as e:
                self.session.rollback()
                raise DuplicateKeyConflict(
                    f"{self.model.__tablename__}: key {self._key(*key)} already exists",
                    table=self.model.__tablename__, key=self._key(*key),
                ) from e
            return row
        for k, v in values.items():
            setattr(row, k, v)
        self.session.flush()
        return row

    def delete(self, *key) -> bool:
        row = self.get(*key)
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        return True


class RunRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, run_id: str) -> Optional[PayrollRun]:
        return self.session.query(PayrollRun).filter_by(run_id=run_id).one_or_none()

    def get_by_period(self, period) -> Optional[PayrollRun]:
        return self.session.query(PayrollRun).filter_by(period=period).one_or_none()

    def add(self, run: PayrollRun) -> PayrollRun:
        self.session.add(run)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateKeyConflict(
                f"payroll run {run.run_id} / period {run.period} already exists",
                run_id=run.run_id, period=str(run.period),
            ) from e
        return run

    def list(self, status: Optional[str] = None) -> List[PayrollRun]:
        q = self.session.query(PayrollRun)
        if status:
            q = q.filter(PayrollRun.status == status)
        return q.order_by(PayrollRun.period.desc()).all()


class SettlementRepository(_KeyedRepository):
    model = EmployeeSettlement
    key_fields = ("employee_id", "payroll_run_id")

    def list_for_run(self, payroll_run_id: int) -> List[EmployeeSettlement]:
        return (self.session.query(EmployeeSettlement)
                .filter_by(payroll_run_id=payroll_run_id)
                .order_by(EmployeeSettlement.employee_id.asc())
                .all())


class PayslipRepository(_KeyedRepository):
    model = Payslip
    key_fields = ("employee_id", "payroll_run_id")

    def mark_run_paid(self, payroll_run_id: int) -> int:
        return (self.session.query(Payslip)
                .filter_by(payroll_run_id=payroll_run_id)
                .update({"payment_status": "paid"}, synchronize_session="fetch"))


class _AssignmentRepository(_KeyedRepository):
    def payable(self, employee_id: int, payroll_run_id: int) -> list:
        """Approved one-time payouts not yet paid by another run."""
        model = self.model
        return (self.session.query(model)
                .filter(model.employee_id == employee_id)
                .filter(model.status == "approved")
                .filter(db.or_(model.payroll_run_id.is_(None), model.payroll_run_id == payroll_run_id))
                .order_by(model.id.asc())
                .all())

    def link_to_run(self, employee_id: int, payroll_run_id: int, keep_ids=()) -> None:
        """Stamp `keep_ids` with the run; unlink anything else this run held for the employee."""
        model = self.model
        held = (self.session.query(model)
                .filter(model.employee_id == employee_id)
                .filter(db.or_(model.payroll_run_id == payroll_run_id, model.id.in_(list(keep_ids) or [-1])))
                .all())
        for row in held:
            row.payroll_run_id = payroll_run_id if row.id in keep_ids else None
        self.session.flush()


class SigningBonusAssignmentRepository(_AssignmentRepository):
    model = EmployeeSigningBonus
    key_fields = ("employee_id", "signing_bonus_id")


class TerminationBenefitAssignmentRepository(_AssignmentRepository):
    model = EmployeeTerminationBenefit
    key_fields = ("employee_id", "benefit_id")


class PenaltyRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, employee_id: int) -> Optional[EmployeePenalty]:
        return self.session.query(EmployeePenalty).filter_by(employee_id=employee_id).one_or_none()

    def append(self, employee_id: int, reason: str, amount: Decimal) -> EmployeePenalty:
        entry = {"reason": reason, "amount": float(amount), "payroll_run_id": None}
        doc = self.get(employee_id)
        if doc is None:
            doc = EmployeePenalty(employee_id=employee_id, penalties=[entry])
            self.session.add(doc)
        else:
            doc.penalties = list(doc.penalties or []) + [entry]
        self.session.flush()
        return doc

    def outstanding(self, employee_id: int, payroll_run_id: int) -> List[dict]:
        """Entries not yet consumed, plus those already consumed by this same run."""
        doc = self.get(employee_id)
        if doc is None:
            return []
        return [p for p in (doc.penalties or [])
                if p.get("payroll_run_id") in (None, payroll_run_id)]

    def stamp(self, employee_id: int, payroll_run_id: Optional[int], from_run_id: Optional[int] = None) -> None:
        """Move every entry held by `from_run_id` (None = outstanding) to `payroll_run_id`."""
        doc = self.get(employee_id)
        if doc is None:
            return
        out = []
        for p in doc.penalties or []:
            p = dict(p)
            if p.get("payroll_run_id") == from_run_id:
                p["payroll_run_id"] = payroll_run_id
            out.append(p)
        doc.penalties = out
        self.session.flush()


class AllowanceLinkRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    def for_employee(self, employee_id: int) -> List[EmployeeAllowance]:
        return (self.session.query(EmployeeAllowance)
                .filter_by(employee_id=employee_id)
                .order_by(EmployeeAllowance.allowance_id.asc())
                .all())

    def link(self, employee_id: int, allowance_id: int) -> EmployeeAllowance:
        row = (self.session.query(EmployeeAllowance)
               .filter_by(employee_id=employee_id, allowance_id=allowance_id)
               .one_or_none())
        if row is None:
            row = EmployeeAllowance(employee_id=employee_id, allowance_id=allowance_id)
            self.session.add(row)
            self.session.flush()
        return row


@dataclass
class Repositories:
    runs: RunRepository = field(default_factory=RunRepository)
    settlements: SettlementRepository = field(default_factory=SettlementRepository)
    payslips: PayslipRepository = field(default_factory=PayslipRepository)
    signing_bonuses: SigningBonusAssignmentRepository = field(default_factory=SigningBonusAssignmentRepository)
    termination_benefits: TerminationBenefitAssignmentRepository = field(
        default_factory=TerminationBenefitAssignmentRepository)
    penalties: PenaltyRepository = field(default_factory=PenaltyRepository)
    allowance_links: AllowanceLinkRepository = field(default_factory=AllowanceLinkRepository)

    @property
    def session(self):
        return self.settlements.session
