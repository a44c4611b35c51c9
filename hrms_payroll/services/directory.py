# hrms_payroll/services/directory.py
"""Read-side adapters over records owned by other HR services."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy import or_

from hrms_payroll.extensions import db
from hrms_payroll.common.errors import MissingReferenceError
from hrms_payroll.models.employee import Employee
from hrms_payroll.models.workflow import TerminationRequest


@dataclass(frozen=True)
class ResolvedEmployee:
    id: int
    code: str
    name: str
    pay_grade: Optional[str]
    position_name: Optional[str]
    bank_status: str   # valid | missing


class EmployeeDirectory:
    def resolve_employee(self, identifier: Union[int, str]) -> ResolvedEmployee:
        """
        Look up by id, employee code or email. Never returns partial data:
        an unknown identifier raises MissingReferenceError.
        """
        emp = None
        if isinstance(identifier, int) or (isinstance(identifier, str) and identifier.isdigit()):
            emp = db.session.get(Employee, int(identifier))
        elif isinstance(identifier, str) and identifier.strip():
            key = identifier.strip()
            emp = Employee.query.filter(or_(Employee.code == key, Employee.email == key)).first()
        if emp is None:
            raise MissingReferenceError(f"unresolvable employee {identifier!r}", employee=identifier)

        primary = [b for b in emp.bank_accounts if b.is_primary and b.account_number]
        return ResolvedEmployee(
            id=emp.id,
            code=emp.code,
            name=emp.full_name,
            pay_grade=emp.pay_grade,
            position_name=emp.position_name,
            bank_status="valid" if primary else "missing",
        )

    def active_employee_ids(self) -> List[int]:
        rows = (db.session.query(Employee.id)
                .filter(Employee.status == "active")
                .order_by(Employee.id.asc())
                .all())
        return [r[0] for r in rows]


class WorkflowRecords:
    """Termination requests. Payroll may create one only when a contract reference is supplied."""

    def exists(self, termination_request_id: int) -> bool:
        return db.session.get(TerminationRequest, int(termination_request_id)) is not None

    def find_or_create(self, employee_id: int, contract_id: Optional[str] = None) -> Optional[int]:
        existing = (TerminationRequest.query
                    .filter(TerminationRequest.employee_id == employee_id)
                    .order_by(TerminationRequest.id.desc())
                    .first())
        if existing:
            return existing.id
        if not contract_id:
            return None
        req = TerminationRequest(
            employee_id=employee_id,
            contract_id=str(contract_id),
            initiator="hr",
            reason="Opened for end-of-service settlement",
            status="pending",
        )
        db.session.add(req)
        db.session.flush()
        return req.id
