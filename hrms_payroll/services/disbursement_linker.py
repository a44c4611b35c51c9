# hrms_payroll/services/disbursement_linker.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from hrms_payroll.common.errors import MissingReferenceError, RunStateError
from hrms_payroll.models.payroll import PayrollRun
from hrms_payroll.models.payroll.disbursements import DISBURSEMENT_STATUSES
from hrms_payroll.services.config_registry import ConfigRegistry
from hrms_payroll.services.directory import EmployeeDirectory, WorkflowRecords
from hrms_payroll.services.repositories import Repositories
from hrms_payroll.services.settlement_calculator import money

log = logging.getLogger(__name__)


def _payment_date(status: str, payment_date: Optional[date]) -> Optional[date]:
    """
    payment_date lives only on approved assignments. A date with any other
    status is a caller error; no date (or a move away from approved) clears it.
    """
    if status not in DISBURSEMENT_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(DISBURSEMENT_STATUSES)}")
    if payment_date is not None and status != "approved":
        raise ValueError("payment_date is only allowed when status is 'approved'")
    return payment_date if status == "approved" else None


def _given(given_amount, configured):
    amount = money(given_amount if given_amount is not None else configured)
    if amount < 0:
        raise ValueError("given_amount cannot be negative")
    return amount


class DisbursementLinker:
    """
    Per-employee signing bonus and termination benefit assignments, one row per
    (employee, config entity). Repeated assignment overwrites that row.
    """

    def __init__(self, repos: Repositories, registry: ConfigRegistry,
                 directory: EmployeeDirectory, workflows: WorkflowRecords):
        self.repos = repos
        self.registry = registry
        self.directory = directory
        self.workflows = workflows

    def assign_signing_bonus(self, employee_id, bonus_id: int, status: str,
                             payment_date: Optional[date] = None, given_amount=None):
        emp = self.directory.resolve_employee(employee_id)
        paid_on = _payment_date(status, payment_date)
        bonus = self.registry.get_approved("signing_bonus", bonus_id)
        self._guard_paid(self.repos.signing_bonuses.get(emp.id, bonus.id))

        row = self.repos.signing_bonuses.upsert(emp.id, bonus.id, values={
            "given_amount": _given(given_amount, bonus.amount),
            "payment_date": paid_on,
            "status": status,
        })
        log.info("signing bonus %s -> employee %s: %s", bonus.id, emp.id, status)
        return row

    def assign_termination_benefit(self, employee_id, benefit_id: int, status: str,
                                   termination_request_id: Optional[int] = None,
                                   payment_date: Optional[date] = None, given_amount=None,
                                   contract_id: Optional[str] = None):
        emp = self.directory.resolve_employee(employee_id)
        paid_on = _payment_date(status, payment_date)
        benefit = self.registry.get_approved("termination_benefit", benefit_id)
        existing = self.repos.termination_benefits.get(emp.id, benefit.id)
        self._guard_paid(existing)

        workflow_id = self._resolve_workflow(emp.id, benefit.id, termination_request_id, existing, contract_id)

        row = self.repos.termination_benefits.upsert(emp.id, benefit.id, values={
            "given_amount": _given(given_amount, benefit.amount),
            "termination_request_id": workflow_id,
            "payment_date": paid_on,
            "status": status,
        })
        log.info("termination benefit %s -> employee %s (request %s): %s",
                 benefit.id, emp.id, workflow_id, status)
        return row

    # ---------- internals ----------
    def _resolve_workflow(self, employee_id, benefit_id, explicit_id, existing, contract_id) -> int:
        # 1) caller-supplied id, which must point at a real request
        if explicit_id is not None:
            if not self.workflows.exists(explicit_id):
                raise MissingReferenceError(
                    f"termination request #{explicit_id} does not exist",
                    employee=employee_id, benefit=benefit_id, termination_request=explicit_id,
                )
            return int(explicit_id)
        # 2) the id already on this employee's assignment
        if existing is not None and existing.termination_request_id:
            return existing.termination_request_id
        # 3) the workflow service (find, or open one when a contract is known)
        found = self.workflows.find_or_create(employee_id, contract_id)
        if found is None:
            raise MissingReferenceError(
                f"no termination request to link for employee {employee_id}",
                employee=employee_id, benefit=benefit_id,
            )
        return found

    def _guard_paid(self, assignment) -> None:
        if assignment is None or assignment.payroll_run_id is None:
            return
        run = self.repos.session.get(PayrollRun, assignment.payroll_run_id)
        if run is not None and run.status == "finalized":
            raise RunStateError(
                f"assignment #{assignment.id} was paid in finalized run {run.run_id}",
                employee=assignment.employee_id, config=assignment.config_entity_id, run=run.run_id,
            )
