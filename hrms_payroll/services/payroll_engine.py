# hrms_payroll/services/payroll_engine.py
"""
Settlement orchestration.

PayrollEngine is built from explicit collaborators (repositories, config
registry, employee directory, workflow records) and holds no module-level
state. Each employee settlement is one unit of work: inputs are read from
approved configuration at computation time, the figures are computed, and the
settlement, payslip, disbursement links and penalty stamps are written and
committed together. Run aggregates are only ever written by reconciliation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import current_app

from hrms_payroll.common.errors import (
    PayrollError, ConfigurationError, MissingReferenceError,
    RunNotFound, RunStateError, DuplicateKeyConflict,
)
from hrms_payroll.models.payroll import PayrollRun, EmployeeSettlement
from hrms_payroll.services import reconciliation
from hrms_payroll.services.config_registry import ConfigRegistry
from hrms_payroll.services.directory import EmployeeDirectory, WorkflowRecords, ResolvedEmployee
from hrms_payroll.services.disbursement_linker import DisbursementLinker
from hrms_payroll.services.payslip_service import payslip_values
from hrms_payroll.services.repositories import Repositories
from hrms_payroll.services.settlement_calculator import (
    Line, SettlementInputs, SettlementFigures, calculate, detect_exceptions, money, ZERO,
)

log = logging.getLogger(__name__)

DISBURSEMENT_KINDS = ("signing_bonus", "termination_benefit")


@dataclass
class SettlementResult:
    """Outcome for one employee in a run: a settlement, or the error that stopped it."""
    employee_id: Any
    settlement: Optional[EmployeeSettlement] = None
    error: Optional[PayrollError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict:
        if self.ok:
            return {"employee_id": self.employee_id, "ok": True, "net_pay": float(self.settlement.net_pay)}
        return {"employee_id": self.employee_id, "ok": False,
                "code": self.error.code, "error": self.error.message, "detail": self.error.payload}


@dataclass
class RunOutcome:
    run: PayrollRun
    results: List[SettlementResult] = field(default_factory=list)

    @property
    def failures(self) -> List[SettlementResult]:
        return [r for r in self.results if not r.ok]


@dataclass(frozen=True)
class _ResolvedInputs:
    inputs: SettlementInputs
    taxes: List[dict]
    insurance: Optional[dict]
    bonus_ids: Tuple[int, ...]
    benefit_ids: Tuple[int, ...]


class PayrollEngine:
    def __init__(self, repos: Repositories, registry: ConfigRegistry,
                 directory: EmployeeDirectory, workflows: WorkflowRecords,
                 apply_insurance: bool = False):
        self.repos = repos
        self.registry = registry
        self.directory = directory
        self.workflows = workflows
        self.apply_insurance = apply_insurance
        self.linker = DisbursementLinker(repos, registry, directory, workflows)

    @property
    def session(self):
        return self.repos.session

    # ---------- run ledger ----------
    def open_run(self, run_id: str, period: date, entity: Optional[str] = None,
                 specialist_id: Optional[int] = None) -> PayrollRun:
        """Create the ledger for a period, or return it when `run_id` already exists for it."""
        if not run_id or period is None:
            raise ValueError("run_id and period are required")
        run = self.repos.runs.get(run_id)
        if run is not None:
            if run.period != period:
                raise RunStateError(f"run {run_id} belongs to period {run.period}", run=run_id)
            return run
        other = self.repos.runs.get_by_period(period)
        if other is not None:
            raise RunStateError(f"period {period} already has run {other.run_id}",
                                run=run_id, existing=other.run_id)
        run = self.repos.runs.add(PayrollRun(
            run_id=run_id, period=period, entity=entity, specialist_id=specialist_id,
            status="draft", payment_status="pending",
            employee_count=0, exception_count=0, total_net_pay=ZERO,
        ))
        self.session.commit()
        log.info("run %s opened for period %s", run_id, period)
        return run

    def get_run(self, run_id: str) -> PayrollRun:
        run = self.repos.runs.get(run_id)
        if run is None:
            raise RunNotFound(f"payroll run {run_id} not found", run=run_id)
        return run

    def reconcile_run(self, run_id: str) -> PayrollRun:
        run = self.get_run(run_id)
        reconciliation.reconcile(run, self.repos.settlements.list_for_run(run.id))
        self.session.commit()
        return run

    def finalize_run(self, run_id: str) -> PayrollRun:
        run = self.get_run(run_id)
        if run.status != "processing":
            raise RunStateError(f"run {run_id} is '{run.status}'; only 'processing' runs can be finalized",
                                run=run_id, status=run.status)
        reconciliation.reconcile(run, self.repos.settlements.list_for_run(run.id))
        run.status = "finalized"
        run.finalized_at = datetime.utcnow()
        self.session.commit()
        log.info("run %s finalized", run_id)
        return run

    def mark_run_paid(self, run_id: str) -> PayrollRun:
        run = self.get_run(run_id)
        if run.status != "finalized":
            raise RunStateError(f"run {run_id} must be finalized before payment", run=run_id, status=run.status)
        if run.payment_status == "paid":
            return run
        run.payment_status = "paid"
        run.paid_at = datetime.utcnow()
        n = self.repos.payslips.mark_run_paid(run.id)
        self.session.commit()
        log.info("run %s marked paid (%s payslips)", run_id, n)
        return run

    # ---------- settlements ----------
    def compute_and_persist_settlement(self, employee_id, run_id: str) -> EmployeeSettlement:
        run = self.get_run(run_id)
        try:
            return self._settle(run, employee_id)
        except DuplicateKeyConflict as e:
            # another writer created the row first; the retry finds it and overwrites
            log.warning("run %s employee %s: %s; retrying as overwrite", run_id, employee_id, e.message)
            return self._settle(self.get_run(run_id), employee_id)

    def run_payroll(self, run_id: str, employee_ids: Optional[Iterable[Any]] = None) -> RunOutcome:
        """
        Settle every employee (or `employee_ids`) independently, then reconcile.
        A per-employee ConfigurationError/MissingReferenceError is recorded on the
        outcome and any stale settlement for that employee is discarded.
        """
        run = self.get_run(run_id)
        self._ensure_mutable(run)
        ids = list(employee_ids) if employee_ids is not None else self.directory.active_employee_ids()

        outcome = RunOutcome(run=run)
        for emp_id in ids:
            try:
                s = self.compute_and_persist_settlement(emp_id, run_id)
                outcome.results.append(SettlementResult(employee_id=emp_id, settlement=s))
            except (ConfigurationError, MissingReferenceError) as e:
                self.session.rollback()
                log.warning("run %s employee %s skipped: %s", run_id, emp_id, e.message)
                self._discard(run, emp_id)
                outcome.results.append(SettlementResult(employee_id=emp_id, error=e))

        outcome.run = self.reconcile_run(run_id)
        return outcome

    # ---------- disbursements / penalties ----------
    def assign_disbursement(self, employee_id, config_entity_id: int, status: str,
                            payment_date: Optional[date] = None, kind: str = "signing_bonus", **extra):
        if kind not in DISBURSEMENT_KINDS:
            raise ValueError(f"kind must be one of: {', '.join(DISBURSEMENT_KINDS)}")
        assign = (self.linker.assign_signing_bonus if kind == "signing_bonus"
                  else self.linker.assign_termination_benefit)
        try:
            row = assign(employee_id, config_entity_id, status, payment_date=payment_date, **extra)
        except DuplicateKeyConflict:
            row = assign(employee_id, config_entity_id, status, payment_date=payment_date, **extra)
        self.session.commit()
        return row

    def add_penalty(self, employee_id, reason: str, amount) -> Any:
        reason = (reason or "").strip()
        amount = money(amount)
        if not reason:
            raise ValueError("reason is required")
        if amount <= 0:
            raise ValueError("amount must be positive")
        emp = self.directory.resolve_employee(employee_id)
        doc = self.repos.penalties.append(emp.id, reason, amount)
        self.session.commit()
        return doc

    def link_allowance(self, employee_id, allowance_id: int):
        emp = self.directory.resolve_employee(employee_id)
        row = self.repos.allowance_links.link(emp.id, int(allowance_id))
        self.session.commit()
        return row

    # ---------- exceptions ----------
    def list_exceptions(self, run_id: str, employee_id: Optional[int] = None) -> List[dict]:
        run = self.get_run(run_id)
        out = []
        for s in self.repos.settlements.list_for_run(run.id):
            if employee_id is not None and s.employee_id != employee_id:
                continue
            parts = [p.strip() for p in (s.exceptions or "").split(";") if p.strip()]
            for idx, msg in enumerate(parts):
                out.append({
                    "id": f"{s.id}-{idx}",
                    "run_id": run.run_id,
                    "employee_id": s.employee_id,
                    "type": exception_type(msg),
                    "severity": exception_severity(msg),
                    "description": msg,
                })
        return out

    def clear_exceptions(self, run_id: str, employee_id: int) -> EmployeeSettlement:
        run = self.get_run(run_id)
        self._ensure_mutable(run)
        s = self.repos.settlements.get(employee_id, run.id)
        if s is None:
            raise MissingReferenceError(f"no settlement for employee {employee_id} in run {run_id}",
                                        employee=employee_id, run=run_id)
        s.exceptions = None
        self.session.commit()
        return s

    # ---------- internals ----------
    def _ensure_mutable(self, run: PayrollRun) -> None:
        if run.status == "finalized":
            raise RunStateError(f"run {run.run_id} is finalized; settlements are immutable",
                                run=run.run_id)

    def _settle(self, run: PayrollRun, employee_id) -> EmployeeSettlement:
        self._ensure_mutable(run)
        emp = self.directory.resolve_employee(employee_id)
        resolved = self._resolve_inputs(run, emp)
        figures = calculate(resolved.inputs)
        exceptions = detect_exceptions(figures, emp.bank_status)

        settlement = self.repos.settlements.upsert(emp.id, run.id, values=settlement_values(
            figures, emp.bank_status, exceptions))
        self.repos.payslips.upsert(emp.id, run.id, values=payslip_values(
            emp.id, resolved.inputs, figures, resolved.taxes, resolved.insurance))

        self.repos.signing_bonuses.link_to_run(emp.id, run.id, resolved.bonus_ids)
        self.repos.termination_benefits.link_to_run(emp.id, run.id, resolved.benefit_ids)
        self.repos.penalties.stamp(emp.id, run.id, from_run_id=None)

        if run.status == "draft":
            run.status = "processing"
        self.session.commit()
        log.info("run %s employee %s settled: gross %s net %s%s", run.run_id, emp.id,
                 figures.gross, figures.net_pay, f" ({'; '.join(exceptions)})" if exceptions else "")
        return settlement

    def _resolve_inputs(self, run: PayrollRun, emp: ResolvedEmployee) -> _ResolvedInputs:
        if not emp.pay_grade:
            raise ConfigurationError(f"employee {emp.code} has no pay grade", employee=emp.id)
        grade = self.registry.get_approved("pay_grade", {"grade": emp.pay_grade})
        _non_negative(grade.base_salary, "pay_grade", grade.id, emp, "base_salary")

        allowances = []
        for link in self.repos.allowance_links.for_employee(emp.id):
            a = self.registry.get_approved("allowance", link.allowance_id)
            _non_negative(a.amount, "allowance", a.id, emp)
            allowances.append(Line(a.name, a.amount, a.id))

        bonuses, bonus_ids = [], []
        for asg in self.repos.signing_bonuses.payable(emp.id, run.id):
            cfg = self.registry.get_approved("signing_bonus", asg.signing_bonus_id)
            _non_negative(asg.given_amount, "signing_bonus", cfg.id, emp, "given_amount")
            bonuses.append(Line(cfg.position_name, asg.given_amount, cfg.id))
            bonus_ids.append(asg.id)

        benefits, benefit_ids = [], []
        for asg in self.repos.termination_benefits.payable(emp.id, run.id):
            cfg = self.registry.get_approved("termination_benefit", asg.benefit_id)
            _non_negative(asg.given_amount, "termination_benefit", cfg.id, emp, "given_amount")
            benefits.append(Line(cfg.name, asg.given_amount, cfg.id))
            benefit_ids.append(asg.id)

        penalties = [Line(p["reason"], p["amount"])
                     for p in self.repos.penalties.outstanding(emp.id, run.id)]

        rules = self.registry.list_approved("tax_rule")
        if not rules:
            raise ConfigurationError("no approved tax rule", employee=emp.id, kind="tax_rule")
        tax_rate = sum((Decimal(str(r.rate)) for r in rules), Decimal("0"))
        if not (0 <= tax_rate <= 100):
            raise ConfigurationError(f"approved tax rules add up to {tax_rate}%; expected 0 to 100",
                                     employee=emp.id, kind="tax_rule", ids=[r.id for r in rules])
        taxes = [{"id": r.id, "name": r.name, "rate": float(r.rate)} for r in rules]

        insurance_rate, insurance = ZERO, None
        if self.apply_insurance:
            gross_preview = grade.base_salary + sum((ln.amount for ln in allowances + bonuses + benefits), ZERO)
            bracket = self.registry.insurance_bracket_for(gross_preview)
            if bracket is not None:
                insurance_rate = Decimal(str(bracket.employee_rate))
                if not (0 <= insurance_rate <= 100):
                    raise ConfigurationError(f"insurance_bracket {bracket.name} has employee_rate {insurance_rate}%",
                                             employee=emp.id, kind="insurance_bracket", id=bracket.id)
                insurance = {"id": bracket.id, "name": bracket.name,
                             "employee_rate": float(bracket.employee_rate),
                             "employer_rate": float(bracket.employer_rate)}

        try:
            inputs = SettlementInputs(
                base_salary=grade.base_salary, tax_rate=tax_rate, insurance_rate=insurance_rate,
                allowances=allowances, bonuses=bonuses, benefits=benefits, penalties=penalties,
            )
        except ValueError as e:
            raise ConfigurationError(f"employee {emp.code}: {e}", employee=emp.id) from e

        return _ResolvedInputs(
            inputs=inputs,
            taxes=taxes,
            insurance=insurance,
            bonus_ids=tuple(bonus_ids),
            benefit_ids=tuple(benefit_ids),
        )

    def _discard(self, run: PayrollRun, employee_id) -> None:
        """Drop a stale settlement/payslip and release whatever it had consumed."""
        try:
            emp_id = self.directory.resolve_employee(employee_id).id
        except MissingReferenceError:
            return
        removed = self.repos.settlements.delete(emp_id, run.id)
        self.repos.payslips.delete(emp_id, run.id)
        self.repos.signing_bonuses.link_to_run(emp_id, run.id, ())
        self.repos.termination_benefits.link_to_run(emp_id, run.id, ())
        self.repos.penalties.stamp(emp_id, None, from_run_id=run.id)
        self.session.commit()
        if removed:
            log.info("run %s employee %s: stale settlement discarded", run.run_id, emp_id)


def _non_negative(value, kind: str, entity_id, emp: ResolvedEmployee, field_name: str = "amount") -> None:
    if value is None or Decimal(str(value)) < 0:
        raise ConfigurationError(f"{kind} #{entity_id} has {field_name} {value} for employee {emp.code}",
                                 employee=emp.id, kind=kind, id=entity_id)


def settlement_values(figures: SettlementFigures, bank_status: str, exceptions: List[str]) -> Dict[str, Any]:
    return {
        "base_salary": figures.base_salary,
        "allowances_total": figures.allowances_total,
        "bonus_total": figures.bonus_total or None,
        "benefit_total": figures.benefit_total or None,
        "gross_salary": figures.gross,
        "tax_amount": figures.tax_amount,
        "insurance_amount": figures.insurance_amount,
        "penalties_amount": figures.penalties_amount,
        "deductions_total": figures.total_deductions,
        "net_pay": figures.net_pay,
        "bank_status": bank_status,
        "exceptions": "; ".join(exceptions) or None,
    }


def exception_severity(message: str) -> str:
    m = message.lower()
    if "missing bank" in m or "negative" in m:
        return "high"
    return "low"


def exception_type(message: str) -> str:
    m = message.lower()
    if "missing bank" in m:
        return "missing-bank"
    if "negative" in m:
        return "negative-pay"
    return "calculation-error"


def engine_from_app(app=None) -> PayrollEngine:
    """Engine wired to the Flask-SQLAlchemy session and the app's payroll settings."""
    app = app or current_app
    return PayrollEngine(
        repos=Repositories(),
        registry=ConfigRegistry(),
        directory=EmployeeDirectory(),
        workflows=WorkflowRecords(),
        apply_insurance=bool(app.config.get("PAYROLL_APPLY_INSURANCE", False)),
    )
