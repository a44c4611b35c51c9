from __future__ import annotations

from flask import Blueprint, request, current_app

from hrms_payroll.extensions import db
from hrms_payroll.common.auth import requires_perms, current_actor_id
from hrms_payroll.common.http import ok, fail, body, as_date, as_int, iso, num
from hrms_payroll.common.paging import paginate
from hrms_payroll.models.payroll import PayrollRun, EmployeeSettlement
from hrms_payroll.models.payroll.pay_run import RUN_STATUSES
from hrms_payroll.services.payroll_engine import engine_from_app

bp = Blueprint("pay_runs", __name__, url_prefix="/api/v1/payroll/runs")


# ---------- row shapes ----------
def _run_row(r: PayrollRun) -> dict:
    return {
        "id": r.id,
        "run_id": r.run_id,
        "period": iso(r.period),
        "entity": r.entity,
        "status": r.status,
        "payment_status": r.payment_status,
        "employee_count": r.employee_count,
        "exception_count": r.exception_count,
        "total_net_pay": num(r.total_net_pay),
        "currency": current_app.config.get("PAYROLL_CURRENCY"),
        "specialist_id": r.specialist_id,
        "created_at": iso(r.created_at),
        "finalized_at": iso(r.finalized_at),
        "paid_at": iso(r.paid_at),
    }

def _settlement_row(s: EmployeeSettlement) -> dict:
    return {
        "id": s.id,
        "employee_id": s.employee_id,
        "employee_code": s.employee.code if s.employee else None,
        "employee_name": s.employee.full_name if s.employee else None,
        "base_salary": num(s.base_salary),
        "allowances_total": num(s.allowances_total),
        "bonus_total": num(s.bonus_total),
        "benefit_total": num(s.benefit_total),
        "gross_salary": num(s.gross_salary),
        "tax_amount": num(s.tax_amount),
        "insurance_amount": num(s.insurance_amount),
        "penalties_amount": num(s.penalties_amount),
        "deductions_total": num(s.deductions_total),
        "net_pay": num(s.net_pay),
        "bank_status": s.bank_status,
        "exceptions": s.exceptions,
    }


# ---------- routes ----------
@bp.get("")
@requires_perms("payroll.run.read")
def list_runs():
    status = (request.args.get("status") or "").strip() or None
    if status and status not in RUN_STATUSES:
        return fail(f"status must be one of: {', '.join(RUN_STATUSES)}", 422)
    q = PayrollRun.query
    if status:
        q = q.filter(PayrollRun.status == status)
    items, meta = paginate(q.order_by(PayrollRun.period.desc()), _run_row)
    return ok(items, **meta)


@bp.post("")
@requires_perms("payroll.run.write")
def create_run():
    try:
        data = body()
        run_id = (data.get("run_id") or "").strip()
        period = as_date(data.get("period"), "period")
        if not run_id or period is None:
            return fail("run_id and period are required", 422)
        run = engine_from_app().open_run(run_id, period, entity=data.get("entity"),
                                         specialist_id=current_actor_id())
    except ValueError as e:
        db.session.rollback()
        return fail(str(e), 422)
    return ok(_run_row(run), 201)


@bp.get("/<run_id>")
@requires_perms("payroll.run.read")
def get_run(run_id):
    return ok(_run_row(engine_from_app().get_run(run_id)))


@bp.post("/<run_id>/calculate")
@requires_perms("payroll.run.write")
def calculate_run(run_id):
    try:
        data = body()
    except ValueError as e:
        return fail(str(e), 422)
    employee_ids = data.get("employee_ids")
    if employee_ids is not None and not isinstance(employee_ids, list):
        return fail("employee_ids must be a list", 422)
    outcome = engine_from_app().run_payroll(run_id, employee_ids)
    current_app.logger.info("run %s calculated: %s ok, %s failed", run_id,
                            len(outcome.results) - len(outcome.failures), len(outcome.failures))
    return ok({
        "run": _run_row(outcome.run),
        "results": [r.as_dict() for r in outcome.results],
    })


@bp.post("/<run_id>/employees/<employee_id>/settle")
@requires_perms("payroll.run.write")
def settle_employee(run_id, employee_id):
    s = engine_from_app().compute_and_persist_settlement(employee_id, run_id)
    return ok(_settlement_row(s))


@bp.post("/<run_id>/reconcile")
@requires_perms("payroll.run.write")
def reconcile(run_id):
    return ok(_run_row(engine_from_app().reconcile_run(run_id)))


@bp.post("/<run_id>/finalize")
@requires_perms("payroll.run.finalize")
def finalize(run_id):
    return ok(_run_row(engine_from_app().finalize_run(run_id)))


@bp.post("/<run_id>/pay")
@requires_perms("payroll.run.finalize")
def pay(run_id):
    return ok(_run_row(engine_from_app().mark_run_paid(run_id)))


@bp.get("/<run_id>/settlements")
@requires_perms("payroll.run.read")
def list_settlements(run_id):
    run = engine_from_app().get_run(run_id)
    q = (EmployeeSettlement.query
         .filter(EmployeeSettlement.payroll_run_id == run.id)
         .order_by(EmployeeSettlement.employee_id.asc()))
    if request.args.get("with_exceptions") in ("1", "true", "yes"):
        q = q.filter(EmployeeSettlement.exceptions.isnot(None))
    items, meta = paginate(q, _settlement_row)
    return ok(items, **meta)


@bp.get("/<run_id>/exceptions")
@requires_perms("payroll.run.read")
def list_exceptions(run_id):
    try:
        employee_id = as_int(request.args.get("employee_id"), "employee_id")
    except ValueError as e:
        return fail(str(e), 422)
    items = engine_from_app().list_exceptions(run_id, employee_id=employee_id)
    return ok(items, total=len(items))


@bp.delete("/<run_id>/employees/<int:employee_id>/exceptions")
@requires_perms("payroll.run.write")
def clear_exceptions(run_id, employee_id: int):
    s = engine_from_app().clear_exceptions(run_id, employee_id)
    return ok(_settlement_row(s))
