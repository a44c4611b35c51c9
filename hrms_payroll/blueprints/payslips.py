from flask import Blueprint, request

from hrms_payroll.common.auth import requires_perms
from hrms_payroll.common.http import ok, fail, as_int, num
from hrms_payroll.common.paging import paginate
from hrms_payroll.models.payroll import Payslip
from hrms_payroll.services.payroll_engine import engine_from_app
from hrms_payroll.services.payslip_service import PayslipService

bp = Blueprint("payroll_payslips", __name__, url_prefix="/api/v1/payroll/runs")
svc = PayslipService()


def _row(p: Payslip) -> dict:
    emp = p.employee
    return {
        "employee_id": p.employee_id,
        "emp_code": emp.code if emp else None,
        "employee_name": emp.full_name if emp else None,
        "gross_pay": num(p.total_gross_salary),
        "total_deductions": num(p.total_deductions),
        "net_pay": num(p.net_pay),
        "payment_status": p.payment_status,
    }


@bp.get("/<run_id>/payslips")
@requires_perms("payroll.run.read", "payroll.payslips.view")
def list_payslips(run_id):
    """
    List payslips for a run.
    """
    run = engine_from_app().get_run(run_id)
    query = Payslip.query.filter_by(payroll_run_id=run.id)
    try:
        emp_id = as_int(request.args.get("employee_id"), "employee_id")
    except ValueError as e:
        return fail(str(e), 422)
    if emp_id:
        query = query.filter_by(employee_id=emp_id)
    items, meta = paginate(query.order_by(Payslip.employee_id.asc()), _row)
    return ok(items, **meta)


@bp.get("/<run_id>/payslips/<int:employee_id>")
@requires_perms("payroll.run.read", "payroll.payslips.view")
def get_payslip(run_id, employee_id: int):
    run = engine_from_app().get_run(run_id)
    slip = Payslip.query.filter_by(payroll_run_id=run.id, employee_id=employee_id).first()
    if not slip:
        return fail("Payslip not found for this employee in this run", 404)
    return ok(svc.build_payslip_dto(slip))
