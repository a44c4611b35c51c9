# hrms_payroll/blueprints/disbursements.py
from __future__ import annotations

from flask import Blueprint, current_app

from hrms_payroll.extensions import db
from hrms_payroll.common.auth import requires_perms
from hrms_payroll.common.http import ok, fail, body, as_date, as_decimal, as_int, iso, num
from hrms_payroll.services.payroll_engine import engine_from_app

bp = Blueprint("pay_disbursements", __name__, url_prefix="/api/v1/payroll")


def _assignment_row(x) -> dict:
    return {
        "id": x.id,
        "employee_id": x.employee_id,
        "config_entity_id": x.config_entity_id,
        "given_amount": num(x.given_amount),
        "status": x.status,
        "payment_date": iso(x.payment_date),
        "payroll_run_id": x.payroll_run_id,
        "termination_request_id": getattr(x, "termination_request_id", None),
    }


def _assign(kind: str, id_field: str, extra_fields=None):
    data = body()
    employee_id = data.get("employee_id")
    if employee_id in (None, ""):
        return fail("employee_id is required", 422)
    config_id = as_int(data.get(id_field), id_field)
    if config_id is None:
        return fail(f"{id_field} is required", 422)
    status = (data.get("status") or "").strip()
    if not status:
        return fail("status is required", 422)

    extra = {}
    given = as_decimal(data.get("given_amount"), "given_amount")
    if given is not None:
        extra["given_amount"] = given
    for f, parse in (extra_fields or {}).items():
        if data.get(f) not in (None, ""):
            extra[f] = parse(data[f], f)

    row = engine_from_app().assign_disbursement(
        employee_id, config_id, status,
        payment_date=as_date(data.get("payment_date"), "payment_date"),
        kind=kind, **extra,
    )
    current_app.logger.info("%s #%s -> employee %s [%s]", kind, config_id, row.employee_id, row.status)
    return ok(_assignment_row(row))


@bp.post("/disbursements/signing-bonuses")
@requires_perms("payroll.disbursement.write")
def assign_signing_bonus():
    try:
        return _assign("signing_bonus", "signing_bonus_id")
    except ValueError as e:
        db.session.rollback()
        return fail(str(e), 422)


@bp.post("/disbursements/termination-benefits")
@requires_perms("payroll.disbursement.write")
def assign_termination_benefit():
    try:
        return _assign("termination_benefit", "benefit_id", extra_fields={
            "termination_request_id": as_int,
            "contract_id": lambda v, _f: str(v),
        })
    except ValueError as e:
        db.session.rollback()
        return fail(str(e), 422)


@bp.post("/penalties")
@requires_perms("payroll.disbursement.write")
def add_penalty():
    try:
        data = body()
        employee_id = data.get("employee_id")
        if employee_id in (None, ""):
            return fail("employee_id is required", 422)
        doc = engine_from_app().add_penalty(employee_id, data.get("reason"),
                                            as_decimal(data.get("amount"), "amount"))
    except ValueError as e:
        db.session.rollback()
        return fail(str(e), 422)
    return ok({"employee_id": doc.employee_id, "penalties": doc.penalties}, 201)
