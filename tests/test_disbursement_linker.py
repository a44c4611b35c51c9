from datetime import date
from decimal import Decimal

import pytest

from hrms_payroll.common.errors import ConfigurationError, MissingReferenceError
from hrms_payroll.extensions import db
from hrms_payroll.models.payroll import EmployeeSigningBonus, EmployeeTerminationBenefit
from hrms_payroll.models.workflow import TerminationRequest

from conftest import HR, approved, employee, termination_request

PAY_DAY = date(2025, 1, 31)


def test_signing_bonus_assigned_twice_keeps_one_row(engine, registry):
    bonus = approved(registry, "signing_bonus", position_name="Software Engineer", amount=5000)
    sarah = employee("SARAH", "Junior", position="Software Engineer")

    engine.assign_disbursement(sarah.id, bonus.id, "pending")
    row = engine.assign_disbursement(sarah.id, bonus.id, "approved", payment_date=PAY_DAY)

    rows = EmployeeSigningBonus.query.filter_by(employee_id=sarah.id).all()
    assert len(rows) == 1
    assert rows[0].id == row.id
    assert rows[0].status == "approved"
    assert rows[0].payment_date == PAY_DAY
    assert rows[0].given_amount == Decimal("5000.00")


def test_payment_date_cleared_when_status_moves_off_approved(engine, registry):
    bonus = approved(registry, "signing_bonus", position_name="Accountant", amount=3000)
    kevin = employee("KEVIN", "Senior")

    engine.assign_disbursement(kevin.id, bonus.id, "approved", payment_date=PAY_DAY)
    row = engine.assign_disbursement(kevin.id, bonus.id, "rejected")
    assert row.status == "rejected"
    assert row.payment_date is None

    row = engine.assign_disbursement(kevin.id, bonus.id, "approved")
    assert row.payment_date is None


def test_payment_date_with_non_approved_status_is_rejected(engine, registry):
    bonus = approved(registry, "signing_bonus", position_name="Accountant", amount=3000)
    kevin = employee("KEVIN", "Senior")
    with pytest.raises(ValueError):
        engine.assign_disbursement(kevin.id, bonus.id, "pending", payment_date=PAY_DAY)
    with pytest.raises(ValueError):
        engine.assign_disbursement(kevin.id, bonus.id, "paid")
    with pytest.raises(ValueError):
        engine.assign_disbursement(kevin.id, bonus.id, "approved", kind="refund")


def test_unapproved_config_cannot_be_assigned(engine, registry):
    draft = registry.create_draft("signing_bonus", HR, position_name="Intern", amount=100)
    db.session.commit()
    kevin = employee("KEVIN", "Senior")
    with pytest.raises(ConfigurationError):
        engine.assign_disbursement(kevin.id, draft.id, "approved")


def test_termination_benefit_without_workflow_is_missing_reference(engine, registry):
    gratuity = approved(registry, "termination_benefit", name="Gratuity", amount=10000)
    bob = employee("BOB", "Senior")
    with pytest.raises(MissingReferenceError):
        engine.assign_disbursement(bob.id, gratuity.id, "approved", kind="termination_benefit")
    assert EmployeeTerminationBenefit.query.count() == 0


def test_termination_benefit_explicit_request_must_exist(engine, registry):
    gratuity = approved(registry, "termination_benefit", name="Gratuity", amount=10000)
    bob = employee("BOB", "Senior")
    with pytest.raises(MissingReferenceError):
        engine.assign_disbursement(bob.id, gratuity.id, "approved", kind="termination_benefit",
                                   termination_request_id=404)


def test_termination_benefit_links_existing_request(engine, registry):
    gratuity = approved(registry, "termination_benefit", name="Gratuity", amount=10000)
    charlie = employee("CHARLIE", "Junior")
    req = termination_request(charlie)

    row = engine.assign_disbursement(charlie.id, gratuity.id, "approved", kind="termination_benefit")
    assert row.termination_request_id == req.id

    # reassignment keeps the same request and the same row
    again = engine.assign_disbursement(charlie.id, gratuity.id, "pending", kind="termination_benefit",
                                       given_amount=Decimal("8000"))
    assert again.id == row.id
    assert again.termination_request_id == req.id
    assert again.given_amount == Decimal("8000.00")


def test_termination_request_opened_from_contract(engine, registry):
    gratuity = approved(registry, "termination_benefit", name="Gratuity", amount=10000)
    samir = employee("SAMIR", "Senior")

    row = engine.assign_disbursement(samir.id, gratuity.id, "approved", kind="termination_benefit",
                                     contract_id="CTR-77")
    req = db.session.get(TerminationRequest, row.termination_request_id)
    assert req.employee_id == samir.id
    assert req.contract_id == "CTR-77"


def test_penalties_are_validated(engine):
    kevin = employee("KEVIN", "Senior")
    with pytest.raises(ValueError):
        engine.add_penalty(kevin.id, "", 10)
    with pytest.raises(ValueError):
        engine.add_penalty(kevin.id, "Late", 0)
    with pytest.raises(MissingReferenceError):
        engine.add_penalty("GHOST", "Late", 10)

    doc = engine.add_penalty("KEVIN", "Late", "12.345")
    assert doc.penalties == [{"reason": "Late", "amount": 12.35, "payroll_run_id": None}]


def test_negative_given_amount_is_refused(engine, registry):
    bonus = approved(registry, "signing_bonus", position_name="Analyst", amount=2000)
    emp = employee("NORA", "Junior")
    with pytest.raises(ValueError):
        engine.assign_disbursement(emp.id, bonus.id, "pending", given_amount=-10)
    db.session.rollback()
    assert EmployeeSigningBonus.query.filter_by(employee_id=emp.id).count() == 0
