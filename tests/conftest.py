import os
from datetime import date

import pytest

from hrms_payroll import create_app
from hrms_payroll.extensions import db
from hrms_payroll.models.employee import Employee
from hrms_payroll.models.employee_bank import EmployeeBankAccount
from hrms_payroll.models.workflow import TerminationRequest
from hrms_payroll.services.config_registry import ConfigRegistry
from hrms_payroll.services.payroll_engine import engine_from_app

HR = 1
APPROVER = 2
PERIOD = date(2025, 1, 31)


def _mk_app(**config):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config.update(TESTING=True, **config)
    return app


@pytest.fixture
def app():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def registry(app):
    return ConfigRegistry()


@pytest.fixture
def engine(app):
    return engine_from_app(app)


def approved(registry, kind, **fields):
    row = registry.create_draft(kind, HR, **fields)
    registry.approve(kind, row.id, APPROVER)
    db.session.commit()
    return row


def employee(code, grade, bank=True, position=None, **extra):
    emp = Employee(code=code, email=f"{code.lower()}@test.local", first_name=code.title(),
                   last_name="Test", pay_grade=grade, position_name=position, status="active", **extra)
    db.session.add(emp)
    db.session.flush()
    if bank:
        db.session.add(EmployeeBankAccount(employee_id=emp.id, bank_name="Test Bank",
                                           account_number=f"ACC{emp.id:06d}", is_primary=True))
    db.session.commit()
    return emp


def termination_request(emp, contract_id="CTR-1"):
    req = TerminationRequest(employee_id=emp.id, contract_id=contract_id, reason="Resignation")
    db.session.add(req)
    db.session.commit()
    return req


@pytest.fixture
def payroll_setup(registry, engine):
    """
    Two settled-ready employees:
      charlie: Junior 9000 + allowances 2000/1000 + gratuity 10000, penalties 100/250
      kevin:   Senior 13000, nothing else
    Tax: one approved 10% rule.
    """
    junior = approved(registry, "pay_grade", grade="Junior", base_salary=9000)
    senior = approved(registry, "pay_grade", grade="Senior", base_salary=13000)
    housing = approved(registry, "allowance", name="Housing", amount=2000)
    transport = approved(registry, "allowance", name="Transport", amount=1000)
    tax = approved(registry, "tax_rule", name="Income Tax", rate=10)
    gratuity = approved(registry, "termination_benefit", name="End of Service Gratuity", amount=10000)
    bonus = approved(registry, "signing_bonus", position_name="Software Engineer", amount=5000)

    charlie = employee("CHARLIE", "Junior")
    kevin = employee("KEVIN", "Senior")
    engine.link_allowance(charlie.id, housing.id)
    engine.link_allowance(charlie.id, transport.id)
    termination_request(charlie)
    engine.assign_disbursement(charlie.id, gratuity.id, "approved", kind="termination_benefit")
    engine.add_penalty(charlie.id, "Late arrival", 100)
    engine.add_penalty(charlie.id, "Unpaid leave", 250)

    run = engine.open_run("PR-2025-001", PERIOD)
    return {
        "run": run, "charlie": charlie, "kevin": kevin,
        "junior": junior, "senior": senior, "housing": housing, "transport": transport,
        "tax": tax, "gratuity": gratuity, "bonus": bonus,
    }
