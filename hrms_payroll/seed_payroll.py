# hrms_payroll/seed_payroll.py
# Demo data for local runs: `flask seed-payroll`. Safe to run repeatedly.

from datetime import date

from hrms_payroll.extensions import db
from hrms_payroll.models.employee import Employee
from hrms_payroll.models.employee_bank import EmployeeBankAccount
from hrms_payroll.models.workflow import TerminationRequest
from hrms_payroll.services.config_registry import ConfigRegistry
from hrms_payroll.services.payroll_engine import engine_from_app

SEED_ACTOR = 1

# kind, fields, final status
CONFIG = [
    ("pay_grade", {"grade": "Junior", "base_salary": 9000, "gross_salary": 12000}, "approved"),
    ("pay_grade", {"grade": "Senior", "base_salary": 13000, "gross_salary": 13000}, "approved"),
    ("pay_grade", {"grade": "Lead", "base_salary": 20000}, "draft"),
    ("allowance", {"name": "Housing Allowance", "amount": 2000}, "approved"),
    ("allowance", {"name": "Transport Allowance", "amount": 1000}, "approved"),
    ("allowance", {"name": "Meal Allowance", "amount": 500}, "draft"),
    ("allowance", {"name": "Remote Work Allowance", "amount": 750}, "rejected"),
    ("signing_bonus", {"position_name": "Software Engineer", "amount": 5000}, "approved"),
    ("tax_rule", {"name": "Income Tax", "description": "Flat income tax", "rate": 10}, "approved"),
    ("tax_rule", {"name": "Solidarity Levy", "rate": 2}, "draft"),
    ("tax_rule", {"name": "Luxury Surcharge", "rate": 5}, "rejected"),
    ("termination_benefit", {"name": "End of Service Gratuity", "amount": 10000,
                             "terms": "One-time payment on contract end"}, "approved"),
    ("insurance_bracket", {"name": "Social Insurance Band A", "min_salary": 0, "max_salary": 15000,
                           "employee_rate": 11, "employer_rate": 18.75}, "approved"),
    ("insurance_bracket", {"name": "Social Insurance Band B", "min_salary": 15000.01, "max_salary": 100000,
                           "employee_rate": 11, "employer_rate": 18.75}, "approved"),
]

# code, first, last, email, grade, position, has bank
EMPLOYEES = [
    ("EMP-001", "Charlie", "Adams", "charlie@demo.local", "Junior", "Software Engineer", True),
    ("EMP-002", "Kevin", "Brown", "kevin@demo.local", "Senior", "Accountant", True),
    ("EMP-003", "Lina", "Hassan", "lina@demo.local", "Senior", "HR Specialist", False),
    ("EMP-004", "Sarah", "Nabil", "sarah@demo.local", "Junior", "Software Engineer", True),
    ("EMP-005", "Samir", "Fouad", "samir@demo.local", "Lead", "Team Lead", True),
    ("EMP-006", "Bob", "Miller", "bob@demo.local", "Senior", "Payroll Specialist", True),
]

RUN_ID = "PR-2025-001"
RUN_PERIOD = date(2025, 1, 31)


def _ensure_config(registry: ConfigRegistry):
    out = {}
    for kind, fields, status in CONFIG:
        existing = registry.list(kind)
        key_name = next(iter(fields))
        row = next((r for r in existing if getattr(r, key_name) == fields[key_name]), None)
        if row is None:
            row = registry.create_draft(kind, SEED_ACTOR, **fields)
            if status == "approved":
                registry.approve(kind, row.id, SEED_ACTOR)
            elif status == "rejected":
                registry.reject(kind, row.id, SEED_ACTOR)
        out[(kind, fields[key_name])] = row
    db.session.commit()
    return out


def _ensure_employees():
    out = {}
    for code, first, last, email, grade, position, has_bank in EMPLOYEES:
        emp = Employee.query.filter_by(code=code).first()
        if not emp:
            emp = Employee(code=code, first_name=first, last_name=last, email=email,
                           pay_grade=grade, position_name=position, department="Operations",
                           doj=date(2024, 1, 1), status="active")
            db.session.add(emp)
            db.session.flush()
            if has_bank:
                db.session.add(EmployeeBankAccount(employee_id=emp.id, bank_name="National Bank",
                                                   account_number=f"EG00{emp.id:08d}", is_primary=True))
        out[code] = emp
    db.session.commit()
    return out


def run():
    registry = ConfigRegistry()
    cfg = _ensure_config(registry)
    emps = _ensure_employees()
    engine = engine_from_app()

    housing = cfg[("allowance", "Housing Allowance")]
    transport = cfg[("allowance", "Transport Allowance")]
    for code in ("EMP-001", "EMP-004"):
        engine.link_allowance(emps[code].id, housing.id)
        engine.link_allowance(emps[code].id, transport.id)
    # Bob is linked to a rejected allowance and is reported as a configuration error
    engine.link_allowance(emps["EMP-006"].id, cfg[("allowance", "Remote Work Allowance")].id)

    bonus = cfg[("signing_bonus", "Software Engineer")]
    if engine.repos.signing_bonuses.get(emps["EMP-004"].id, bonus.id) is None:
        engine.assign_disbursement(emps["EMP-004"].id, bonus.id, "approved", payment_date=RUN_PERIOD)

    charlie = emps["EMP-001"]
    if not TerminationRequest.query.filter_by(employee_id=charlie.id).first():
        db.session.add(TerminationRequest(employee_id=charlie.id, contract_id="CTR-2024-001",
                                          reason="Resignation", status="approved",
                                          termination_date=RUN_PERIOD))
        db.session.commit()
    gratuity = cfg[("termination_benefit", "End of Service Gratuity")]
    if engine.repos.termination_benefits.get(charlie.id, gratuity.id) is None:
        engine.assign_disbursement(charlie.id, gratuity.id, "approved",
                                   payment_date=RUN_PERIOD, kind="termination_benefit")

    if not engine.repos.penalties.get(charlie.id):
        engine.add_penalty(charlie.id, "Late arrival", 100)
        engine.add_penalty(charlie.id, "Unpaid leave deduction", 250)

    engine.open_run(RUN_ID, RUN_PERIOD, entity="Demo Co", specialist_id=SEED_ACTOR)
    return {"config": len(cfg), "employees": len(emps), "run_id": RUN_ID}
