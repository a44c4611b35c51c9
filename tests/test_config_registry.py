from decimal import Decimal

import pytest

from hrms_payroll.common.errors import ConfigurationError, ConfigTransitionError
from hrms_payroll.extensions import db

from conftest import HR, APPROVER, approved


def test_draft_then_approve_sets_approver(registry):
    row = registry.create_draft("allowance", HR, name="Housing", amount=2000)
    assert row.status == "draft"
    assert row.approved_by is None

    registry.approve("allowance", row.id, APPROVER)
    db.session.commit()
    assert row.status == "approved"
    assert row.approved_by == APPROVER
    assert row.approved_at is not None
    assert registry.get_approved("allowance", row.id).id == row.id


def test_terminal_states_are_one_way(registry):
    a = approved(registry, "tax_rule", name="Income Tax", rate=10)
    with pytest.raises(ConfigTransitionError):
        registry.approve("tax_rule", a.id, APPROVER)
    with pytest.raises(ConfigTransitionError):
        registry.reject("tax_rule", a.id, APPROVER)
    with pytest.raises(ConfigTransitionError):
        registry.update_draft("tax_rule", a.id, rate=12)

    r = registry.create_draft("tax_rule", HR, name="Levy", rate=2)
    registry.reject("tax_rule", r.id, APPROVER)
    assert r.status == "rejected"
    assert r.approved_by is None
    with pytest.raises(ConfigTransitionError):
        registry.approve("tax_rule", r.id, APPROVER)


def test_draft_can_be_edited(registry):
    row = registry.create_draft("pay_grade", HR, grade="Junior", base_salary=8000)
    registry.update_draft("pay_grade", row.id, base_salary=9000)
    db.session.commit()
    assert Decimal(str(row.base_salary)) == Decimal("9000")


@pytest.mark.parametrize("final", ["draft", "rejected"])
def test_get_approved_refuses_unapproved(registry, final):
    row = registry.create_draft("pay_grade", HR, grade="Lead", base_salary=20000)
    if final == "rejected":
        registry.reject("pay_grade", row.id, APPROVER)
    db.session.commit()

    with pytest.raises(ConfigurationError) as ei:
        registry.get_approved("pay_grade", {"grade": "Lead"})
    assert final in ei.value.message
    assert ei.value.payload["kind"] == "pay_grade"


def test_get_approved_missing(registry):
    with pytest.raises(ConfigurationError):
        registry.get_approved("signing_bonus", 999)


def test_create_draft_validation(registry):
    with pytest.raises(ValueError):
        registry.create_draft("allowance", HR, amount=100)          # no name
    with pytest.raises(ValueError):
        registry.create_draft("allowance", HR, name="X", bogus=1)   # unknown field
    with pytest.raises(ValueError):
        registry.create_draft("nope", HR, name="X")


def test_insurance_bracket_lookup(registry):
    approved(registry, "insurance_bracket", name="A", min_salary=0, max_salary=15000,
             employee_rate=11, employer_rate=18.75)
    approved(registry, "insurance_bracket", name="B", min_salary=15000.01, max_salary=100000,
             employee_rate=9, employer_rate=15)
    registry.create_draft("insurance_bracket", HR, name="C", min_salary=0, max_salary=1000000,
                          employee_rate=1, employer_rate=1)
    db.session.commit()

    assert registry.insurance_bracket_for(12000).name == "A"
    assert registry.insurance_bracket_for(22000).name == "B"
    assert registry.insurance_bracket_for(500000) is None


def test_approve_requires_an_approver(registry):
    row = registry.create_draft("allowance", HR, name="Housing", amount=2000)
    with pytest.raises(ValueError):
        registry.approve("allowance", row.id, None)
    db.session.commit()
    assert row.status == "draft"
    assert row.approved_by is None
    assert row.approved_at is None


@pytest.mark.parametrize("kind, fields", [
    ("pay_grade", {"grade": "Bad", "base_salary": -1}),
    ("allowance", {"name": "Bad", "amount": -0.01}),
    ("signing_bonus", {"position_name": "Bad", "amount": "-5000"}),
    ("tax_rule", {"name": "Bad", "rate": -20}),
    ("tax_rule", {"name": "Bad", "rate": 120}),
    ("tax_rule", {"name": "Bad", "rate": "ten"}),
    ("insurance_bracket", {"name": "Bad", "min_salary": 5000, "max_salary": 1000,
                           "employee_rate": 11, "employer_rate": 18}),
    ("insurance_bracket", {"name": "Bad", "min_salary": 0, "max_salary": 1000,
                           "employee_rate": 11, "employer_rate": 101}),
])
def test_draft_values_are_validated(registry, kind, fields):
    with pytest.raises(ValueError):
        registry.create_draft(kind, HR, **fields)


def test_draft_edit_is_validated_against_stored_values(registry):
    band = registry.create_draft("insurance_bracket", HR, name="Band A", min_salary=0, max_salary=15000,
                                 employee_rate=11, employer_rate=18.75)
    with pytest.raises(ValueError):
        registry.update_draft("insurance_bracket", band.id, min_salary=20000)
    with pytest.raises(ValueError):
        registry.update_draft("insurance_bracket", band.id, employee_rate=-1)
    registry.update_draft("insurance_bracket", band.id, max_salary=20000)
    assert Decimal(str(band.max_salary)) == Decimal("20000")
