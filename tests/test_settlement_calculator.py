from decimal import Decimal

import pytest

from hrms_payroll.services.settlement_calculator import (
    Line, SettlementInputs, calculate, detect_exceptions, money, MISSING_BANK,
)


def test_full_settlement_example():
    f = calculate(SettlementInputs(
        base_salary=9000, tax_rate=10,
        allowances=[Line("Housing", 2000), Line("Transport", 1000)],
        benefits=[Line("End of Service Gratuity", 10000)],
        penalties=[Line("Late arrival", 100), Line("Unpaid leave", 250)],
    ))
    assert f.gross == Decimal("22000.00")
    assert f.tax_amount == Decimal("2200.00")
    assert f.penalties_amount == Decimal("350.00")
    assert f.total_deductions == Decimal("2550.00")
    assert f.net_pay == Decimal("19450.00")
    assert f.net_pay == f.gross - f.tax_amount - f.penalties_amount


def test_base_only_example():
    f = calculate(SettlementInputs(base_salary=13000, tax_rate=10))
    assert f.gross == Decimal("13000.00")
    assert f.tax_amount == Decimal("1300.00")
    assert f.total_deductions == Decimal("1300.00")
    assert f.net_pay == Decimal("11700.00")
    assert f.bonus_total == Decimal("0.00")


def test_rounding_half_up_at_each_step():
    # 1234.565 * 12.5% = 154.3206... -> 154.32 ; gross rounds first
    f = calculate(SettlementInputs(base_salary="1234.565", tax_rate="12.5"))
    assert f.base_salary == Decimal("1234.57")
    assert f.gross == Decimal("1234.57")
    assert f.tax_amount == Decimal("154.32")
    assert money("0.005") == Decimal("0.01")
    assert money(None) == Decimal("0.00")


def test_insurance_is_deducted_when_rate_given():
    f = calculate(SettlementInputs(base_salary=10000, tax_rate=10, insurance_rate=11))
    assert f.insurance_amount == Decimal("1100.00")
    assert f.total_deductions == Decimal("2100.00")
    assert f.net_pay == Decimal("7900.00")


def test_negative_net_is_reported_not_clamped():
    f = calculate(SettlementInputs(base_salary=1000, tax_rate=10, penalties=[Line("Damage", 5000)]))
    assert f.net_pay == Decimal("-4100.00")
    assert f.is_negative
    exc = detect_exceptions(f, "valid")
    assert len(exc) == 1 and exc[0].startswith("Negative net pay")


def test_missing_bank_exception():
    f = calculate(SettlementInputs(base_salary=1000, tax_rate=0))
    assert detect_exceptions(f, "missing") == [MISSING_BANK]
    assert detect_exceptions(f, "valid") == []


@pytest.mark.parametrize("kwargs", [
    {"base_salary": -1, "tax_rate": 10},
    {"base_salary": 100, "tax_rate": 101},
    {"base_salary": 100, "tax_rate": -1},
    {"base_salary": 100, "tax_rate": 10, "insurance_rate": 150},
])
def test_inputs_are_validated(kwargs):
    with pytest.raises(ValueError):
        SettlementInputs(**kwargs)


def test_line_requires_name():
    with pytest.raises(ValueError):
        Line("", 10)
