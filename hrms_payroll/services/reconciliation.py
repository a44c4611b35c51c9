# hrms_payroll/services/reconciliation.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from hrms_payroll.models.payroll import PayrollRun, EmployeeSettlement
from hrms_payroll.services.settlement_calculator import money, ZERO

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerTotals:
    employee_count: int
    exception_count: int
    total_net_pay: Decimal


def totals_for(settlements: Iterable[EmployeeSettlement]) -> LedgerTotals:
    rows = list(settlements)
    return LedgerTotals(
        employee_count=len(rows),
        exception_count=sum(1 for s in rows if (s.exceptions or "").strip()),
        total_net_pay=money(sum((Decimal(str(s.net_pay or 0)) for s in rows), ZERO)),
    )


def reconcile(run: PayrollRun, settlements: Iterable[EmployeeSettlement]) -> PayrollRun:
    """Overwrite the run's aggregates with what its settlements add up to."""
    t = totals_for(settlements)
    run.employee_count = t.employee_count
    run.exception_count = t.exception_count
    run.total_net_pay = t.total_net_pay
    log.info("run %s reconciled: %s employees, %s exceptions, net %s",
             run.run_id, t.employee_count, t.exception_count, t.total_net_pay)
    return run
