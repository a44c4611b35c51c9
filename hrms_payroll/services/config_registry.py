# hrms_payroll/services/config_registry.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from hrms_payroll.extensions import db
from hrms_payroll.common.errors import ConfigurationError, ConfigTransitionError
from hrms_payroll.models.payroll.config import CONFIG_KINDS, InsuranceBracket

log = logging.getLogger(__name__)

Selector = Union[int, Dict[str, Any]]


def _model(kind: str):
    try:
        return CONFIG_KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown config kind '{kind}' (expected one of: {', '.join(sorted(CONFIG_KINDS))})")


def _clean_fields(model, fields: Dict[str, Any], allowed) -> Dict[str, Any]:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"{model.__tablename__}: unknown field(s) {', '.join(sorted(unknown))}")
    return {k: v for k, v in fields.items() if v is not None}


AMOUNT_FIELDS = ("base_salary", "gross_salary", "amount", "min_salary", "max_salary")
RATE_FIELDS = ("rate", "employee_rate", "employer_rate")


def _check_values(kind: str, values: Dict[str, Any]) -> None:
    """Amounts are non-negative, rates are percentages, brackets are ordered."""
    parsed = {}
    for k in AMOUNT_FIELDS + RATE_FIELDS:
        if values.get(k) is None:
            continue
        try:
            parsed[k] = Decimal(str(values[k]))
        except (InvalidOperation, ValueError):
            raise ValueError(f"{kind}: {k} must be a number")
        if not parsed[k].is_finite():
            raise ValueError(f"{kind}: {k} must be a number")
        if k in AMOUNT_FIELDS and parsed[k] < 0:
            raise ValueError(f"{kind}: {k} cannot be negative")
        if k in RATE_FIELDS and not (0 <= parsed[k] <= 100):
            raise ValueError(f"{kind}: {k} must be between 0 and 100")
    lo, hi = parsed.get("min_salary"), parsed.get("max_salary")
    if lo is not None and hi is not None and lo > hi:
        raise ValueError(f"{kind}: min_salary cannot exceed max_salary")


class ConfigRegistry:
    """
    Compensation configuration behind an approval gate.

    Transitions are draft -> approved and draft -> rejected, both one-way.
    Only get_approved()/list_approved() feed the calculator; there is no
    read path that hands a draft or rejected row to a settlement.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # ---------- lifecycle ----------
    def create_draft(self, kind: str, created_by: int, **fields):
        model = _model(kind)
        data = _clean_fields(model, fields, model.SELECTORS + model.VALUE_FIELDS)
        missing = [s for s in model.SELECTORS if not data.get(s)]
        if missing:
            raise ValueError(f"{kind}: {', '.join(missing)} required")
        if created_by is None:
            raise ValueError(f"{kind}: created_by required")
        _check_values(kind, data)
        row = model(status="draft", created_by=created_by, **data)
        self.session.add(row)
        self.session.flush()
        log.info("config %s#%s created as draft by %s", kind, row.id, created_by)
        return row

    def update_draft(self, kind: str, entity_id: int, **fields):
        model = _model(kind)
        row = self._get(kind, entity_id)
        if row.status != "draft":
            raise ConfigTransitionError(
                f"{kind} #{entity_id} is '{row.status}'; only drafts can be edited",
                kind=kind, id=entity_id,
            )
        data = _clean_fields(model, fields, model.SELECTORS + model.VALUE_FIELDS)
        merged = {k: getattr(row, k) for k in model.VALUE_FIELDS}
        merged.update(data)
        _check_values(kind, merged)
        for k, v in data.items():
            setattr(row, k, v)
        self.session.flush()
        return row

    def approve(self, kind: str, entity_id: int, approver_id: int):
        if approver_id is None:
            raise ValueError(f"{kind}: approver_id required")
        row = self._transition(kind, entity_id, "approved")
        row.approved_by = approver_id
        row.approved_at = datetime.utcnow()
        self.session.flush()
        log.info("config %s#%s approved by %s", kind, entity_id, approver_id)
        return row

    def reject(self, kind: str, entity_id: int, actor_id: int):
        row = self._transition(kind, entity_id, "rejected")
        row.approved_by = None
        row.approved_at = None
        self.session.flush()
        log.info("config %s#%s rejected by %s", kind, entity_id, actor_id)
        return row

    # ---------- reads ----------
    def get_approved(self, kind: str, selector: Selector):
        """
        Approved entity for `selector` (an id, or a dict of selector columns).
        Raises ConfigurationError when nothing matches or the match is not approved.
        """
        model = _model(kind)
        q = model.query
        if isinstance(selector, dict):
            q = q.filter_by(**_clean_fields(model, selector, model.SELECTORS + ("id",)))
        else:
            q = q.filter(model.id == int(selector))

        rows = q.order_by(model.approved_at.desc(), model.id.desc()).all()
        approved = [r for r in rows if r.status == "approved"]
        if approved:
            return approved[0]
        if rows:
            raise ConfigurationError(
                f"{kind} {selector!r} is '{rows[0].status}', not approved",
                kind=kind, selector=selector, status=rows[0].status,
            )
        raise ConfigurationError(f"{kind} {selector!r} not found", kind=kind, selector=selector)

    def list_approved(self, kind: str) -> List[Any]:
        model = _model(kind)
        return (model.query
                .filter(model.status == "approved")
                .order_by(model.approved_at.desc(), model.id.desc())
                .all())

    def list(self, kind: str, status: Optional[str] = None) -> List[Any]:
        model = _model(kind)
        q = model.query
        if status:
            q = q.filter(model.status == status)
        return q.order_by(model.id.asc()).all()

    def insurance_bracket_for(self, salary) -> Optional[InsuranceBracket]:
        salary = Decimal(str(salary))
        return (InsuranceBracket.query
                .filter(InsuranceBracket.status == "approved")
                .filter(InsuranceBracket.min_salary <= salary)
                .filter(InsuranceBracket.max_salary >= salary)
                .order_by(InsuranceBracket.approved_at.desc(), InsuranceBracket.id.desc())
                .first())

    # ---------- internals ----------
    def _get(self, kind: str, entity_id: int):
        model = _model(kind)
        row = self.session.get(model, int(entity_id))
        if row is None:
            raise ConfigurationError(f"{kind} #{entity_id} not found", kind=kind, id=entity_id)
        return row

    def _transition(self, kind: str, entity_id: int, target: str):
        row = self._get(kind, entity_id)
        if row.status != "draft":
            raise ConfigTransitionError(
                f"{kind} #{entity_id} is already '{row.status}'; cannot move to '{target}'",
                kind=kind, id=entity_id, status=row.status,
            )
        row.status = target
        return row
