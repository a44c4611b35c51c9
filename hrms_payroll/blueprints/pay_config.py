# hrms_payroll/blueprints/pay_config.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from flask import Blueprint, request, current_app

from hrms_payroll.extensions import db
from hrms_payroll.common.auth import requires_perms, current_actor_id
from hrms_payroll.common.http import ok, fail, body
from hrms_payroll.common.paging import paginate_list
from hrms_payroll.models.payroll.config import CONFIG_KINDS, CONFIG_STATUSES
from hrms_payroll.services.config_registry import ConfigRegistry

bp = Blueprint("pay_config", __name__, url_prefix="/api/v1/payroll/config")


# ---------- helpers ----------
def _kind(kind: str) -> str:
    # URLs use dashes: /config/pay-grade, /config/tax-rule ...
    return (kind or "").replace("-", "_")

def _val(v):
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    return v

def _row(x) -> dict:
    return {c.name: _val(getattr(x, c.name)) for c in x.__table__.columns}

def _unknown_kind(kind):
    return fail(f"unknown config kind '{kind}'", 404, code="UNKNOWN_KIND",
                detail={"kinds": sorted(k.replace("_", "-") for k in CONFIG_KINDS)})


# ---------- routes ----------
@bp.get("/<kind>")
@requires_perms("payroll.config.read")
def list_config(kind):
    kind = _kind(kind)
    if kind not in CONFIG_KINDS:
        return _unknown_kind(kind)
    status = (request.args.get("status") or "").strip() or None
    if status and status not in CONFIG_STATUSES:
        return fail(f"status must be one of: {', '.join(CONFIG_STATUSES)}", 422)
    items, meta = paginate_list(ConfigRegistry().list(kind, status=status), _row)
    return ok(items, **meta)


@bp.post("/<kind>")
@requires_perms("payroll.config.write")
def create_config(kind):
    kind = _kind(kind)
    if kind not in CONFIG_KINDS:
        return _unknown_kind(kind)
    try:
        row = ConfigRegistry().create_draft(kind, current_actor_id(), **body())
    except (ValueError, TypeError) as e:
        db.session.rollback()
        return fail(str(e), 422)
    db.session.commit()
    current_app.logger.info("config %s#%s drafted", kind, row.id)
    return ok(_row(row), 201)


@bp.patch("/<kind>/<int:entity_id>")
@requires_perms("payroll.config.write")
def update_config(kind, entity_id: int):
    kind = _kind(kind)
    if kind not in CONFIG_KINDS:
        return _unknown_kind(kind)
    try:
        row = ConfigRegistry().update_draft(kind, entity_id, **body())
    except (ValueError, TypeError) as e:
        db.session.rollback()
        return fail(str(e), 422)
    db.session.commit()
    return ok(_row(row))


@bp.post("/<kind>/<int:entity_id>/approve")
@requires_perms("payroll.config.approve")
def approve_config(kind, entity_id: int):
    kind = _kind(kind)
    if kind not in CONFIG_KINDS:
        return _unknown_kind(kind)
    try:
        row = ConfigRegistry().approve(kind, entity_id, current_actor_id())
    except ValueError as e:
        db.session.rollback()
        return fail(str(e), 422)
    db.session.commit()
    return ok(_row(row))


@bp.post("/<kind>/<int:entity_id>/reject")
@requires_perms("payroll.config.approve")
def reject_config(kind, entity_id: int):
    kind = _kind(kind)
    if kind not in CONFIG_KINDS:
        return _unknown_kind(kind)
    row = ConfigRegistry().reject(kind, entity_id, current_actor_id())
    db.session.commit()
    return ok(_row(row))
