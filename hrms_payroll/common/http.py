# hrms_payroll/common/http.py
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import jsonify, request


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


# ---------- request parsing ----------
# Parsers raise ValueError; blueprints turn that into a 422.

def body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data

def as_date(v, field="date"):
    if v in (None, ""):
        return None
    try:
        return date.fromisoformat(str(v))
    except ValueError:
        raise ValueError(f"{field} must be YYYY-MM-DD")

def as_decimal(v, field="amount"):
    if v in (None, ""):
        return None
    try:
        return Decimal(str(v))
    except InvalidOperation:
        raise ValueError(f"{field} must be a number")

def as_int(v, field="id"):
    if v in (None, ""):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")

def iso(v):
    return v.isoformat() if v else None

def num(v):
    return float(v) if v is not None else None
