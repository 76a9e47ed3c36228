# roster_api/blueprints/master_staff.py
from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from roster_api.extensions import db
from roster_api.models.staff import Staff
from roster_api.common.auth import requires_roles
from roster_api.common.http import ok, fail
from roster_api.common.paging import page_limit
from roster_api.common.listing import apply_q_search, apply_active_filter

bp = Blueprint("master_staff", __name__, url_prefix="/api/v1/master/staff")

STAFF_ROLES = ("cleaner", "supervisor", "staff")
_FIELDS = ("name", "email", "phone", "role", "is_active")


def _apply(x: Staff, data: dict):
    for f in _FIELDS:
        if f in data:
            setattr(x, f, data[f])


def _check(data: dict, partial=False):
    if not partial or "name" in data:
        if not (data.get("name") or "").strip():
            return "name is required"
    if "role" in data and data["role"] not in STAFF_ROLES:
        return f"role must be one of: {', '.join(STAFF_ROLES)}"
    return None


@bp.get("")
@jwt_required()
def list_staff():
    q = Staff.query
    q = apply_q_search(q, Staff.name, Staff.email, Staff.phone)
    q = apply_active_filter(q, Staff.is_active)
    role = request.args.get("role")
    if role:
        q = q.filter(Staff.role == role)
    page, size = page_limit()
    total = q.count()
    items = q.order_by(Staff.name.asc()).offset((page - 1) * size).limit(size).all()
    return ok([i.to_dict() for i in items], page=page, size=size, total=total)


@bp.get("/<int:sid>")
@jwt_required()
def get_staff(sid: int):
    x = db.session.get(Staff, sid)
    if not x:
        return fail("Staff not found", 404)
    return ok(x.to_dict())


@bp.post("")
@requires_roles("admin", "scheduler")
def create_staff():
    data = request.get_json(silent=True) or {}
    err = _check(data)
    if err:
        return fail(err, 422)
    data["name"] = data["name"].strip()
    x = Staff()
    _apply(x, data)
    db.session.add(x)
    db.session.commit()
    return ok(x.to_dict(), 201)


@bp.put("/<int:sid>")
@requires_roles("admin", "scheduler")
def update_staff(sid: int):
    x = db.session.get(Staff, sid)
    if not x:
        return fail("Staff not found", 404)
    data = request.get_json(silent=True) or {}
    err = _check(data, partial=True)
    if err:
        return fail(err, 422)
    _apply(x, data)
    db.session.commit()
    return ok(x.to_dict())


@bp.delete("/<int:sid>")
@requires_roles("admin")
def delete_staff(sid: int):
    x = db.session.get(Staff, sid)
    if not x:
        return fail("Staff not found", 404)
    # soft delete; shift history keeps pointing at the row
    x.is_active = False
    db.session.commit()
    return ok({"id": sid, "is_active": False})
