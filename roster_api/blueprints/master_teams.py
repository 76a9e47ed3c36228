# roster_api/blueprints/master_teams.py
from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from roster_api.extensions import db
from roster_api.models.master import Team, TeamMember
from roster_api.models.staff import Staff
from roster_api.common.auth import requires_roles
from roster_api.common.http import ok, fail
from roster_api.common.paging import as_bool, page_limit
from roster_api.common.listing import apply_q_search, apply_active_filter

bp = Blueprint("master_teams", __name__, url_prefix="/api/v1/master/teams")

MEMBER_ROLES = ("member", "supervisor")


@bp.get("")
@jwt_required()
def list_teams():
    q = apply_q_search(Team.query, Team.name, Team.description)
    q = apply_active_filter(q, Team.is_active)
    page, size = page_limit()
    total = q.count()
    items = q.order_by(Team.name.asc()).offset((page - 1) * size).limit(size).all()
    with_members = (request.args.get("with_members") or "").lower() in ("1", "true", "yes")
    return ok([t.to_dict(with_members=with_members) for t in items], page=page, size=size, total=total)


@bp.get("/<int:tid>")
@jwt_required()
def get_team(tid: int):
    t = db.session.get(Team, tid)
    if not t:
        return fail("Team not found", 404)
    return ok(t.to_dict(with_members=True))


@bp.post("")
@requires_roles("admin", "scheduler")
def create_team():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return fail("name is required", 422)
    try:
        active = as_bool(data.get("is_active", True), "is_active")
    except ValueError as ex:
        return fail(str(ex), 422)
    t = Team(name=name, description=data.get("description"), is_active=active)
    db.session.add(t)
    db.session.commit()
    return ok(t.to_dict(with_members=True), 201)


@bp.put("/<int:tid>")
@requires_roles("admin", "scheduler")
def update_team(tid: int):
    t = db.session.get(Team, tid)
    if not t:
        return fail("Team not found", 404)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return fail("name cannot be empty", 422)
        t.name = name
    if "description" in data:
        t.description = data["description"]
    if "is_active" in data:
        try:
            t.is_active = as_bool(data["is_active"], "is_active")
        except ValueError as ex:
            return fail(str(ex), 422)
    db.session.commit()
    return ok(t.to_dict(with_members=True))


@bp.delete("/<int:tid>")
@requires_roles("admin")
def delete_team(tid: int):
    t = db.session.get(Team, tid)
    if not t:
        return fail("Team not found", 404)
    db.session.delete(t)
    db.session.commit()
    return ok({"id": tid, "deleted": True})


# ---------- members ----------

@bp.post("/<int:tid>/members")
@requires_roles("admin", "scheduler")
def add_member(tid: int):
    t = db.session.get(Team, tid)
    if not t:
        return fail("Team not found", 404)
    data = request.get_json(silent=True) or {}
    try:
        staff_id = int(data.get("staff_id"))
    except (TypeError, ValueError):
        return fail("staff_id must be integer", 422)
    role = data.get("role") or "member"
    if role not in MEMBER_ROLES:
        return fail(f"role must be one of: {', '.join(MEMBER_ROLES)}", 422)
    if not db.session.get(Staff, staff_id):
        return fail("Staff not found", 404)
    if any(m.staff_id == staff_id for m in t.members):
        return fail("Staff already in team", 409)
    t.members.append(TeamMember(staff_id=staff_id, role=role))
    db.session.commit()
    return ok(t.to_dict(with_members=True), 201)


@bp.delete("/<int:tid>/members/<int:staff_id>")
@requires_roles("admin", "scheduler")
def remove_member(tid: int, staff_id: int):
    t = db.session.get(Team, tid)
    if not t:
        return fail("Team not found", 404)
    m = next((m for m in t.members if m.staff_id == staff_id), None)
    if not m:
        return fail("Staff not in team", 404)
    t.members.remove(m)
    db.session.commit()
    return ok(t.to_dict(with_members=True))
