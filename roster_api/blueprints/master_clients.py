# roster_api/blueprints/master_clients.py
from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from roster_api.extensions import db
from roster_api.models.master import Client
from roster_api.common.auth import requires_roles
from roster_api.common.http import ok, fail
from roster_api.common.paging import page_limit
from roster_api.common.listing import apply_q_search

bp = Blueprint("master_clients", __name__, url_prefix="/api/v1/master/clients")

_FIELDS = ("name", "email", "phone", "company", "client_instruction", "property_info")


@bp.get("")
@jwt_required()
def list_clients():
    q = apply_q_search(Client.query, Client.name, Client.company, Client.email)
    page, size = page_limit()
    total = q.count()
    items = q.order_by(Client.name.asc()).offset((page - 1) * size).limit(size).all()
    return ok([c.to_dict() for c in items], page=page, size=size, total=total)


@bp.get("/<int:cid>")
@jwt_required()
def get_client(cid: int):
    c = db.session.get(Client, cid)
    if not c:
        return fail("Client not found", 404)
    return ok(c.to_dict())


@bp.post("")
@requires_roles("admin", "scheduler")
def create_client():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return fail("name is required", 422)
    c = Client(**{f: data.get(f) for f in _FIELDS if f != "name"}, name=name)
    db.session.add(c)
    db.session.commit()
    return ok(c.to_dict(), 201)


@bp.put("/<int:cid>")
@requires_roles("admin", "scheduler")
def update_client(cid: int):
    c = db.session.get(Client, cid)
    if not c:
        return fail("Client not found", 404)
    data = request.get_json(silent=True) or {}
    if "name" in data and not (data.get("name") or "").strip():
        return fail("name cannot be empty", 422)
    for f in _FIELDS:
        if f in data:
            setattr(c, f, data[f])
    db.session.commit()
    return ok(c.to_dict())


@bp.delete("/<int:cid>")
@requires_roles("admin")
def delete_client(cid: int):
    c = db.session.get(Client, cid)
    if not c:
        return fail("Client not found", 404)
    db.session.delete(c)
    db.session.commit()
    return ok({"id": cid, "deleted": True})
