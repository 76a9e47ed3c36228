# roster_api/blueprints/master_locations.py
from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from sqlalchemy import or_, asc, desc

from roster_api.extensions import db
from roster_api.models.master import Location
from roster_api.common.auth import requires_roles
from roster_api.common.http import ok, fail
from roster_api.common.paging import page_limit, text_q
from roster_api.services.location_service import create_location as _create, find_by_unit_name, mark_used

bp = Blueprint("master_locations", __name__, url_prefix="/api/v1/master/locations")


# ---------- sorting helper ----------
def _sort_params(allowed: dict[str, object]):
    raw = (request.args.get("sort") or "").strip()
    out = []
    if not raw:
        return out
    for part in [p.strip() for p in raw.split(",") if p.strip()]:
        asc_order = True
        key = part
        if part.startswith("-"):
            asc_order = False
            key = part[1:]
        col = allowed.get(key)
        if col is not None:
            out.append((col, asc_order))
    return out


# ---------- routes ----------
@bp.get("")
@jwt_required()
def list_locations():
    qry = Location.query

    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(
            Location.name.ilike(like),
            Location.unit.ilike(like),
            Location.address.ilike(like),
            Location.formatted_address.ilike(like),
        ))

    allowed = {
        "id": Location.id,
        "name": Location.name,
        "unit": Location.unit,
        "created_at": Location.created_at,
        "last_used_at": Location.last_used_at,
    }
    sorts = _sort_params(allowed)
    for col, asc_order in sorts:
        qry = qry.order_by(asc(col) if asc_order else desc(col))
    if not sorts:
        qry = qry.order_by(asc(Location.unit), asc(Location.name))

    page, size = page_limit()
    total = qry.count()
    items = qry.offset((page - 1) * size).limit(size).all()
    return ok([i.to_dict() for i in items], page=page, size=size, total=total)


@bp.get("/recent")
@jwt_required()
def recent_locations():
    """Most recently used first; ?limit= (default 10)."""
    try:
        limit = max(1, min(int(request.args.get("limit", 10)), 50))
    except ValueError:
        return fail("limit must be integer", 422)
    items = (
        Location.query.filter(Location.last_used_at.isnot(None))
        .order_by(Location.last_used_at.desc())
        .limit(limit)
        .all()
    )
    return ok([i.to_dict() for i in items])


@bp.get("/find")
@jwt_required()
def find_location():
    """?unit=&name= exact match on the natural key."""
    unit = request.args.get("unit")
    name = request.args.get("name")
    if not unit or not name:
        return fail("unit and name are required", 422)
    x = find_by_unit_name(unit, name)
    if not x:
        return fail("Location not found", 404)
    return ok(x.to_dict())


@bp.get("/<int:loc_id>")
@jwt_required()
def get_location(loc_id: int):
    x = db.session.get(Location, loc_id)
    if not x:
        return fail("Location not found", 404)
    return ok(x.to_dict())


@bp.post("")
@requires_roles("admin", "scheduler")
def create_location():
    data = request.get_json(silent=True, force=True) or {}
    obj = _create(data)
    return ok(obj.to_dict(), 201)


@bp.put("/<int:loc_id>")
@requires_roles("admin", "scheduler")
def update_location(loc_id: int):
    obj = db.session.get(Location, loc_id)
    if not obj:
        return fail("Location not found", 404)

    data = request.get_json(silent=True, force=True) or {}

    new_unit, new_name = obj.unit, obj.name
    if "unit" in data:
        new_unit = (data.get("unit") or "").strip()
        if not new_unit:
            return fail("unit cannot be empty", 422)
    if "name" in data:
        new_name = (data.get("name") or "").strip()
        if not new_name:
            return fail("name cannot be empty", 422)

    # uniqueness re-check on (unit, name)
    dup = Location.query.filter(
        Location.id != obj.id,
        Location.unit == new_unit,
        Location.name == new_name,
    ).first()
    if dup:
        return fail("Location with this unit and name already exists", 409)

    if "accuracy" in data:
        try:
            acc = int(data["accuracy"])
        except (TypeError, ValueError):
            return fail("accuracy must be integer", 422)
        if not 0 <= acc <= 100:
            return fail("accuracy must be between 0 and 100", 422)
        obj.accuracy = acc

    obj.unit, obj.name = new_unit, new_name
    for f in ("comment", "address", "latitude", "longitude", "place_id", "formatted_address"):
        if f in data:
            setattr(obj, f, data[f])
    db.session.commit()
    return ok(obj.to_dict())


@bp.post("/<int:loc_id>/use")
@jwt_required()
def use_location(loc_id: int):
    obj = db.session.get(Location, loc_id)
    if not obj:
        return fail("Location not found", 404)
    return ok(mark_used(obj).to_dict())


@bp.delete("/<int:loc_id>")
@requires_roles("admin")
def delete_location(loc_id: int):
    obj = db.session.get(Location, loc_id)
    if not obj:
        return fail("Location not found", 404)
    db.session.delete(obj)
    db.session.commit()
    return ok({"id": loc_id, "deleted": True})
