# roster_api/services/location_service.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from roster_api.common.errors import ConflictError, ValidationError
from roster_api.extensions import db
from roster_api.models.master import Location

_OPTIONAL_FIELDS = (
    "comment", "address", "latitude", "longitude", "place_id", "formatted_address",
)


def find_by_unit_name(unit: str, name: str) -> Optional[Location]:
    return Location.query.filter_by(unit=(unit or "").strip(), name=(name or "").strip()).first()


def _build(data: dict) -> Location:
    unit = (data.get("unit") or "").strip()
    name = (data.get("name") or "").strip()
    if not unit or not name:
        raise ValidationError("unit and name are required")

    accuracy = data.get("accuracy", 100)
    try:
        accuracy = int(accuracy) if accuracy not in (None, "") else 100
    except (TypeError, ValueError):
        raise ValidationError("accuracy must be integer")
    if not 0 <= accuracy <= 100:
        raise ValidationError("accuracy must be between 0 and 100")

    loc = Location(unit=unit, name=name, accuracy=accuracy, last_used_at=datetime.now())
    for f in _OPTIONAL_FIELDS:
        if data.get(f) not in (None, ""):
            setattr(loc, f, data[f])
    return loc


def create_location(data: dict, commit: bool = True) -> Location:
    """Create-without-dedup: an existing (unit, name) is a conflict."""
    loc = _build(data)
    if find_by_unit_name(loc.unit, loc.name):
        raise ConflictError("Location with this unit and name already exists")
    db.session.add(loc)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return loc


def find_or_create_location(data: dict) -> Location:
    """Reuse the location with the same (unit, name) or create it."""
    existing = find_by_unit_name(data.get("unit"), data.get("name"))
    if existing:
        return existing
    return create_location(data)


def mark_used(loc: Location) -> Location:
    loc.last_used_at = datetime.now()
    db.session.commit()
    return loc
