# roster_api/services/travel_linker.py
"""
Travel from the assignee's previous job on the same day.

  1) candidates  -> other shifts starting or ending on the current shift's date
  2) match       -> individual: any shared staff id
                    team: same team ids, same supervisors, same team members
  3) previous    -> matching shift with the latest end <= current start
  4) distance    -> provider(previous location -> current location), or fallback

Results are only written back once the job has been started.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
import logging
from typing import Optional

from flask import current_app

from roster_api.common.errors import ProviderError, ValidationError
from roster_api.extensions import db
from roster_api.models.shift import (
    ASSIGN_INDIVIDUAL,
    ASSIGN_TEAM,
    ROLE_SUPERVISOR,
    ROLE_TEAM_MEMBER,
    Shift,
)
from roster_api.services.shift_service import shifts_touching_day

log = logging.getLogger(__name__)

NO_PREVIOUS_SHIFT = "No previous shift found"
NO_PREVIOUS_LOCATION = "Previous location not available"
MANUAL_ENTRY = "Manual entry"


@dataclass
class TravelResult:
    distance_km: Optional[float]
    duration_min: Optional[int]
    from_location: str
    previous_shift_id: Optional[int] = None
    is_estimate: bool = False
    persisted: bool = False

    def to_dict(self):
        return asdict(self)


def location_string(shift: Shift) -> str:
    loc = shift.primary_location()
    return loc.display_string() if loc else ""


def _same_place(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()


def _matches(current: Shift, other: Shift) -> bool:
    if current.assignment_type == ASSIGN_TEAM:
        if other.assignment_type != ASSIGN_TEAM:
            return False
        return (
            current.team_ids() == other.team_ids()
            and current.staff_ids(ROLE_SUPERVISOR) == other.staff_ids(ROLE_SUPERVISOR)
            and current.staff_ids(ROLE_TEAM_MEMBER) == other.staff_ids(ROLE_TEAM_MEMBER)
        )
    if current.assignment_type == ASSIGN_INDIVIDUAL:
        return bool(current.staff_ids() & other.staff_ids())
    return False


def find_previous_shift(shift: Shift) -> Optional[Shift]:
    pool = shifts_touching_day(shift.start_time.date(), exclude_id=shift.id)
    earlier = [
        s for s in pool
        if s.end_time <= shift.start_time and _matches(shift, s)
    ]
    if not earlier:
        return None
    # latest end wins; id breaks ties so the choice is stable
    return max(earlier, key=lambda s: (s.end_time, s.id))


def _fallback(cfg) -> tuple[float, int]:
    return float(cfg.get("TRAVEL_FALLBACK_KM", 5.0)), int(cfg.get("TRAVEL_FALLBACK_MIN", 10))


def _measure(origin: str, destination: str, provider) -> tuple[float, int, bool]:
    """(km, minutes, is_estimate). Same place short-circuits to zero."""
    if _same_place(origin, destination):
        return 0.0, 0, False

    cfg = current_app.config
    if provider is None:
        log.warning("distance provider unavailable; using fallback for %r -> %r", origin, destination)
        km, mins = _fallback(cfg)
        return km, mins, True

    try:
        est = provider.route(origin, destination)
    except ProviderError as ex:
        log.warning("distance lookup failed (%s); using fallback", ex.message)
        km, mins = _fallback(cfg)
        return km, mins, True

    return round(est.distance_km, 1), int(round(est.duration_min)), False


def compute_travel(shift: Shift, location: str | None = None, provider=None, persist: bool = True) -> TravelResult:
    """
    location overrides the current shift's own location string.
    provider defaults to app.extensions["distance_provider"].
    """
    if provider is None:
        provider = current_app.extensions.get("distance_provider")

    previous = find_previous_shift(shift)
    if previous is None:
        return TravelResult(None, None, NO_PREVIOUS_SHIFT)

    origin = location_string(previous)
    if not origin:
        return TravelResult(None, None, NO_PREVIOUS_LOCATION, previous_shift_id=previous.id)

    destination = (location or "").strip() or location_string(shift)
    if destination:
        km, mins, estimate = _measure(origin, destination, provider)
    else:
        # nowhere to route to: record a zero leg from the previous site
        km, mins, estimate = 0.0, 0, False
    result = TravelResult(km, mins, origin, previous_shift_id=previous.id, is_estimate=estimate)

    if persist and shift.job_started_at is not None:
        shift.travel_distance_km = km
        shift.travel_duration_min = mins
        shift.travel_from_location = origin
        shift.travel_is_estimate = estimate
        db.session.commit()
        result.persisted = True
    return result


def set_manual_travel(shift: Shift, data: dict) -> TravelResult:
    """User-entered values replace whatever was computed."""
    try:
        km = float(data.get("distance_km", data.get("travelDistance")) or 0)
        mins = int(data.get("duration_min", data.get("travelDuration")) or 0)
    except (TypeError, ValueError):
        raise ValidationError("distance_km must be a number and duration_min an integer")
    if km < 0 or mins < 0:
        raise ValidationError("Travel distance and duration cannot be negative")

    origin = (data.get("from_location") or data.get("travelFromLocation") or "").strip() or MANUAL_ENTRY

    shift.travel_distance_km = km
    shift.travel_duration_min = mins
    shift.travel_from_location = origin
    shift.travel_is_estimate = False
    db.session.commit()
    return TravelResult(km, mins, origin, persisted=True)
