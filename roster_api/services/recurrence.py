# roster_api/services/recurrence.py
"""
Copy one template shift forward onto selected weekdays.

Dates: for each weekday, the first matching date strictly after the
template's date, then every 7 days up to and including close_date. The
union is sorted ascending.

Each date becomes an independent create (validator + insert) run on a
bounded thread pool. One bad date never sinks the others; the caller gets
a RecurrenceReport with per-date outcomes.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, timedelta
import logging
from typing import Dict, Iterable, List, Optional

from flask import current_app

from roster_api.common.errors import APIError, ValidationError
from roster_api.common.paging import parse_date_any
from roster_api.extensions import db
from roster_api.models.shift import ROLE_ASSIGNED, ROLE_SUPERVISOR, ROLE_TEAM_MEMBER, Shift
from roster_api.services.assignment_validator import AssignmentSets
from roster_api.services.location_service import find_or_create_location
from roster_api.services.shift_service import ShiftDraft, clone_window, create_shift, get_shift_or_404

log = logging.getLogger(__name__)

RECURRING_SUFFIX = " (Recurring)"

WEEKDAYS: Dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


@dataclass
class RecurrenceRequest:
    template_shift_id: int
    weekdays: set
    close_date: date


@dataclass
class RecurrenceReport:
    requested: int = 0
    succeeded: int = 0
    failed: int = 0
    dates: List[str] = field(default_factory=list)
    created_ids: List[int] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.succeeded > 0

    def to_dict(self):
        return {
            "requested": self.requested,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "ok": self.ok,
            "dates": self.dates,
            "created_ids": self.created_ids,
            "errors": self.errors,
        }


def weekday_numbers(names: Iterable[str]) -> set[int]:
    picked = {str(n).strip().lower() for n in names or [] if str(n).strip()}
    if not picked:
        raise ValidationError("Select at least one weekday")
    unknown = sorted(n for n in picked if n not in WEEKDAYS)
    if unknown:
        raise ValidationError(
            f"Unknown weekday(s): {', '.join(unknown)}", payload={"unknown": unknown}
        )
    return {WEEKDAYS[n] for n in picked}


def recurrence_dates(template_day: date, weekdays: Iterable[int], close_date: date) -> List[date]:
    out = set()
    for wd in weekdays:
        ahead = (wd - template_day.weekday()) % 7 or 7
        d = template_day + timedelta(days=ahead)
        while d <= close_date:
            out.add(d)
            d += timedelta(days=7)
    return sorted(out)


def parse_request(template_shift_id: int, data: dict) -> RecurrenceRequest:
    raw_close = data.get("close_date") or data.get("closeDate")
    close = parse_date_any(raw_close) if isinstance(raw_close, str) else raw_close
    if not isinstance(close, date):
        raise ValidationError("close_date is required (YYYY-MM-DD)")
    days = data.get("weekdays") or data.get("days") or []
    if isinstance(days, str):
        days = [days]
    return RecurrenceRequest(template_shift_id=template_shift_id, weekdays=set(days), close_date=close)


# ---------- building drafts ----------

def _template_sets(template: Shift, location_id: Optional[int]) -> AssignmentSets:
    return AssignmentSets(
        staff_ids=sorted(template.staff_ids(ROLE_ASSIGNED)),
        supervisor_ids=sorted(template.staff_ids(ROLE_SUPERVISOR)),
        team_member_ids=sorted(template.staff_ids(ROLE_TEAM_MEMBER)),
        client_ids=sorted(template.client_ids()),
        team_ids=sorted(template.team_ids()),
        location_ids=[location_id] if location_id else [],
    )


def _resolve_location(template: Shift) -> Optional[int]:
    """Reuse the (unit, name) match or create it, once for the whole batch."""
    if not template.include_location:
        return None
    loc = template.primary_location()
    if loc is None:
        return None
    resolved = find_or_create_location({
        "unit": loc.unit,
        "name": loc.name,
        "accuracy": loc.accuracy,
        "comment": loc.comment,
        "address": loc.address,
        "latitude": loc.latitude,
        "longitude": loc.longitude,
        "place_id": loc.place_id,
        "formatted_address": loc.formatted_address,
    })
    return resolved.id


def _draft_for(template: Shift, day: date, sets: AssignmentSets) -> ShiftDraft:
    start, end = clone_window(template, day)
    return ShiftDraft(
        title=f"{template.title}{RECURRING_SUFFIX}",
        start_time=start,
        end_time=end,
        theme=template.theme,
        assignment_type=template.assignment_type,
        is_published=template.is_published,
        include_location=template.include_location,
        shift_instructions=template.shift_instructions,
        assignments=sets,
    )


# ---------- execution ----------

def _create_one(draft: ShiftDraft) -> int:
    return create_shift(draft).id


def _create_in_context(app, draft: ShiftDraft) -> int:
    with app.app_context():
        try:
            return _create_one(draft)
        finally:
            db.session.remove()


def _describe(ex: Exception) -> dict:
    if isinstance(ex, APIError):
        return {"code": ex.code, "message": ex.message, "detail": ex.payload}
    return {"code": "INTERNAL", "message": str(ex) or ex.__class__.__name__}


def generate_recurring(req: RecurrenceRequest, max_workers: int | None = None) -> RecurrenceReport:
    template = get_shift_or_404(req.template_shift_id)
    wds = weekday_numbers(req.weekdays)
    days = recurrence_dates(template.start_time.date(), wds, req.close_date)
    if not days:
        raise ValidationError("No valid dates found for the selected days and close date")

    location_id = _resolve_location(template)
    sets = _template_sets(template, location_id)
    drafts = [_draft_for(template, d, sets) for d in days]
    # workers open their own sessions; nothing of ours may stay uncommitted
    db.session.commit()

    if max_workers is None:
        max_workers = int(current_app.config.get("RECURRENCE_MAX_WORKERS", 4))

    report = RecurrenceReport(requested=len(days), dates=[d.isoformat() for d in days])
    outcomes: list[tuple[date, int | None, Exception | None]] = []

    if max_workers <= 1:
        for d, draft in zip(days, drafts):
            try:
                outcomes.append((d, _create_one(draft), None))
            except Exception as ex:
                outcomes.append((d, None, ex))
    else:
        app = current_app._get_current_object()
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="recurrence") as pool:
            futures = [(d, pool.submit(_create_in_context, app, draft)) for d, draft in zip(days, drafts)]
            for d, fut in futures:
                try:
                    outcomes.append((d, fut.result(), None))
                except Exception as ex:
                    outcomes.append((d, None, ex))

    for d, new_id, ex in outcomes:
        if ex is None:
            report.succeeded += 1
            report.created_ids.append(new_id)
        else:
            report.failed += 1
            err = _describe(ex)
            err["date"] = d.isoformat()
            report.errors.append(err)
            log.warning("recurring copy of shift %s for %s failed: %s",
                        template.id, d.isoformat(), err["message"])

    log.info(
        "recurrence for shift %s: requested=%d succeeded=%d failed=%d",
        template.id, report.requested, report.succeeded, report.failed,
    )
    return report
