# roster_api/services/shift_service.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
import logging
from typing import Optional

from sqlalchemy import and_, or_

from roster_api.common.errors import ConflictError, NotFoundError, ValidationError
from roster_api.common.paging import as_bool, as_int_list, parse_dt
from roster_api.extensions import db
from roster_api.models.master import Client, Location
from roster_api.models.shift import (
    ASSIGNMENT_TYPES,
    ASSIGN_INDIVIDUAL,
    ROLE_ASSIGNED,
    ROLE_SUPERVISOR,
    ROLE_TEAM_MEMBER,
    THEMES,
    THEME_PRIMARY,
    Shift,
    ShiftClient,
    ShiftInstruction,
    ShiftLocation,
    ShiftMessage,
    ShiftStaff,
    ShiftTeam,
)
from roster_api.models.staff import Staff
from roster_api.services.assignment_validator import AssignmentSets, check_role_overlap, validate_assignments
from roster_api.services.time_tracker import apply_timesheet, has_timesheet_keys

log = logging.getLogger(__name__)

INSTRUCTION_TYPES = ("text", "ok", "yes_no")

# end-of-day cutoff used for inclusive date bounds
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass
class ShiftDraft:
    """A validated-shape request to create one shift (ids not yet checked)."""

    title: str
    start_time: datetime
    end_time: datetime
    theme: str = THEME_PRIMARY
    assignment_type: str = ASSIGN_INDIVIDUAL
    is_published: bool = False
    include_location: bool = False
    shift_instructions: Optional[str] = None
    assignments: AssignmentSets = field(default_factory=AssignmentSets)


# ---------- parsing ----------

def _pick(d: dict, *keys, default=None):
    """Accept snake_case and the calendar's camelCase keys."""
    for k in keys:
        if k in d:
            return d[k]
    return default


def _check_times(start: datetime | None, end: datetime | None):
    if not start or not end:
        raise ValidationError("start_time and end_time are required ISO datetimes")
    if start >= end:
        raise ValidationError("start_time must be before end_time")


def _check_enum(value, allowed, field_name):
    if value not in allowed:
        raise ValidationError(f"{field_name} must be one of: {', '.join(allowed)}")


def _as_bool(value, field_name) -> bool:
    try:
        return as_bool(value, field_name)
    except ValueError as ex:
        raise ValidationError(str(ex))


def parse_assignment_sets(d: dict) -> AssignmentSets:
    try:
        return AssignmentSets(
            staff_ids=as_int_list(_pick(d, "staff_ids", "staffIds"), "staff_ids"),
            supervisor_ids=as_int_list(_pick(d, "supervisor_ids", "supervisorIds"), "supervisor_ids"),
            team_member_ids=as_int_list(_pick(d, "team_member_ids", "teamMemberIds"), "team_member_ids"),
            client_ids=as_int_list(_pick(d, "client_ids", "clientIds"), "client_ids"),
            team_ids=as_int_list(_pick(d, "team_ids", "teamIds"), "team_ids"),
            location_ids=as_int_list(_pick(d, "location_ids", "locationIds"), "location_ids"),
        )
    except ValueError as ex:
        raise ValidationError(str(ex))


def parse_shift_payload(d: dict) -> ShiftDraft:
    title = (_pick(d, "title") or "").strip()
    if not title:
        raise ValidationError("Title is required")

    start = parse_dt(_pick(d, "start_time", "startTime"))
    end = parse_dt(_pick(d, "end_time", "endTime"))
    _check_times(start, end)

    theme = _pick(d, "theme", default=THEME_PRIMARY) or THEME_PRIMARY
    _check_enum(theme, THEMES, "theme")
    assignment_type = _pick(d, "assignment_type", "assignmentType", default=ASSIGN_INDIVIDUAL) or ASSIGN_INDIVIDUAL
    _check_enum(assignment_type, ASSIGNMENT_TYPES, "assignment_type")

    return ShiftDraft(
        title=title,
        start_time=start,
        end_time=end,
        theme=theme,
        assignment_type=assignment_type,
        is_published=_as_bool(_pick(d, "is_published", "isPublished", default=False), "is_published"),
        include_location=_as_bool(_pick(d, "include_location", "includeLocation", default=False), "include_location"),
        shift_instructions=_pick(d, "shift_instructions", "shiftInstructions"),
        assignments=parse_assignment_sets(d),
    )


# ---------- reads ----------

def get_shift_or_404(shift_id: int) -> Shift:
    s = db.session.get(Shift, shift_id)
    if not s:
        raise NotFoundError("Shift not found")
    return s


def list_shifts(start_date: date | None = None, end_date: date | None = None):
    """Shifts whose start falls in [start_date 00:00, end_date 23:59:59.999], newest first."""
    q = Shift.query
    if start_date:
        q = q.filter(Shift.start_time >= datetime.combine(start_date, time.min))
    if end_date:
        q = q.filter(Shift.start_time <= datetime.combine(end_date, END_OF_DAY))
    return q.order_by(Shift.start_time.desc(), Shift.id.desc())


def shifts_touching_day(day: date, exclude_id: int | None = None):
    """Shifts that start or end on the given calendar date."""
    lo = datetime.combine(day, time.min)
    hi = datetime.combine(day, END_OF_DAY)
    q = Shift.query.filter(
        or_(
            and_(Shift.start_time >= lo, Shift.start_time <= hi),
            and_(Shift.end_time >= lo, Shift.end_time <= hi),
        )
    )
    if exclude_id is not None:
        q = q.filter(Shift.id != exclude_id)
    return q.all()


# ---------- writes ----------

def _attach_assignments(shift: Shift, sets: AssignmentSets):
    for sid in sets.staff_ids:
        shift.staff_links.append(ShiftStaff(staff_id=sid, role_in_shift=ROLE_ASSIGNED))
    for sid in sets.supervisor_ids:
        shift.staff_links.append(ShiftStaff(staff_id=sid, role_in_shift=ROLE_SUPERVISOR))
    for sid in sets.team_member_ids:
        shift.staff_links.append(ShiftStaff(staff_id=sid, role_in_shift=ROLE_TEAM_MEMBER))
    for cid in sets.client_ids:
        shift.client_links.append(ShiftClient(client_id=cid))
    for tid in sets.team_ids:
        shift.team_links.append(ShiftTeam(team_id=tid))
    for lid in sets.location_ids:
        shift.location_links.append(ShiftLocation(location_id=lid))


def create_shift(draft: ShiftDraft) -> Shift:
    """
    Validate every referenced id, then write the shift and all of its
    relation rows in one transaction. A failed validation writes nothing.
    """
    _check_times(draft.start_time, draft.end_time)
    validate_assignments(draft.assignments)
    sets = draft.assignments
    _check_roles(draft.assignment_type, sets.supervisor_ids, sets.team_member_ids, sets.team_ids)

    shift = Shift(
        title=draft.title,
        start_time=draft.start_time,
        end_time=draft.end_time,
        theme=draft.theme,
        assignment_type=draft.assignment_type,
        is_published=draft.is_published,
        include_location=draft.include_location,
        shift_instructions=draft.shift_instructions,
    )
    _attach_assignments(shift, draft.assignments)

    text = (draft.shift_instructions or "").strip()
    if text:
        shift.instructions.append(ShiftInstruction(instruction_text=text, instruction_type="text"))

    db.session.add(shift)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return shift


def _has_assignments(shift: Shift) -> bool:
    return bool(shift.staff_links or shift.team_links)


def _check_roles(assignment_type, supervisor_ids, team_member_ids, team_ids):
    if assignment_type == ASSIGN_INDIVIDUAL and (supervisor_ids or team_member_ids or team_ids):
        raise ValidationError(
            "Individual shifts take staff_ids only; supervisors, team members and teams need a team shift"
        )
    check_role_overlap(supervisor_ids, team_member_ids)


def _resulting_roles(shift: Shift, d: dict, sets: AssignmentSets):
    """Role sets the shift will hold after the update: payload where given, current rows otherwise."""

    def given(*keys):
        return any(k in d for k in keys)

    def current(role):
        return [l.staff_id for l in shift.staff_links if l.role_in_shift == role]

    supervisors = sets.supervisor_ids if given("supervisor_ids", "supervisorIds") else current(ROLE_SUPERVISOR)
    members = sets.team_member_ids if given("team_member_ids", "teamMemberIds") else current(ROLE_TEAM_MEMBER)
    teams = sets.team_ids if given("team_ids", "teamIds") else [l.team_id for l in shift.team_links]
    return supervisors, members, teams


def update_shift(shift: Shift, d: dict) -> Shift:
    """
    Partial update. Job state is not writable here, it moves only through
    the time tracker; scheduled/logged in-out times may be corrected.
    assignment_type is frozen once the shift has staff or team rows. Any
    rejection leaves the row untouched.
    """
    try:
        _apply_update(shift, d)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return shift


def _apply_update(shift: Shift, d: dict):
    start = shift.start_time
    end = shift.end_time
    if any(k in d for k in ("start_time", "startTime")):
        start = parse_dt(_pick(d, "start_time", "startTime"))
    if any(k in d for k in ("end_time", "endTime")):
        end = parse_dt(_pick(d, "end_time", "endTime"))
    _check_times(start, end)

    if "title" in d:
        title = (d.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required")
        shift.title = title

    if "theme" in d:
        _check_enum(d["theme"], THEMES, "theme")
        shift.theme = d["theme"]

    new_type = _pick(d, "assignment_type", "assignmentType")
    if new_type is not None and new_type != shift.assignment_type:
        _check_enum(new_type, ASSIGNMENT_TYPES, "assignment_type")
        if _has_assignments(shift):
            raise ConflictError("assignment_type cannot change once the shift has assignments")
        shift.assignment_type = new_type

    for keys, attr in (
        (("is_published", "isPublished"), "is_published"),
        (("include_location", "includeLocation"), "include_location"),
    ):
        if any(k in d for k in keys):
            setattr(shift, attr, _as_bool(_pick(d, *keys), attr))
    if any(k in d for k in ("shift_instructions", "shiftInstructions")):
        shift.shift_instructions = _pick(d, "shift_instructions", "shiftInstructions")

    shift.start_time, shift.end_time = start, end

    if has_timesheet_keys(d):
        apply_timesheet(shift, d)

    if any(k in d for k in _RELATION_KEYS):
        sets = parse_assignment_sets(d)
        validate_assignments(sets)
        _check_roles(shift.assignment_type, *_resulting_roles(shift, d, sets))
        _replace_relations(shift, d, sets)


# (payload keys, collection, id field, role_in_shift or None, AssignmentSets attribute)
_RELATIONS = (
    (("staff_ids", "staffIds"), "staff_links", "staff_id", ROLE_ASSIGNED, "staff_ids"),
    (("supervisor_ids", "supervisorIds"), "staff_links", "staff_id", ROLE_SUPERVISOR, "supervisor_ids"),
    (("team_member_ids", "teamMemberIds"), "staff_links", "staff_id", ROLE_TEAM_MEMBER, "team_member_ids"),
    (("client_ids", "clientIds"), "client_links", "client_id", None, "client_ids"),
    (("team_ids", "teamIds"), "team_links", "team_id", None, "team_ids"),
    (("location_ids", "locationIds"), "location_links", "location_id", None, "location_ids"),
)
_RELATION_KEYS = tuple(k for keys, *_ in _RELATIONS for k in keys)
_LINK_MODELS = {
    "staff_links": ShiftStaff,
    "client_links": ShiftClient,
    "team_links": ShiftTeam,
    "location_links": ShiftLocation,
}


def _replace_relations(shift: Shift, d: dict, sets: AssignmentSets):
    """Replace only the categories present in the payload; others stay untouched."""
    touched = [r for r in _RELATIONS if any(k in d for k in r[0])]
    for _, coll, _, role, _ in touched:
        links = getattr(shift, coll)
        for link in [l for l in links if role is None or l.role_in_shift == role]:
            links.remove(link)
    # deletes must reach the DB before re-inserting rows under the same unique keys
    db.session.flush()
    for _, coll, id_field, role, attr in touched:
        model = _LINK_MODELS[coll]
        for i in getattr(sets, attr):
            kwargs = {id_field: i}
            if role is not None:
                kwargs["role_in_shift"] = role
            getattr(shift, coll).append(model(**kwargs))


def delete_shift(shift: Shift):
    shift_id = shift.id
    db.session.delete(shift)
    db.session.commit()
    log.info("shift %s deleted", shift_id)


def remove_team(shift: Shift, team_id: int):
    link = next((l for l in shift.team_links if l.team_id == team_id), None)
    if not link:
        raise NotFoundError("Team not assigned to this shift")
    shift.team_links.remove(link)
    db.session.commit()


def set_client(shift: Shift, client_id: int | None):
    """Replace the shift's client with one client (or clear it when client_id is None)."""
    if client_id and not db.session.get(Client, client_id):
        raise NotFoundError("Client not found")
    shift.client_links.clear()
    db.session.flush()
    if client_id:
        shift.client_links.append(ShiftClient(client_id=client_id))
    db.session.commit()


def set_location(shift: Shift, location_id: int):
    if not location_id:
        raise ValidationError("Location ID is required")
    if not db.session.get(Location, location_id):
        raise NotFoundError("Location not found")
    shift.location_links.clear()
    shift.location_links.append(ShiftLocation(location_id=location_id))
    db.session.commit()


def add_instruction(shift: Shift, text: str, instruction_type: str = "text") -> ShiftInstruction:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Instruction text is required")
    _check_enum(instruction_type, INSTRUCTION_TYPES, "instruction_type")
    row = ShiftInstruction(shift_id=shift.id, instruction_text=text, instruction_type=instruction_type)
    db.session.add(row)
    db.session.commit()
    return row


def add_message(shift: Shift, text: str, staff_id: int | None = None) -> ShiftMessage:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message text is required")
    if staff_id is not None and not db.session.get(Staff, staff_id):
        raise NotFoundError("Staff not found")
    row = ShiftMessage(shift_id=shift.id, message_text=text, staff_id=staff_id)
    db.session.add(row)
    db.session.commit()
    return row


def clone_window(template: Shift, day: date) -> tuple[datetime, datetime]:
    """Same wall-clock start and same duration as the template, on another date."""
    start = datetime.combine(day, template.start_time.time())
    return start, start + (template.end_time - template.start_time)
