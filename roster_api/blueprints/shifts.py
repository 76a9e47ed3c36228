# roster_api/blueprints/shifts.py
from __future__ import annotations

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from roster_api.common.auth import requires_roles
from roster_api.common.errors import ValidationError
from roster_api.common.http import ok, fail
from roster_api.common.paging import page_limit, parse_date_any
from roster_api.services import shift_service as shifts
from roster_api.services.cancellation import cancel_shift
from roster_api.services.recurrence import generate_recurring, parse_request
from roster_api.services.time_tracker import ACTIONS, apply_transition, edit_timesheet, time_summary
from roster_api.services.travel_linker import compute_travel, set_manual_travel

bp = Blueprint("shifts", __name__, url_prefix="/api/v1/shifts")

WRITE_ROLES = ("admin", "scheduler")


def _json() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def _date_arg(*names):
    for n in names:
        raw = request.args.get(n)
        if raw:
            d = parse_date_any(raw)
            if not d:
                raise ValidationError(f"{n} must be YYYY-MM-DD")
            return d
    return None


# ---------- CRUD ----------

@bp.get("")
@jwt_required()
def list_shifts():
    """
    ?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD (end inclusive to 23:59:59.999)
    &page=&size=
    """
    start = _date_arg("startDate", "start_date")
    end = _date_arg("endDate", "end_date")
    if start and end and end < start:
        return fail("endDate must be on or after startDate", 422)

    q = shifts.list_shifts(start, end)
    page, size = page_limit()
    total = q.count()
    items = q.offset((page - 1) * size).limit(size).all()
    return ok([s.to_dict() for s in items], page=page, size=size, total=total)


@bp.get("/<int:shift_id>")
@jwt_required()
def get_shift(shift_id: int):
    return ok(shifts.get_shift_or_404(shift_id).to_dict())


@bp.post("")
@requires_roles(*WRITE_ROLES)
def create_shift():
    draft = shifts.parse_shift_payload(_json())
    s = shifts.create_shift(draft)
    return ok(s.to_dict(), 201)


@bp.put("/<int:shift_id>")
@bp.patch("/<int:shift_id>")
@requires_roles(*WRITE_ROLES)
def update_shift(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    shifts.update_shift(s, _json())
    return ok(s.to_dict())


@bp.delete("/<int:shift_id>")
@requires_roles(*WRITE_ROLES)
def delete_shift(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    shifts.delete_shift(s)
    return ok({"id": shift_id, "deleted": True})


# ---------- job lifecycle ----------

@bp.post("/<int:shift_id>/job/<action>")
@jwt_required()
def job_action(shift_id: int, action: str):
    if action not in ACTIONS:
        return fail(f"Unknown job action '{action}'", 404)
    s = shifts.get_shift_or_404(shift_id)
    return ok(apply_transition(s, action))


@bp.get("/<int:shift_id>/time-summary")
@jwt_required()
def get_time_summary(shift_id: int):
    return ok(time_summary(shifts.get_shift_or_404(shift_id)))


@bp.put("/<int:shift_id>/timesheet")
@requires_roles(*WRITE_ROLES)
def edit_shift_timesheet(shift_id: int):
    """Body: any of scheduled_in_time, scheduled_out_time, logged_in_time, logged_out_time."""
    s = shifts.get_shift_or_404(shift_id)
    return ok(edit_timesheet(s, _json()))


# ---------- travel ----------

@bp.post("/<int:shift_id>/travel")
@jwt_required()
def calculate_travel(shift_id: int):
    """Body (optional): {"location": "<address overriding the shift's own>"}"""
    s = shifts.get_shift_or_404(shift_id)
    data = _json()
    result = compute_travel(s, location=data.get("location"))
    return ok(result.to_dict())


@bp.put("/<int:shift_id>/travel")
@requires_roles(*WRITE_ROLES)
def manual_travel(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    return ok(set_manual_travel(s, _json()).to_dict())


# ---------- recurrence / cancel ----------

@bp.post("/<int:shift_id>/repeat")
@requires_roles(*WRITE_ROLES)
def repeat_shift(shift_id: int):
    """Body: {"weekdays": ["Monday", "Wednesday"], "close_date": "YYYY-MM-DD"}"""
    req = parse_request(shift_id, _json())
    report = generate_recurring(req)
    if not report.ok:
        return fail(
            "No recurring shifts could be created",
            422,
            code="RECURRENCE_FAILED",
            detail=report.to_dict(),
        )
    status = 201 if report.failed == 0 else 207
    return ok(report.to_dict(), status)


@bp.post("/<int:shift_id>/cancel")
@requires_roles(*WRITE_ROLES)
def cancel(shift_id: int):
    s = cancel_shift(shift_id)
    current_app.logger.info("shift %s cancelled", shift_id)
    return ok(s.to_dict())


# ---------- relation edits ----------

@bp.delete("/<int:shift_id>/teams/<int:team_id>")
@requires_roles(*WRITE_ROLES)
def remove_team(shift_id: int, team_id: int):
    s = shifts.get_shift_or_404(shift_id)
    shifts.remove_team(s, team_id)
    return ok(s.to_dict())


@bp.put("/<int:shift_id>/client")
@requires_roles(*WRITE_ROLES)
def set_client(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    raw = _json().get("client_id", _json().get("clientId"))
    try:
        client_id = int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return fail("client_id must be integer", 422)
    shifts.set_client(s, client_id)
    return ok(s.to_dict())


@bp.put("/<int:shift_id>/location")
@requires_roles(*WRITE_ROLES)
def set_location(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    raw = _json().get("location_id", _json().get("locationId"))
    try:
        location_id = int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return fail("location_id must be integer", 422)
    shifts.set_location(s, location_id)
    return ok(s.to_dict())


@bp.get("/<int:shift_id>/instructions")
@jwt_required()
def list_instructions(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    return ok([i.to_dict() for i in s.instructions])


@bp.post("/<int:shift_id>/instructions")
@requires_roles(*WRITE_ROLES)
def add_instruction(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    data = _json()
    row = shifts.add_instruction(
        s,
        data.get("instruction_text") or data.get("text"),
        data.get("instruction_type") or "text",
    )
    return ok(row.to_dict(), 201)


@bp.get("/<int:shift_id>/messages")
@jwt_required()
def list_messages(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    return ok([m.to_dict() for m in s.messages])


@bp.post("/<int:shift_id>/messages")
@jwt_required()
def add_message(shift_id: int):
    s = shifts.get_shift_or_404(shift_id)
    data = _json()
    staff_id = data.get("staff_id")
    try:
        staff_id = int(staff_id) if staff_id not in (None, "") else None
    except (TypeError, ValueError):
        return fail("staff_id must be integer", 422)
    row = shifts.add_message(s, data.get("message_text") or data.get("text"), staff_id)
    return ok(row.to_dict(), 201)
