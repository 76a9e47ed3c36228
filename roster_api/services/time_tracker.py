# roster_api/services/time_tracker.py
"""
Job lifecycle for a single shift.

    not_started --start--> running --pause--> paused
                            ^   |               |
                            |   +----end----+   |
                            +----resume-----|---+
                                            v
                                          ended   (reset -> not_started from anywhere)

job_state is authoritative. The boolean / timestamp columns the calendar
reads are rewritten on every transition so they never disagree with it.
"""
from __future__ import annotations

from datetime import datetime
import logging
from typing import Optional

from roster_api.common.errors import ConflictError, ValidationError
from roster_api.common.paging import parse_dt
from roster_api.extensions import db
from roster_api.models.shift import (
    JOB_ENDED,
    JOB_NOT_STARTED,
    JOB_PAUSED,
    JOB_RUNNING,
    JOB_STATES,
    THEME_PRIMARY,
    THEME_SUCCESS,
    THEME_WARNING,
    Shift,
    ShiftPauseEntry,
)

log = logging.getLogger(__name__)

ACTIONS = ("start", "pause", "resume", "end", "reset")

# action -> (allowed source states, target state)
TRANSITIONS = {
    "start": ((JOB_NOT_STARTED,), JOB_RUNNING),
    "pause": ((JOB_RUNNING,), JOB_PAUSED),
    "resume": ((JOB_PAUSED,), JOB_RUNNING),
    "end": ((JOB_RUNNING, JOB_PAUSED), JOB_ENDED),
    "reset": (JOB_STATES, JOB_NOT_STARTED),
}


# ---------- state effects ----------

def _open_pause(shift: Shift) -> Optional[ShiftPauseEntry]:
    if shift.pause_entries and shift.pause_entries[-1].is_open:
        return shift.pause_entries[-1]
    return None


def _start(shift: Shift, now: datetime):
    shift.job_started_at = now
    shift.logged_in_time = now
    if shift.scheduled_in_time is None:
        shift.scheduled_in_time = shift.start_time
    if shift.scheduled_out_time is None:
        shift.scheduled_out_time = shift.end_time
    shift.theme = THEME_WARNING


def _pause(shift: Shift, now: datetime):
    seq = (shift.pause_entries[-1].seq + 1) if shift.pause_entries else 1
    shift.pause_entries.append(ShiftPauseEntry(seq=seq, paused_at=now))


def _resume(shift: Shift, now: datetime):
    entry = _open_pause(shift)
    if entry is not None:
        entry.resumed_at = now


def _end(shift: Shift, now: datetime):
    _resume(shift, now)
    shift.job_ended_at = now
    shift.logged_out_time = now
    shift.theme = THEME_SUCCESS


def _reset(shift: Shift, now: datetime):
    shift.job_started_at = None
    shift.job_ended_at = None
    shift.logged_in_time = None
    shift.logged_out_time = None
    shift.scheduled_in_time = None
    shift.scheduled_out_time = None
    shift.pause_entries.clear()
    shift.theme = THEME_PRIMARY


_EFFECTS = {
    "start": _start,
    "pause": _pause,
    "resume": _resume,
    "end": _end,
    "reset": _reset,
}


def _sync_flags(shift: Shift):
    """Derive the calendar's booleans from job_state."""
    shift.job_started = shift.job_state in (JOB_RUNNING, JOB_PAUSED)
    shift.job_paused = shift.job_state == JOB_PAUSED


def apply_transition(shift: Shift, action: str, now: datetime | None = None) -> dict:
    """
    Apply one lifecycle action and commit.

    Illegal moves raise ConflictError before anything is touched. A failed
    commit is rolled back and re-raised, except for reset: that one is
    best-effort and returns the cleared state with persisted=False.
    """
    if action not in TRANSITIONS:
        raise ValidationError(f"Unknown job action '{action}'. Use one of: {', '.join(ACTIONS)}")

    sources, target = TRANSITIONS[action]
    current = shift.job_state or JOB_NOT_STARTED
    if current not in sources:
        raise ConflictError(
            f"Cannot {action} a job that is {current.replace('_', ' ')}",
            payload={"state": current, "action": action},
        )

    now = now or datetime.now()
    _EFFECTS[action](shift, now)
    shift.job_state = target
    _sync_flags(shift)

    shift_id = shift.id
    persisted = True
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        if action != "reset":
            raise
        log.warning("reset of shift %s not persisted", shift_id, exc_info=True)
        persisted = False
        # rollback expired the instance; hand back the cleared view regardless
        return _cleared_view(shift_id, persisted)

    out = time_summary(shift)
    out["persisted"] = persisted
    return out


# (attribute, camelCase alias) for the hand-corrected timesheet
TIMESHEET_FIELDS = (
    ("scheduled_in_time", "scheduledInTime"),
    ("scheduled_out_time", "scheduledOutTime"),
    ("logged_in_time", "loggedInTime"),
    ("logged_out_time", "loggedOutTime"),
)


def has_timesheet_keys(data: dict) -> bool:
    return any(k in data for pair in TIMESHEET_FIELDS for k in pair)


def apply_timesheet(shift: Shift, data: dict):
    """
    Correct scheduled/logged in-out times by hand. Keys left out keep their
    value, null clears one. job_state and the pause log are not touched.
    Nothing is committed here.
    """
    values = {}
    for attr, alias in TIMESHEET_FIELDS:
        key = attr if attr in data else alias if alias in data else None
        if key is None:
            values[attr] = getattr(shift, attr)
            continue
        raw = data[key]
        parsed = parse_dt(raw)
        if raw not in (None, "") and parsed is None:
            raise ValidationError(f"{attr} must be an ISO datetime")
        values[attr] = parsed

    for label in ("scheduled", "logged"):
        t_in, t_out = values[f"{label}_in_time"], values[f"{label}_out_time"]
        if t_in is not None and t_out is not None and t_in >= t_out:
            raise ValidationError(f"{label}_in_time must be before {label}_out_time")

    for attr, value in values.items():
        setattr(shift, attr, value)


def edit_timesheet(shift: Shift, data: dict) -> dict:
    apply_timesheet(shift, data)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    log.info("timesheet of shift %s edited", shift.id)
    return time_summary(shift)


def _cleared_view(shift_id, persisted: bool) -> dict:
    return {
        "shift_id": shift_id,
        "job_state": JOB_NOT_STARTED,
        "job_started": False,
        "job_paused": False,
        "job_started_at": None,
        "job_ended_at": None,
        "scheduled_in_time": None,
        "scheduled_out_time": None,
        "logged_in_time": None,
        "logged_out_time": None,
        "pause_log": [],
        "scheduled_length": None,
        "logged_length": None,
        "pause_time": 0,
        "pay_length": None,
        "display": {"scheduled": None, "logged": None, "pause": "0:00", "pay": None},
        "persisted": persisted,
    }


# ---------- metrics ----------

def _iso(v):
    return v.isoformat() if v else None


def _minutes(a: datetime | None, b: datetime | None) -> Optional[int]:
    if a is None or b is None:
        return None
    return int((b - a).total_seconds() // 60)


def scheduled_length(shift: Shift) -> Optional[int]:
    return _minutes(shift.scheduled_in_time, shift.scheduled_out_time)


def logged_length(shift: Shift) -> Optional[int]:
    return _minutes(shift.logged_in_time, shift.logged_out_time)


def pause_time(shift: Shift) -> int:
    """Closed pause intervals only; an open pause is not counted yet."""
    total = 0
    for p in shift.pause_entries:
        if p.resumed_at is not None:
            total += (p.resumed_at - p.paused_at).total_seconds()
    return int(total // 60)


def pay_length(shift: Shift) -> Optional[int]:
    """min(scheduled, logged) when both exist, else whichever does. Pauses are not netted out."""
    sched = scheduled_length(shift)
    logged = logged_length(shift)
    if sched is not None and logged is not None:
        return min(sched, logged)
    return sched if sched is not None else logged


def format_hm(minutes: Optional[int]) -> Optional[str]:
    if minutes is None:
        return None
    minutes = max(int(minutes), 0)
    return f"{minutes // 60}:{minutes % 60:02d}"


def time_summary(shift: Shift) -> dict:
    sched = scheduled_length(shift)
    logged = logged_length(shift)
    paused = pause_time(shift)
    pay = pay_length(shift)
    return {
        "shift_id": shift.id,
        "job_state": shift.job_state,
        "job_started": shift.job_started,
        "job_paused": shift.job_paused,
        "job_started_at": _iso(shift.job_started_at),
        "job_ended_at": _iso(shift.job_ended_at),
        "scheduled_in_time": _iso(shift.scheduled_in_time),
        "scheduled_out_time": _iso(shift.scheduled_out_time),
        "logged_in_time": _iso(shift.logged_in_time),
        "logged_out_time": _iso(shift.logged_out_time),
        "pause_log": [p.to_dict() for p in shift.pause_entries],
        "scheduled_length": sched,
        "logged_length": logged,
        "pause_time": paused,
        "pay_length": pay,
        "display": {
            "scheduled": format_hm(sched),
            "logged": format_hm(logged),
            "pause": format_hm(paused),
            "pay": format_hm(pay),
        },
    }
