# roster_api/models/shift.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, UniqueConstraint

from roster_api.extensions import db

THEME_PRIMARY = "Primary"
THEME_WARNING = "Warning"
THEME_SUCCESS = "Success"
THEME_DANGER = "Danger"
THEMES = (THEME_PRIMARY, THEME_WARNING, THEME_SUCCESS, THEME_DANGER)

ASSIGN_INDIVIDUAL = "individual"
ASSIGN_TEAM = "team"
ASSIGNMENT_TYPES = (ASSIGN_INDIVIDUAL, ASSIGN_TEAM)

ROLE_ASSIGNED = "assigned"
ROLE_SUPERVISOR = "supervisor"
ROLE_TEAM_MEMBER = "team_member"
ROLES_IN_SHIFT = (ROLE_ASSIGNED, ROLE_SUPERVISOR, ROLE_TEAM_MEMBER)

JOB_NOT_STARTED = "not_started"
JOB_RUNNING = "running"
JOB_PAUSED = "paused"
JOB_ENDED = "ended"
JOB_STATES = (JOB_NOT_STARTED, JOB_RUNNING, JOB_PAUSED, JOB_ENDED)


def _iso(v):
    return v.isoformat() if v else None


class Shift(db.Model):
    """
    One scheduled block of work.

    job_state is the source of truth for the job lifecycle; the boolean /
    timestamp columns next to it are what the calendar reads and are kept
    in step by services.time_tracker.
    """

    __tablename__ = "shifts"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False, index=True)
    theme = db.Column(db.String(16), nullable=False, default=THEME_PRIMARY)
    assignment_type = db.Column(db.String(16), nullable=False, default=ASSIGN_INDIVIDUAL)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    include_location = db.Column(db.Boolean, nullable=False, default=False)
    shift_instructions = db.Column(db.Text, nullable=True)

    # job lifecycle
    job_state = db.Column(db.String(16), nullable=False, default=JOB_NOT_STARTED)
    job_started = db.Column(db.Boolean, nullable=False, default=False)
    job_started_at = db.Column(db.DateTime, nullable=True)
    job_paused = db.Column(db.Boolean, nullable=False, default=False)
    job_ended_at = db.Column(db.DateTime, nullable=True)
    scheduled_in_time = db.Column(db.DateTime, nullable=True)
    scheduled_out_time = db.Column(db.DateTime, nullable=True)
    logged_in_time = db.Column(db.DateTime, nullable=True)
    logged_out_time = db.Column(db.DateTime, nullable=True)

    # travel from the previous shift of the same assignee(s)
    travel_distance_km = db.Column(db.Float, nullable=True)
    travel_duration_min = db.Column(db.Integer, nullable=True)
    travel_from_location = db.Column(db.String(500), nullable=True)
    travel_is_estimate = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    staff_links = db.relationship(
        "ShiftStaff", backref="shift", lazy="selectin",
        cascade="all, delete-orphan",
    )
    team_links = db.relationship(
        "ShiftTeam", backref="shift", lazy="selectin",
        cascade="all, delete-orphan",
    )
    client_links = db.relationship(
        "ShiftClient", backref="shift", lazy="selectin",
        cascade="all, delete-orphan",
    )
    location_links = db.relationship(
        "ShiftLocation", backref="shift", lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ShiftLocation.id",
    )
    pause_entries = db.relationship(
        "ShiftPauseEntry", backref="shift", lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ShiftPauseEntry.seq",
    )
    instructions = db.relationship(
        "ShiftInstruction", backref="shift", lazy="select",
        cascade="all, delete-orphan",
        order_by="ShiftInstruction.id",
    )
    messages = db.relationship(
        "ShiftMessage", backref="shift", lazy="select",
        cascade="all, delete-orphan",
        order_by="ShiftMessage.id",
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_shift_start_before_end"),
        CheckConstraint(
            "theme in ('Primary','Warning','Success','Danger')", name="ck_shift_theme"
        ),
        CheckConstraint(
            "assignment_type in ('individual','team')", name="ck_shift_assignment_type"
        ),
        CheckConstraint(
            "job_state in ('not_started','running','paused','ended')", name="ck_shift_job_state"
        ),
        Index("ix_shift_start_end", "start_time", "end_time"),
    )

    # ---- id-set helpers (used by validator / linker / recurrence) ----
    def staff_ids(self, role: str | None = None) -> set[int]:
        return {
            link.staff_id for link in self.staff_links
            if role is None or link.role_in_shift == role
        }

    def team_ids(self) -> set[int]:
        return {link.team_id for link in self.team_links}

    def client_ids(self) -> set[int]:
        return {link.client_id for link in self.client_links}

    def location_ids(self) -> list[int]:
        return [link.location_id for link in self.location_links]

    def primary_location(self):
        for link in self.location_links:
            if link.location is not None:
                return link.location
        return None

    def to_dict(self, with_relations: bool = True):
        out = {
            "id": self.id,
            "title": self.title,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "theme": self.theme,
            "assignment_type": self.assignment_type,
            "is_published": self.is_published,
            "include_location": self.include_location,
            "shift_instructions": self.shift_instructions,
            "job_state": self.job_state,
            "job_started": self.job_started,
            "job_started_at": _iso(self.job_started_at),
            "job_paused": self.job_paused,
            "job_ended_at": _iso(self.job_ended_at),
            "scheduled_in_time": _iso(self.scheduled_in_time),
            "scheduled_out_time": _iso(self.scheduled_out_time),
            "logged_in_time": _iso(self.logged_in_time),
            "logged_out_time": _iso(self.logged_out_time),
            "pause_log": [p.to_dict() for p in self.pause_entries],
            "travel_distance_km": self.travel_distance_km,
            "travel_duration_min": self.travel_duration_min,
            "travel_from_location": self.travel_from_location,
            "travel_is_estimate": self.travel_is_estimate,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_relations:
            out["staff"] = [
                {
                    "id": link.staff_id,
                    "name": link.staff.name if link.staff else None,
                    "role_in_shift": link.role_in_shift,
                }
                for link in self.staff_links
            ]
            out["staff_ids"] = sorted(self.staff_ids(ROLE_ASSIGNED))
            out["supervisor_ids"] = sorted(self.staff_ids(ROLE_SUPERVISOR))
            out["team_member_ids"] = sorted(self.staff_ids(ROLE_TEAM_MEMBER))
            out["team_ids"] = sorted(self.team_ids())
            out["client_ids"] = sorted(self.client_ids())
            out["locations"] = [
                link.location.to_dict() for link in self.location_links if link.location
            ]
        return out


class ShiftStaff(db.Model):
    __tablename__ = "shift_staff"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    role_in_shift = db.Column(db.String(16), nullable=False, default=ROLE_ASSIGNED)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    staff = db.relationship("Staff", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "role_in_shift in ('assigned','supervisor','team_member')",
            name="ck_shift_staff_role",
        ),
        UniqueConstraint("shift_id", "staff_id", "role_in_shift", name="uq_shift_staff_role"),
    )


class ShiftTeam(db.Model):
    __tablename__ = "shift_teams"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (UniqueConstraint("shift_id", "team_id", name="uq_shift_team"),)


class ShiftClient(db.Model):
    __tablename__ = "shift_clients"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (UniqueConstraint("shift_id", "client_id", name="uq_shift_client"),)


class ShiftLocation(db.Model):
    __tablename__ = "shift_locations"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    location = db.relationship("Location", lazy="joined")


class ShiftPauseEntry(db.Model):
    """One pause interval. resumed_at is NULL while the pause is open."""

    __tablename__ = "shift_pause_entries"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    seq = db.Column(db.Integer, nullable=False)
    paused_at = db.Column(db.DateTime, nullable=False)
    resumed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("shift_id", "seq", name="uq_pause_shift_seq"),
        CheckConstraint(
            "resumed_at is null or resumed_at >= paused_at", name="ck_pause_order"
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.resumed_at is None

    def to_dict(self):
        return {
            "seq": self.seq,
            "paused_at": _iso(self.paused_at),
            "resumed_at": _iso(self.resumed_at),
        }


class ShiftInstruction(db.Model):
    __tablename__ = "shift_instructions"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    instruction_text = db.Column(db.Text, nullable=False)
    instruction_type = db.Column(db.String(16), nullable=False, default="text")  # text / ok / yes_no
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "instruction_text": self.instruction_text,
            "instruction_type": self.instruction_type,
            "created_at": _iso(self.created_at),
        }


class ShiftMessage(db.Model):
    __tablename__ = "shift_messages"

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    message_text = db.Column(db.Text, nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "message_text": self.message_text,
            "staff_id": self.staff_id,
            "created_at": _iso(self.created_at),
        }
