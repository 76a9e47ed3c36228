# roster_api/services/assignment_validator.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from roster_api.common.errors import ValidationError
from roster_api.extensions import db
from roster_api.models.master import Client, Location, Team
from roster_api.models.staff import Staff


def _dedupe(ids: Iterable[int] | None) -> List[int]:
    seen, out = set(), []
    for i in ids or []:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


@dataclass
class AssignmentSets:
    """Every id a shift-creation request points at, grouped by category."""

    staff_ids: List[int] = field(default_factory=list)
    supervisor_ids: List[int] = field(default_factory=list)
    team_member_ids: List[int] = field(default_factory=list)
    client_ids: List[int] = field(default_factory=list)
    team_ids: List[int] = field(default_factory=list)
    location_ids: List[int] = field(default_factory=list)

    def __post_init__(self):
        self.staff_ids = _dedupe(self.staff_ids)
        self.supervisor_ids = _dedupe(self.supervisor_ids)
        self.team_member_ids = _dedupe(self.team_member_ids)
        self.client_ids = _dedupe(self.client_ids)
        self.team_ids = _dedupe(self.team_ids)
        self.location_ids = _dedupe(self.location_ids)

    def is_empty(self) -> bool:
        return not any(
            (self.staff_ids, self.supervisor_ids, self.team_member_ids,
             self.client_ids, self.team_ids, self.location_ids)
        )


# (attribute on AssignmentSets, model, label used in messages, detail key)
_CATEGORIES = (
    ("staff_ids", Staff, "staff", "staff"),
    ("supervisor_ids", Staff, "supervisor", "supervisors"),
    ("team_member_ids", Staff, "team member", "team_members"),
    ("client_ids", Client, "client", "clients"),
    ("team_ids", Team, "team", "teams"),
    ("location_ids", Location, "location", "locations"),
)


def find_missing(model, ids: List[int]) -> List[int]:
    """One IN-query per category; returns requested ids with no row, in request order."""
    if not ids:
        return []
    found = {
        row[0]
        for row in db.session.query(model.id).filter(model.id.in_(ids)).all()
    }
    return [i for i in ids if i not in found]


def validate_assignments(sets: AssignmentSets) -> None:
    """
    Gate for shift creation. Checks every non-empty category and raises a
    single ValidationError naming all missing ids per category, e.g.

        Invalid staff IDs: 7, 12. Invalid team IDs: 3

    detail -> {"staff": [7, 12], "teams": [3]}

    Nothing is written here; callers only persist after this returns.
    """
    missing = {}
    messages = []
    for attr, model, label, key in _CATEGORIES:
        absent = find_missing(model, getattr(sets, attr))
        if absent:
            missing[key] = absent
            messages.append(f"Invalid {label} IDs: {', '.join(str(i) for i in absent)}")

    if missing:
        raise ValidationError(". ".join(messages), payload={"missing": missing})

    check_role_overlap(sets.supervisor_ids, sets.team_member_ids)


def check_role_overlap(supervisor_ids: Iterable[int], team_member_ids: Iterable[int]) -> None:
    """Supervisors and team members of one shift are disjoint."""
    overlap = set(supervisor_ids) & set(team_member_ids)
    if overlap:
        raise ValidationError(
            "Staff cannot be both supervisor and team member: "
            + ", ".join(str(i) for i in sorted(overlap)),
            payload={"overlap": sorted(overlap)},
        )
