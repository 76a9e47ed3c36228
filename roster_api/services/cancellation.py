# roster_api/services/cancellation.py
from __future__ import annotations

import logging

from flask import current_app

from roster_api.common.errors import NotFoundError
from roster_api.extensions import db
from roster_api.models.shift import ROLE_ASSIGNED, THEME_DANGER, Shift, ShiftStaff
from roster_api.models.staff import Staff
from roster_api.services.shift_service import get_shift_or_404

log = logging.getLogger(__name__)

DEFAULT_COVER_NAME = "Cover"


def cover_staff_name() -> str:
    return current_app.config.get("COVER_STAFF_NAME") or DEFAULT_COVER_NAME


def find_cover_staff() -> Staff | None:
    return Staff.query.filter_by(name=cover_staff_name()).order_by(Staff.id).first()


def cancel_shift(shift_id: int) -> Shift:
    """
    Hand the shift to the Cover placeholder: every staff and team row goes,
    one 'assigned' row for Cover comes in, theme turns Danger. One commit.
    Nothing changes if the shift or the Cover staff is missing.
    """
    shift = get_shift_or_404(shift_id)
    cover = find_cover_staff()
    if cover is None:
        raise NotFoundError(
            f"{cover_staff_name()} staff not found. Please create a {cover_staff_name()} staff member first."
        )

    shift.staff_links.clear()
    shift.team_links.clear()
    # clear before re-adding: cover may already be on the shift under the same role
    db.session.flush()
    shift.staff_links.append(ShiftStaff(staff_id=cover.id, role_in_shift=ROLE_ASSIGNED))
    shift.theme = THEME_DANGER
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    log.info("shift %s cancelled and assigned to staff %s", shift.id, cover.id)
    return shift
