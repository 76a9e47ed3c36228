import os
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from roster_api import create_app
from roster_api.extensions import db
from roster_api.models.master import Client, Location, Team
from roster_api.models.staff import Staff
from roster_api.services.assignment_validator import AssignmentSets
from roster_api.services.distance_provider import RouteEstimate
from roster_api.common.errors import ProviderError
from roster_api.services.shift_service import ShiftDraft, create_shift


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["RECURRENCE_MAX_WORKERS"] = "1"
    os.environ.pop("DISTANCE_PROVIDER_API_KEY", None)
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def client(app):
    return app.test_client()


def _headers(roles):
    token = create_access_token(identity="1", additional_claims={"roles": roles})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(app):
    return _headers(["admin"])


@pytest.fixture
def cleaner_headers(app):
    return _headers(["cleaner"])


class FakeProvider:
    """Records calls; returns a fixed estimate or raises ProviderError."""

    def __init__(self, km=12.34, minutes=17.6, fail=False):
        self.km = km
        self.minutes = minutes
        self.fail = fail
        self.calls = []

    def route(self, origin, destination):
        self.calls.append((origin, destination))
        if self.fail:
            raise ProviderError("boom")
        return RouteEstimate(distance_km=self.km, duration_min=self.minutes)


@pytest.fixture
def fake_provider(app):
    p = FakeProvider()
    app.extensions["distance_provider"] = p
    return p


# ---------- factories ----------

def make_staff(session, name="Anna", role="cleaner"):
    s = Staff(name=name, role=role)
    session.add(s)
    session.commit()
    return s


def make_client(session, name="Harbour Offices"):
    c = Client(name=name)
    session.add(c)
    session.commit()
    return c


def make_team(session, name="Night Crew"):
    t = Team(name=name)
    session.add(t)
    session.commit()
    return t


def make_location(session, unit="Unit 4", name="Harbour Offices", **kw):
    loc = Location(unit=unit, name=name, **kw)
    session.add(loc)
    session.commit()
    return loc


def make_shift(start, end, title="Office clean", **sets):
    """start/end as datetimes; remaining kwargs are AssignmentSets fields or ShiftDraft flags."""
    flags = {k: sets.pop(k) for k in ("assignment_type", "include_location", "theme",
                                      "is_published", "shift_instructions") if k in sets}
    return create_shift(ShiftDraft(
        title=title,
        start_time=start,
        end_time=end,
        assignments=AssignmentSets(**sets),
        **flags,
    ))


def dt(s):
    return datetime.fromisoformat(s)
