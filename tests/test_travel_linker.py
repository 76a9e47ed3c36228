import pytest

from roster_api.common.errors import ValidationError
from roster_api.services.time_tracker import apply_transition
from roster_api.services.travel_linker import (
    NO_PREVIOUS_LOCATION,
    NO_PREVIOUS_SHIFT,
    compute_travel,
    find_previous_shift,
    set_manual_travel,
)

from conftest import FakeProvider, dt, make_location, make_shift, make_staff, make_team


@pytest.fixture
def places(session):
    x = make_location(session, unit="Unit 4", name="Harbour Offices",
                      formatted_address="4 Quay St, Sydney NSW 2000", address="4 Quay St")
    y = make_location(session, unit="Level 2", name="Greenview Clinic", address="18 Park Rd, Parramatta")
    return x, y


def test_location_string_precedence(session):
    assert make_location(session, unit="U1", name="A", formatted_address="F", address="B").display_string() == "F"
    assert make_location(session, unit="U2", name="A", address="B").display_string() == "B"
    assert make_location(session, unit="U3", name="A").display_string() == "U3 A"


def test_individual_previous_shift(session, places, fake_provider):
    x, y = places
    a = make_staff(session, "Anna")
    s1 = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    assert find_previous_shift(s2).id == s1.id

    res = compute_travel(s2)
    assert res.previous_shift_id == s1.id
    assert res.from_location == "4 Quay St, Sydney NSW 2000"
    assert res.distance_km == 12.3
    assert res.duration_min == 18
    assert res.is_estimate is False
    assert fake_provider.calls == [("4 Quay St, Sydney NSW 2000", "18 Park Rd, Parramatta")]

    # job not started: nothing stored
    assert res.persisted is False
    assert s2.travel_distance_km is None


def test_persisted_once_started(session, places, fake_provider):
    x, y = places
    a = make_staff(session, "Anna")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])
    apply_transition(s2, "start", now=dt("2024-01-03T13:00"))

    res = compute_travel(s2)
    assert res.persisted is True
    assert s2.travel_distance_km == 12.3
    assert s2.travel_duration_min == 18
    assert s2.travel_from_location == "4 Quay St, Sydney NSW 2000"
    assert s2.travel_is_estimate is False


def test_same_place_is_zero(session, fake_provider):
    a = make_staff(session, "Anna")
    x = make_location(session, unit="U1", name="Site", address="4 Quay St")
    y = make_location(session, unit="U2", name="Site", address="  4 QUAY st ")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    res = compute_travel(s2)
    assert (res.distance_km, res.duration_min) == (0.0, 0)
    assert fake_provider.calls == []


def test_no_previous_shift(session, places, fake_provider):
    x, _ = places
    a = make_staff(session, "Anna")
    b = make_staff(session, "Ben")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[b.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[x.id])

    res = compute_travel(s2)
    assert res.from_location == NO_PREVIOUS_SHIFT
    assert res.distance_km is None and res.duration_min is None
    assert fake_provider.calls == []


def test_other_days_and_overlaps_ignored(session, places, fake_provider):
    x, y = places
    a = make_staff(session, "Anna")
    make_shift(dt("2024-01-02T09:00"), dt("2024-01-02T12:00"), staff_ids=[a.id], location_ids=[x.id])
    # ends after the current shift starts
    make_shift(dt("2024-01-03T11:00"), dt("2024-01-03T14:00"), staff_ids=[a.id], location_ids=[x.id])
    s = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    assert find_previous_shift(s) is None


def test_latest_end_wins(session, places, fake_provider):
    x, y = places
    a = make_staff(session, "Anna")
    make_shift(dt("2024-01-03T06:00"), dt("2024-01-03T08:00"), staff_ids=[a.id], location_ids=[y.id])
    later = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T11:30"), staff_ids=[a.id], location_ids=[x.id])
    s = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    assert find_previous_shift(s).id == later.id


def test_previous_without_location(session, places, fake_provider):
    _, y = places
    a = make_staff(session, "Anna")
    s1 = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    res = compute_travel(s2)
    assert res.from_location == NO_PREVIOUS_LOCATION
    assert res.previous_shift_id == s1.id
    assert fake_provider.calls == []


def test_provider_failure_falls_back(app, session, places):
    x, y = places
    app.extensions["distance_provider"] = FakeProvider(fail=True)
    a = make_staff(session, "Anna")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    res = compute_travel(s2)
    assert (res.distance_km, res.duration_min) == (5.0, 10)
    assert res.is_estimate is True


def test_missing_provider_falls_back(app, session, places):
    x, y = places
    app.extensions["distance_provider"] = None
    a = make_staff(session, "Anna")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    res = compute_travel(s2)
    assert (res.distance_km, res.duration_min, res.is_estimate) == (5.0, 10, True)


def test_location_override(session, places, fake_provider):
    x, y = places
    a = make_staff(session, "Anna")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    compute_travel(s2, location="1 Other Rd")
    assert fake_provider.calls[-1][1] == "1 Other Rd"


def test_team_requires_exact_sets(session, places, fake_provider):
    x, y = places
    sup = make_staff(session, "Sam")
    m1 = make_staff(session, "Mia")
    m2 = make_staff(session, "Max")
    t = make_team(session)

    exact = make_shift(dt("2024-01-03T07:00"), dt("2024-01-03T09:00"), assignment_type="team",
                       team_ids=[t.id], supervisor_ids=[sup.id], team_member_ids=[m1.id],
                       location_ids=[x.id])
    # superset of members: not the same crew
    make_shift(dt("2024-01-03T09:30"), dt("2024-01-03T11:00"), assignment_type="team",
               team_ids=[t.id], supervisor_ids=[sup.id], team_member_ids=[m1.id, m2.id],
               location_ids=[x.id])
    # individual shift for the supervisor does not count for a team shift
    make_shift(dt("2024-01-03T11:00"), dt("2024-01-03T12:00"), staff_ids=[sup.id], location_ids=[x.id])

    cur = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T15:00"), assignment_type="team",
                     team_ids=[t.id], supervisor_ids=[sup.id], team_member_ids=[m1.id],
                     location_ids=[y.id])

    assert find_previous_shift(cur).id == exact.id


def test_manual_override(session, places):
    _, y = places
    a = make_staff(session, "Anna")
    s = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    res = set_manual_travel(s, {"distance_km": "7.5", "duration_min": 14})
    assert (s.travel_distance_km, s.travel_duration_min) == (7.5, 14)
    assert s.travel_from_location == "Manual entry"
    assert res.persisted is True

    with pytest.raises(ValidationError):
        set_manual_travel(s, {"distance_km": -1})


def test_current_shift_without_location(session, places, fake_provider):
    x, _ = places
    a = make_staff(session, "Anna")
    s1 = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id])

    res = compute_travel(s2)
    assert (res.distance_km, res.duration_min) == (0.0, 0)
    assert res.from_location == "4 Quay St, Sydney NSW 2000"
    assert res.previous_shift_id == s1.id
    assert res.persisted is False
    assert fake_provider.calls == []

    apply_transition(s2, "start", now=dt("2024-01-03T13:00"))
    res = compute_travel(s2)
    assert res.persisted is True
    assert (s2.travel_distance_km, s2.travel_duration_min) == (0.0, 0)
    assert s2.travel_from_location == "4 Quay St, Sydney NSW 2000"
