import datetime

import pytest

from models import AdvisoryType, DayOfWeek, Role, Status
from parser_api import (
    extract_matricula,
    extract_observations,
    merge_advisory,
    parse_advisory,
    parse_calendar_date,
    parse_professor,
    parse_slot,
    parse_status,
    parse_user,
    parse_window,
)


@pytest.mark.parametrize("value, expected", [
    ("2025-03-10", datetime.date(2025, 3, 10)),
    ("2025-03-10T00:00:00.000Z", datetime.date(2025, 3, 10)),
    ("2025-03-10T05:00:00+05:00", datetime.date(2025, 3, 10)),
    ("2025-03-10T23:30:00-02:00", datetime.date(2025, 3, 11)),
    ("", None),
    (None, None),
    ("mañana", None),
])
def test_parse_calendar_date(value, expected):
    assert parse_calendar_date(value) == expected


@pytest.mark.parametrize("raw, expected", [
    ({"student": {"studentCode": "A1", "matricula": "B2"}}, "A1"),
    ({"student": {"matricula": "B2"}, "studentMatricula": "C3"}, "B2"),
    ({"student": {"user": {"matricula": "U9"}}}, "U9"),
    ({"studentMatricula": "C3"}, "C3"),
    ({"student": {"enrollment": "E5"}}, "E5"),
    ({"student": {"id": 42}}, "EST-42"),
    ({}, "N/A"),
])
def test_extract_matricula_fallbacks(raw, expected):
    assert extract_matricula(raw) == expected


def test_extract_observations_order():
    assert extract_observations({"observaciones": "b", "rejectionReason": "c"}) == "b"
    assert extract_observations({"rejectionReason": "c"}) == "c"
    assert extract_observations({}) == ""


def test_unknown_status_falls_back_to_pending():
    assert parse_status("ACCEPTED") is Status.ACCEPTED
    assert parse_status("archived") is Status.PENDING


def test_parse_advisory_denormalizes(advisory_data):
    r = parse_advisory(advisory_data(type="grupal", createdAt="2030-03-01T10:00:00Z"))
    assert r.id == 1
    assert r.status is Status.PENDING
    assert r.student_name == "Ana López"
    assert r.student_matricula == "A001"
    assert r.professor_name == "Luis Pérez"
    assert r.date == datetime.date(2030, 3, 11)
    assert r.type is AdvisoryType.GROUP
    assert r.created_at == datetime.datetime(2030, 3, 1, 10, 0, tzinfo=datetime.timezone.utc)


def test_parse_advisory_name_fallbacks():
    r = parse_advisory({"id": "5", "studentName": "Manual", "status": "completed"})
    assert r.id == 5
    assert r.student_name == "Manual"
    assert r.professor_name == "N/A"
    assert r.student_matricula == "N/A"


def test_merge_keeps_display_fields_and_uses_new_motive(make_request):
    existing = make_request(status="pending", observations="nota vieja")
    patch = {"status": "rejected", "rejectionReason": "Conflicto de horario"}
    merged = merge_advisory(existing, {"id": 1, "status": "rejected"}, patch)

    assert merged.status is Status.REJECTED
    assert merged.observations == "Conflicto de horario"
    assert merged.student_name == "Ana López"
    assert merged.student_matricula == "A001"
    assert merged.professor_name == "Luis Pérez"


def test_merge_prefers_server_values(make_request):
    existing = make_request(status="accepted")
    response = {
        "id": 1,
        "status": "rescheduled",
        "date": "2030-04-02T00:00:00.000Z",
        "timeSlot": "12:00 - 13:00",
        "student": {"matricula": "Z99"},
        "observations": "Reprogramada por congreso",
    }
    merged = merge_advisory(existing, response, {"status": "rescheduled", "rejectionReason": "otro"})
    assert merged.date == datetime.date(2030, 4, 2)
    assert merged.time_slot == "12:00 - 13:00"
    assert merged.student_matricula == "Z99"
    assert merged.observations == "Reprogramada por congreso"


def test_parse_window_trims_times():
    w = parse_window({"id": 3, "dayOfWeek": "Friday", "startTime": "14:00:00", "endTime": "15:00:00"}, professor_id=7)
    assert w.professor_id == 7
    assert w.day_of_week is DayOfWeek.FRIDAY
    assert (w.start_time, w.end_time) == ("14:00", "15:00")
    assert w.is_available is True


def test_parse_slot_tolerates_missing_day():
    slot = parse_slot({"id": 9, "startTime": "09:00:00", "endTime": "10:00:00"})
    assert slot.day_of_week is None
    assert slot.time_slot() == "09:00 - 10:00"


def test_parse_professor_nested_name():
    assert parse_professor({"id": 2, "user": {"name": "María"}}).name == "María"


def test_parse_user_roles():
    u = parse_user({"id": 1, "name": "Ana", "email": "a@x.mx", "role": "student", "student": {"id": 3}})
    assert u.role is Role.STUDENT
    assert u.student_id == 3
    assert u.professor_id is None
    with pytest.raises(ValueError):
        parse_user({"id": 1, "role": "admin"})
