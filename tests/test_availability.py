import pytest

from errors import ApiError, ScheduleConflictError, ValidationError
from logic import intervals_overlap, parse_time
from models import DayOfWeek


def test_overlapping_add_is_rejected_without_network(availability, api):
    with pytest.raises(ScheduleConflictError):
        availability.add_window(7, DayOfWeek.MONDAY, "09:30", "10:30")
    assert api.calls == []
    assert len(availability.windows_for(7)) == 1


def test_touching_add_is_persisted(availability, api):
    w = availability.add_window(7, "monday", "10:00", "11:00")

    name, payload = api.calls[0]
    assert name == "create_schedule"
    assert payload == {
        "professorId": 7,
        "dayOfWeek": "monday",
        "startTime": "10:00",
        "endTime": "11:00",
        "isAvailable": True,
    }
    assert w.id == 101
    assert w.start_time == "10:00"
    assert w.professor_id == 7
    assert availability.windows_for(7)[-1] is w


def test_add_with_id_only_reply(availability, api, monkeypatch):
    monkeypatch.setattr(api, "create_schedule", lambda payload: {"id": 55})
    w = availability.add_window(7, DayOfWeek.TUESDAY, "08:00", "09:30")

    assert w.id == 55
    assert w.day_of_week is DayOfWeek.TUESDAY
    assert (w.start_time, w.end_time) == ("08:00", "09:30")
    assert w.is_available
    assert availability.windows_for(7)[-1] is w


def test_start_after_end_never_reaches_network(availability, api):
    with pytest.raises(ValidationError):
        availability.add_window(7, DayOfWeek.TUESDAY, "12:00", "11:00")
    assert api.calls == []


def test_missing_professor(availability, api):
    with pytest.raises(ValidationError):
        availability.add_window(None, DayOfWeek.TUESDAY, "09:00", "10:00")
    assert api.calls == []


def test_server_failure_leaves_windows_untouched(availability, api, network_error):
    api.fail["create_schedule"] = network_error
    with pytest.raises(ApiError):
        availability.add_window(7, DayOfWeek.TUESDAY, "09:00", "10:00")
    assert len(availability.windows_for(7)) == 1


def test_no_overlaps_after_many_adds(availability):
    attempts = [
        ("monday", "08:00", "09:00"),
        ("monday", "08:30", "09:30"),
        ("monday", "10:00", "12:00"),
        ("monday", "11:00", "11:30"),
        ("monday", "07:00", "13:00"),
        ("tuesday", "09:00", "10:00"),
        ("tuesday", "09:00", "10:00"),
    ]
    for day, start, end in attempts:
        try:
            availability.add_window(7, day, start, end)
        except ScheduleConflictError:
            pass

    windows = availability.windows_for(7)
    assert len(windows) == 4
    for i, a in enumerate(windows):
        for b in windows[i + 1:]:
            if a.day_of_week != b.day_of_week:
                continue
            assert not intervals_overlap(
                parse_time(a.start_time), parse_time(a.end_time),
                parse_time(b.start_time), parse_time(b.end_time),
            )


def test_remove_requires_confirmation(availability, api):
    assert availability.remove_window(7, 1, confirmed=False) is False
    assert api.calls == []
    assert len(availability.windows_for(7)) == 1

    assert availability.remove_window(7, 1, confirmed=True) is True
    assert api.calls == [("delete_schedule", 1)]
    assert availability.windows_for(7) == []


def test_toggle_flips_after_server_confirms(availability, api, monday_window):
    assert availability.toggle_availability(7, 1) is True
    assert monday_window.is_available is False
    assert api.calls == [("set_schedule_availability", 1, False)]


def test_toggle_failure_is_logged_not_raised(availability, api, monday_window, network_error, caplog):
    api.fail["set_schedule_availability"] = network_error
    assert availability.toggle_availability(7, 1) is False
    assert monday_window.is_available is True
    assert "Error al actualizar disponibilidad" in caplog.text


def test_toggle_unknown_window(availability, api):
    assert availability.toggle_availability(7, 999) is False
    assert api.calls == []


def test_available_slots_for(availability, api, slot_day):
    api.slots[(7, slot_day)] = [{"id": 5, "dayOfWeek": "monday", "startTime": "09:00:00", "endTime": "10:00:00"}]
    slots = availability.available_slots_for(7, slot_day)
    assert [s.label() for s in slots] == ["Lunes 09:00 - 10:00"]


def test_available_slots_need_professor_and_date(availability, api, slot_day):
    assert availability.available_slots_for(None, slot_day) == []
    assert availability.available_slots_for(7, None) == []
    assert api.calls == []


def test_available_slots_failure_gives_empty_list(availability, api, slot_day, network_error):
    api.fail["available_slots"] = network_error
    assert availability.available_slots_for(7, slot_day) == []
