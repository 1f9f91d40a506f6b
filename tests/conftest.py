import datetime
import json
from types import SimpleNamespace

import pytest
import requests

from api_client import ApiClient
from availability import AvailabilityManager
from errors import ApiError
from lifecycle import AdvisoryLifecycle
from models import DayOfWeek, ScheduleWindow
from parser_api import parse_advisory


# ====== HTTP FALSO ======

def make_response(status=200, body=None, content_type="application/json", raw=None):
    resp = requests.Response()
    resp.status_code = status
    resp.url = "http://test/api"
    resp.headers["content-type"] = content_type
    resp.encoding = "utf-8"
    if raw is not None:
        resp._content = raw
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
    else:
        resp._content = b""
    return resp


class FakeSession:
    """Sustituto de requests.Session: devuelve las respuestas en cola."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, **kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def http():
    return FakeSession()


@pytest.fixture
def client(http):
    return ApiClient("http://test/api/", timeout=5, session=http)


# ====== API EN MEMORIA ======

class FakeApi:
    """
    Backend en memoria con la misma interfaz que ApiClient.
    `fail[nombre] = excepción` hace fallar ese método.
    """

    def __init__(self):
        self.token = None
        self.calls = []
        self.fail = {}
        self.next_id = 100
        self.slots = {}          # (professor_id, date) -> [dict]
        self.user = None
        self.login_response = None
        self.student_advisories = []
        self.professor_advisories = []
        self.history = []
        self.schedules = []
        self.professor_list = []
        self.report = b"%PDF-1.4 fake"

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise self.fail[name]

    def _new_id(self):
        self.next_id += 1
        return self.next_id

    def call_names(self):
        return [c[0] for c in self.calls]

    # auth
    def login(self, email, password):
        self._call("login", email, password)
        return self.login_response

    def logout(self):
        self._call("logout")

    def me(self):
        self._call("me")
        return self.user

    # advisories
    def advisories_for_student(self, student_id):
        self._call("advisories_for_student", student_id)
        return self.student_advisories

    def advisories_for_professor(self, professor_id):
        self._call("advisories_for_professor", professor_id)
        return self.professor_advisories

    def director_history(self):
        self._call("director_history")
        return self.history

    def create_advisory(self, payload):
        self._call("create_advisory", payload)
        return {"id": self._new_id(), "status": "pending"}

    def create_manual_advisory(self, payload):
        self._call("create_manual_advisory", payload)
        return {"id": self._new_id(), **payload}

    def update_advisory_status(self, advisory_id, patch):
        self._call("update_advisory_status", advisory_id, patch)
        return {"id": advisory_id, **patch}

    # schedules
    def my_schedules(self):
        self._call("my_schedules")
        return self.schedules

    def create_schedule(self, payload):
        self._call("create_schedule", payload)
        return {"id": self._new_id(), **payload, "startTime": payload["startTime"] + ":00"}

    def delete_schedule(self, schedule_id):
        self._call("delete_schedule", schedule_id)

    def set_schedule_availability(self, schedule_id, is_available):
        self._call("set_schedule_availability", schedule_id, is_available)
        return {"id": schedule_id, "isAvailable": is_available}

    def available_slots(self, professor_id, day):
        self._call("available_slots", professor_id, day)
        return self.slots.get((professor_id, day), [])

    # directory / reports
    def professors(self):
        self._call("professors")
        return self.professor_list

    def advisory_report(self, start, end, professor_id=None):
        self._call("advisory_report", start, end, professor_id)
        return self.report


@pytest.fixture
def api():
    return FakeApi()


# ====== DATOS ======

def raw_advisory(id=1, status="pending", professor_id=7, student_id=3, **extra):
    data = {
        "id": id,
        "status": status,
        "studentId": student_id,
        "professorId": professor_id,
        "date": "2030-03-11T00:00:00.000Z",
        "timeSlot": "09:00 - 10:00",
        "subject": "Cálculo",
        "topic": "Integrales",
        "type": "individual",
        "student": {"id": student_id, "studentCode": "A001", "user": {"name": "Ana López"}},
        "professor": {"id": professor_id, "user": {"name": "Luis Pérez"}},
    }
    data.update(extra)
    return data


@pytest.fixture
def advisory_data():
    return raw_advisory


@pytest.fixture
def make_request():
    def factory(**kwargs):
        return parse_advisory(raw_advisory(**kwargs))
    return factory


@pytest.fixture
def monday_window():
    return ScheduleWindow(
        id=1, professor_id=7, day_of_week=DayOfWeek.MONDAY,
        start_time="09:00", end_time="10:00", is_available=True,
    )


@pytest.fixture
def availability(api, monday_window):
    return AvailabilityManager(api, {7: [monday_window]})


@pytest.fixture
def lifecycle(api):
    return AdvisoryLifecycle(api, [])


@pytest.fixture
def slot_day():
    return datetime.date(2030, 3, 11)


@pytest.fixture
def network_error():
    return ApiError("Error de conexión con el servidor. Verifica que el backend esté ejecutándose.")
