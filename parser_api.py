# parser_api.py
import datetime
import logging
from typing import Optional

from logic import trim_time
from models import (
    AdvisoryRequest,
    AdvisoryType,
    AvailableSlot,
    DayOfWeek,
    Professor,
    Role,
    ScheduleWindow,
    SessionUser,
    Status,
)

logger = logging.getLogger(__name__)


def _get(data, *path):
    """_get(d, 'student', 'user', 'name') sin reventar si falta algún nivel."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _to_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_calendar_date(value) -> Optional[datetime.date]:
    """
    Normaliza la fecha de una asesoría a fecha de calendario UTC.

    Ejemplos:
      "2025-03-10"                -> 2025-03-10
      "2025-03-10T00:00:00.000Z"  -> 2025-03-10
      "2025-03-10T05:00:00+05:00" -> 2025-03-10 (00:00 UTC)
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.date()
    if isinstance(value, datetime.date):
        return value

    s = str(value).strip()
    if "T" not in s:
        try:
            return datetime.date.fromisoformat(s[:10])
        except ValueError:
            logger.warning("Fecha con formato desconocido: %r", value)
            return None

    dt = parse_timestamp(s)
    return dt.date() if dt else None


def parse_timestamp(value) -> Optional[datetime.datetime]:
    if not value:
        return None
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.datetime.fromisoformat(s)
    except ValueError:
        logger.warning("Fecha/hora con formato desconocido: %r", value)
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(datetime.timezone.utc)
    return dt


# ====== DESNORMALIZACIÓN ======

def extract_matricula(raw: dict) -> str:
    """Matrícula del estudiante; el backend la ha tenido en varios sitios."""
    candidates = (
        _get(raw, "student", "studentCode"),
        _get(raw, "student", "matricula"),
        _get(raw, "student", "user", "matricula"),
        raw.get("studentMatricula"),
        _get(raw, "student", "enrollment"),
    )
    for c in candidates:
        if c:
            return str(c)
    student_id = _get(raw, "student", "id")
    if student_id is not None:
        return f"EST-{student_id}"
    return "N/A"


def extract_observations(raw: dict) -> str:
    for key in ("observations", "observaciones", "description", "rejectionReason"):
        value = raw.get(key)
        if value:
            return str(value)
    return ""


def extract_student_name(raw: dict) -> str:
    return _get(raw, "student", "user", "name") or raw.get("studentName") or "N/A"


def extract_professor_name(raw: dict) -> str:
    return _get(raw, "professor", "user", "name") or raw.get("professorName") or "N/A"


def parse_status(value) -> Status:
    try:
        return Status(str(value).strip().lower())
    except ValueError:
        logger.warning("Estado desconocido %r, se trata como pendiente", value)
        return Status.PENDING


def parse_advisory(raw: dict) -> AdvisoryRequest:
    return AdvisoryRequest(
        id=_to_int(raw.get("id")),
        status=parse_status(raw.get("status", "pending")),
        student_id=_to_int(raw.get("studentId", _get(raw, "student", "id"))),
        student_name=extract_student_name(raw),
        student_matricula=extract_matricula(raw),
        professor_id=_to_int(raw.get("professorId", _get(raw, "professor", "id"))),
        professor_name=extract_professor_name(raw),
        date=parse_calendar_date(raw.get("date")),
        time_slot=str(raw.get("timeSlot") or ""),
        subject=str(raw.get("subject") or ""),
        topic=str(raw.get("topic") or ""),
        type=AdvisoryType.parse(raw.get("type")),
        observations=extract_observations(raw),
        created_at=parse_timestamp(raw.get("createdAt")),
        is_manual_entry=bool(raw.get("isManualEntry", False)),
        raw=dict(raw),
    )


def merge_advisory(existing: AdvisoryRequest, response: dict, patch: Optional[dict] = None) -> AdvisoryRequest:
    """
    Fusiona la respuesta del servidor a un PUT de estado con el registro
    local. La respuesta manda en lo que trae; los campos de presentación
    que no trae (nombres, matrícula) se conservan.

    La anotación es la de esta transición: la que devuelve el servidor o,
    si no la devuelve, la que se envió en `patch`.
    """
    patch = patch or {}
    merged = parse_advisory({**existing.raw, **patch, **response})

    merged.student_matricula = (
        _get(response, "student", "matricula") or existing.student_matricula or "N/A"
    )
    merged.observations = (
        response.get("observations")
        or response.get("rejectionReason")
        or patch.get("rejectionReason")
        or existing.observations
    )
    if merged.student_name == "N/A":
        merged.student_name = existing.student_name
    if merged.professor_name == "N/A":
        merged.professor_name = existing.professor_name
    return merged


# ====== HORARIOS / PROFESORES / USUARIO ======

def parse_window(raw: dict, professor_id: Optional[int] = None) -> ScheduleWindow:
    return ScheduleWindow(
        id=_to_int(raw.get("id")),
        professor_id=_to_int(raw.get("professorId")) if raw.get("professorId") is not None else professor_id,
        day_of_week=DayOfWeek.parse(raw.get("dayOfWeek")),
        start_time=trim_time(raw.get("startTime")),
        end_time=trim_time(raw.get("endTime")),
        is_available=bool(raw.get("isAvailable", True)),
    )


def parse_slot(raw: dict) -> AvailableSlot:
    day = raw.get("dayOfWeek")
    try:
        day_of_week = DayOfWeek.parse(day) if day else None
    except ValueError:
        day_of_week = None
    return AvailableSlot(
        id=_to_int(raw.get("id")),
        day_of_week=day_of_week,
        start_time=trim_time(raw.get("startTime")),
        end_time=trim_time(raw.get("endTime")),
    )


def parse_professor(raw: dict) -> Professor:
    name = raw.get("name") or _get(raw, "user", "name") or "N/A"
    return Professor(id=_to_int(raw.get("id")), name=str(name))


def parse_user(raw: dict) -> SessionUser:
    return SessionUser(
        id=_to_int(raw.get("id")),
        name=str(raw.get("name") or ""),
        email=str(raw.get("email") or ""),
        role=Role(raw.get("role")),
        student_id=_to_int(_get(raw, "student", "id")),
        professor_id=_to_int(_get(raw, "professor", "id")),
        raw=dict(raw),
    )
