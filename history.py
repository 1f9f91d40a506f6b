# history.py
import datetime
from collections import Counter
from typing import Dict, Iterable, List, Optional

from models import (
    ACTIVE_STATUSES,
    AdvisoryRequest,
    AdvisoryType,
    Role,
    SessionUser,
    Status,
)

STATUS_LABELS = {
    Status.PENDING: "Pendiente",
    Status.ACCEPTED: "Aceptada",
    Status.REJECTED: "Rechazada",
    Status.RESCHEDULED: "Reprogramada",
    Status.COMPLETED: "Completada",
}

TYPE_LABELS = {
    AdvisoryType.INDIVIDUAL: "Individual",
    AdvisoryType.GROUP: "Grupal",
}

MONTHS_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

HISTORY_STATUSES = frozenset({Status.COMPLETED, Status.REJECTED})
ANSWERED_STATUSES = frozenset({Status.ACCEPTED, Status.REJECTED, Status.RESCHEDULED})


def status_label(status: Status) -> str:
    return STATUS_LABELS.get(status, str(status))


def format_date(day: Optional[datetime.date]) -> str:
    """dd/mm/aaaa, como se muestra en tablas y reportes."""
    return day.strftime("%d/%m/%Y") if day else "-"


def truncate(text: str, max_length: int = 50) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


# ====== PROYECCIONES POR ROL ======

def visible_requests(user: SessionUser, requests: Iterable[AdvisoryRequest]) -> List[AdvisoryRequest]:
    """Lo que cada rol puede ver de la colección compartida."""
    if user.role is Role.STUDENT:
        return [r for r in requests if r.student_id == user.student_id]
    if user.role is Role.PROFESSOR:
        return [r for r in requests if r.professor_id == user.professor_id]
    if user.role is Role.DIRECTOR:
        return list(requests)
    raise ValueError(f"Rol no soportado: {user.role!r}")


def _sorted_by_date(requests: Iterable[AdvisoryRequest]) -> List[AdvisoryRequest]:
    return sorted(requests, key=lambda r: (r.date or datetime.date.min, r.time_slot))


def pending_for_professor(requests, professor_id: int) -> List[AdvisoryRequest]:
    return _sorted_by_date(
        r for r in requests if r.professor_id == professor_id and r.status == Status.PENDING
    )


def scheduled_for_professor(requests, professor_id: int) -> List[AdvisoryRequest]:
    return _sorted_by_date(
        r for r in requests if r.professor_id == professor_id and r.status in ACTIVE_STATUSES
    )


def history_for_professor(requests, professor_id: int) -> List[AdvisoryRequest]:
    return _sorted_by_date(
        r for r in requests if r.professor_id == professor_id and r.status in HISTORY_STATUSES
    )


def requests_for_student(requests, student_id: int) -> List[AdvisoryRequest]:
    return _sorted_by_date(r for r in requests if r.student_id == student_id)


def history_for_student(requests, student_id: int) -> List[AdvisoryRequest]:
    return [r for r in requests_for_student(requests, student_id) if r.status in HISTORY_STATUSES]


def answered_count(requests, student_id: int) -> int:
    """Badge de 'Mis Solicitudes': solicitudes con respuesta del profesor."""
    return sum(1 for r in requests if r.student_id == student_id and r.status in ANSWERED_STATUSES)


def pending_count(requests, professor_id: int) -> int:
    return len(pending_for_professor(requests, professor_id))


# ====== FILTROS ======

def filter_by_date_range(requests, start: Optional[datetime.date] = None,
                         end: Optional[datetime.date] = None) -> List[AdvisoryRequest]:
    """Rango inclusivo; un extremo vacío no filtra."""
    out = []
    for r in requests:
        if start and (r.date is None or r.date < start):
            continue
        if end and (r.date is None or r.date > end):
            continue
        out.append(r)
    return out


def filter_director_history(requests, search: str = "", status: Optional[Status] = None) -> List[AdvisoryRequest]:
    data = list(requests)
    if status is not None:
        data = [r for r in data if r.status == status]
    term = search.strip().lower()
    if term:
        data = [
            r for r in data
            if term in r.professor_name.lower()
            or term in r.student_name.lower()
            or term in r.student_matricula.lower()
        ]
    return data


# ====== ESTADÍSTICAS ======

def director_stats(requests) -> Dict[str, int]:
    requests = list(requests)
    return {
        "total": len(requests),
        "completed": sum(1 for r in requests if r.status == Status.COMPLETED),
        "accepted": sum(1 for r in requests if r.status == Status.ACCEPTED),
        "professors": len({r.professor_id for r in requests if r.professor_id is not None}),
    }


def month_label(day: datetime.date) -> str:
    return f"{MONTHS_ES[day.month - 1]} {day.year}"


def professor_stats(requests, professor_id: int, start: Optional[datetime.date] = None,
                    end: Optional[datetime.date] = None) -> dict:
    """
    Estadísticas del panel de reportes del profesor.

    Sólo cuentan las asesorías completadas dentro del rango (por fecha de
    la asesoría). La tasa de aceptación es completadas / todas las
    solicitudes del profesor en el mismo rango.
    """
    own = [r for r in requests if r.professor_id == professor_id]
    in_range = filter_by_date_range(own, start, end) if (start or end) else own
    completed = [r for r in in_range if r.status == Status.COMPLETED]

    by_month = Counter()
    for r in sorted(completed, key=lambda r: r.date or datetime.date.min):
        if r.date:
            by_month[month_label(r.date)] += 1

    return {
        "completed": len(completed),
        "students": len({r.student_id or r.student_name for r in completed}),
        "subjects": len({r.subject for r in completed}),
        "acceptance_rate": round(len(completed) * 100 / len(in_range)) if in_range else 0,
        "by_subject": dict(Counter(r.subject for r in completed)),
        "by_type": dict(Counter(TYPE_LABELS[r.type] for r in completed)),
        "by_month": dict(by_month),
    }
