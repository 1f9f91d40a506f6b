# logic.py
import datetime
from typing import Iterable, List, Optional

from errors import ScheduleConflictError, TransitionError, ValidationError
from models import ACTIVE_STATUSES, DayOfWeek, ScheduleWindow, Status


# ====== TIME HELPERS ======

def parse_time(t_str: str) -> int:
    """'08:30' o '08:30:00' -> minutos desde medianoche."""
    try:
        t = datetime.datetime.strptime(str(t_str).strip()[:5], "%H:%M")
    except ValueError:
        raise ValidationError(f"Hora inválida: {t_str!r}")
    return t.hour * 60 + t.minute


def trim_time(t_str: str) -> str:
    """El backend devuelve 'HH:MM:SS'; en el cliente siempre se usa 'HH:MM'."""
    return str(t_str or "")[:5]


def format_time_slot(start: str, end: str) -> str:
    return f"{trim_time(start)} - {trim_time(end)}"


def hour_options(first: int = 7, count: int = 12) -> List[str]:
    """Horas que ofrecen los formularios: 07:00 .. 18:00."""
    return [f"{h:02d}:00" for h in range(first, first + count)]


def parse_date_input(text: str) -> Optional[datetime.date]:
    """Fecha escrita en un formulario: 'AAAA-MM-DD' o 'dd/mm/aaaa'. Vacío -> None."""
    s = (text or "").strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"Fecha inválida: {s} (use AAAA-MM-DD)")


# ====== OVERLAP ======

def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """
    Dos intervalos semiabiertos [start, end) se solapan si
    start_a < end_b y start_b < end_a.

    Cubre inicio dentro del otro, fin dentro del otro, contención
    en ambos sentidos y coincidencia exacta. Intervalos que sólo se
    tocan (09:00-10:00 y 10:00-11:00) NO se solapan.
    """
    return start_a < end_b and start_b < end_a


def validate_window(day, start: str, end: str) -> DayOfWeek:
    if not day or not start or not end:
        raise ValidationError("Por favor complete todos los campos")
    try:
        day_of_week = DayOfWeek.parse(day)
    except ValueError:
        raise ValidationError(f"Día inválido: {day!r}")
    if parse_time(start) >= parse_time(end):
        raise ValidationError("La hora de inicio debe ser menor que la hora de fin")
    return day_of_week


def find_window_conflict(
    windows: Iterable[ScheduleWindow],
    day: DayOfWeek,
    start: str,
    end: str,
) -> Optional[ScheduleWindow]:
    """Devuelve el primer horario del mismo día que se solapa con start-end."""
    new_start, new_end = parse_time(start), parse_time(end)
    for w in windows:
        if w.day_of_week != day:
            continue
        if intervals_overlap(new_start, new_end, parse_time(w.start_time), parse_time(w.end_time)):
            return w
    return None


def check_new_window(windows: Iterable[ScheduleWindow], day, start: str, end: str) -> DayOfWeek:
    """Validación completa antes de registrar un horario nuevo."""
    day_of_week = validate_window(day, start, end)
    conflict = find_window_conflict(windows, day_of_week, start, end)
    if conflict is not None:
        raise ScheduleConflictError(
            "Este horario se solapa con un horario existente "
            f"({conflict.label()})",
            existing=conflict,
        )
    return day_of_week


# ====== LIFECYCLE ======

ACCEPT = "accept"
REJECT = "reject"
CANCEL = "cancel"
RESCHEDULE = "reschedule"
COMPLETE = "complete"

# (estado actual, acción) -> estado nuevo
TRANSITIONS = {
    (Status.PENDING, ACCEPT): Status.ACCEPTED,
    (Status.PENDING, REJECT): Status.REJECTED,
    (Status.ACCEPTED, CANCEL): Status.REJECTED,
    (Status.ACCEPTED, RESCHEDULE): Status.RESCHEDULED,
    (Status.ACCEPTED, COMPLETE): Status.COMPLETED,
    (Status.RESCHEDULED, CANCEL): Status.REJECTED,
    (Status.RESCHEDULED, RESCHEDULE): Status.RESCHEDULED,
    (Status.RESCHEDULED, COMPLETE): Status.COMPLETED,
}

DEFAULT_RESCHEDULE_MOTIVE = "Reprogramado por el profesor"


def allowed_actions(current: Status) -> List[str]:
    return [action for (status, action) in TRANSITIONS if status == current]


def _required_text(payload: dict, key: str, message: str) -> str:
    value = str(payload.get(key) or "").strip()
    if not value:
        raise ValidationError(message)
    return value


def next_state(current: Status, action: str, payload: Optional[dict] = None) -> Status:
    """
    Transición pura de la máquina de estados de una solicitud.

    Lanza TransitionError si la acción no existe desde `current`
    (completed y rejected no tienen salidas) y ValidationError si
    falta algún dato obligatorio de la acción.
    """
    payload = payload or {}
    new_status = TRANSITIONS.get((current, action))
    if new_status is None:
        raise TransitionError(current, action)

    if action == REJECT:
        _required_text(payload, "motive", "El motivo del rechazo no puede estar vacío.")
    elif action == CANCEL:
        _required_text(payload, "motive", "El motivo de la cancelación no puede estar vacío.")
    elif action == COMPLETE:
        _required_text(payload, "observations", "Por favor, añade una observación sobre la asesoría.")
    elif action == RESCHEDULE:
        if not payload.get("date") or not payload.get("time_slot"):
            raise ValidationError("Por favor, completa la nueva fecha y el nuevo horario.")

    return new_status


def utc_midnight_iso(day: datetime.date) -> str:
    """Fecha de calendario -> medianoche UTC, para que no se corra de día."""
    return f"{day.isoformat()}T00:00:00.000Z"


def transition_patch(current: Status, action: str, payload: Optional[dict] = None) -> dict:
    """Cuerpo del PUT /advisories/{id}/status para una transición válida."""
    payload = payload or {}
    new_status = next_state(current, action, payload)
    patch = {"status": new_status.value}

    if action in (REJECT, CANCEL):
        patch["rejectionReason"] = str(payload["motive"]).strip()
    elif action == COMPLETE:
        patch["rejectionReason"] = str(payload["observations"]).strip()
    elif action == RESCHEDULE:
        patch["date"] = utc_midnight_iso(payload["date"])
        patch["timeSlot"] = payload["time_slot"]
        patch["rejectionReason"] = str(payload.get("motive") or "").strip() or DEFAULT_RESCHEDULE_MOTIVE

    return patch


def is_active(status: Status) -> bool:
    return status in ACTIVE_STATUSES
