# lifecycle.py
import datetime
import logging
from typing import List, Optional

from errors import TransitionError, ValidationError
from logic import (
    ACCEPT,
    CANCEL,
    COMPLETE,
    REJECT,
    RESCHEDULE,
    format_time_slot,
    parse_time,
    transition_patch,
    utc_midnight_iso,
)
from models import AdvisoryRequest, AdvisoryType, AvailableSlot, SessionUser, Status
from parser_api import merge_advisory, parse_advisory

logger = logging.getLogger(__name__)


# ===================== SELECCIÓN DE HORARIO =====================

class SlotSelection:
    """
    Profesor + fecha + horario elegido de la lista de candidatos.

    Cada vez que cambia el profesor o la fecha se vuelven a pedir los
    candidatos al backend y se borra la selección anterior; mientras no
    haya un horario de esa lista elegido, `can_confirm` es False.
    """

    def __init__(self, availability, professor_id: Optional[int] = None,
                 day: Optional[datetime.date] = None):
        self.availability = availability
        self.professor_id = professor_id
        self.day = day
        self.candidates: List[AvailableSlot] = []
        self.selected: Optional[AvailableSlot] = None
        if professor_id and day:
            self.refresh()

    def refresh(self) -> List[AvailableSlot]:
        self.selected = None
        self.candidates = []
        self.candidates = self.availability.available_slots_for(self.professor_id, self.day)
        return self.candidates

    def set_professor(self, professor_id: Optional[int]) -> List[AvailableSlot]:
        self.professor_id = professor_id
        return self.refresh()

    def set_date(self, day: Optional[datetime.date]) -> List[AvailableSlot]:
        self.day = day
        return self.refresh()

    def select(self, slot_id) -> AvailableSlot:
        for slot in self.candidates:
            if str(slot.id) == str(slot_id):
                self.selected = slot
                return slot
        self.selected = None
        raise ValidationError("Horario no válido.")

    @property
    def can_confirm(self) -> bool:
        return (
            self.day is not None
            and self.selected is not None
            and self.selected in self.candidates
        )


class RescheduleDraft(SlotSelection):
    """Modal de reprogramación: arranca con la fecha actual de la solicitud."""

    def __init__(self, availability, request: AdvisoryRequest):
        self.request = request
        super().__init__(availability, request.professor_id, request.date)


# ===================== CONTROLADOR =====================

class AdvisoryLifecycle:
    """
    Todas las transiciones de estado de las solicitudes pasan por aquí.

    `requests` es la lista compartida con el DataStore; se sustituye el
    elemento afectado sólo cuando el servidor confirma el cambio.
    `user` es quien tiene la sesión: completa el estudiante o el profesor
    de los registros nuevos cuando la respuesta no los trae.
    """

    def __init__(self, api, requests: List[AdvisoryRequest], user: Optional[SessionUser] = None):
        self.api = api
        self.requests = requests
        self.user = user

    def get(self, request_id: int) -> AdvisoryRequest:
        for r in self.requests:
            if r.id == request_id:
                return r
        raise ValidationError(f"No existe la solicitud {request_id}.")

    def _replace(self, updated: AdvisoryRequest) -> None:
        for i, r in enumerate(self.requests):
            if r.id == updated.id:
                self.requests[i] = updated
                return
        self.requests.append(updated)

    # ---------- creación ----------

    def create_request(self, selection: SlotSelection, subject: str, topic: str,
                       advisory_type=AdvisoryType.INDIVIDUAL, description: str = "") -> AdvisoryRequest:
        """El estudiante envía una solicitud; el servidor le asigna id y estado pending."""
        if not selection.professor_id:
            raise ValidationError("Seleccione un profesor.")
        if not selection.can_confirm:
            raise ValidationError("Seleccione una fecha y un horario disponible.")
        if not subject.strip() or not topic.strip():
            raise ValidationError("Por favor complete todos los campos obligatorios")

        payload = {
            "professorId": selection.professor_id,
            "date": utc_midnight_iso(selection.day),
            "timeSlot": selection.selected.time_slot(),
            "subject": subject.strip(),
            "topic": topic.strip(),
            "type": AdvisoryType.parse(advisory_type).value,
            "description": description.strip(),
        }
        data = self.api.create_advisory(payload)
        created = parse_advisory({**payload, **(data or {})})
        if self.user is not None:
            if created.student_id is None:
                created.student_id = self.user.student_id
            if created.student_name == "N/A":
                created.student_name = self.user.name
        self.requests.append(created)
        logger.info("Solicitud %s creada (%s)", created.id, created.time_slot)
        return created

    def register_manual(self, day: Optional[datetime.date], start: str, end: str,
                        subject: str, topic: str, student_name: str,
                        advisory_type=AdvisoryType.INDIVIDUAL, description: str = "",
                        student_email: str = "", today: Optional[datetime.date] = None) -> AdvisoryRequest:
        """Registro de una asesoría ya impartida (queda como completed)."""
        if not day or not start or not end or not subject.strip() \
                or not topic.strip() or not student_name.strip():
            raise ValidationError("Por favor complete todos los campos obligatorios")
        if parse_time(start) >= parse_time(end):
            raise ValidationError("La hora de inicio debe ser anterior a la hora de fin")
        today = today or datetime.date.today()
        if day > today:
            raise ValidationError(
                "No se pueden registrar asesorías futuras. Solo asesorías ya impartidas."
            )

        payload = {
            "date": day.isoformat(),
            "timeSlot": format_time_slot(start, end),
            "subject": subject.strip(),
            "topic": topic.strip(),
            "type": AdvisoryType.parse(advisory_type).value,
            "description": description.strip(),
            "studentName": student_name.strip(),
            "studentEmail": student_email.strip(),
            "status": Status.COMPLETED.value,
            "isManualEntry": True,
        }
        data = self.api.create_manual_advisory(payload)
        created = parse_advisory({**payload, **(data or {})})
        if self.user is not None:
            if created.professor_id is None:
                created.professor_id = self.user.professor_id
            if created.professor_name == "N/A":
                created.professor_name = self.user.name
        self.requests.append(created)
        logger.info("Asesoría manual %s registrada para %s", created.id, created.student_name)
        return created

    # ---------- transiciones ----------

    def update_request(self, request_id: int, patch: dict) -> AdvisoryRequest:
        """
        Primitiva de todas las transiciones: envía el patch y fusiona la
        respuesta del servidor con el registro local. Si la llamada falla
        la excepción sube y el registro local queda como estaba.
        """
        current = self.get(request_id)
        if current.is_terminal:
            raise TransitionError(current.status, patch.get("status", "update"))

        data = self.api.update_advisory_status(request_id, patch)
        updated = merge_advisory(current, data or {}, patch)
        self._replace(updated)
        logger.info("Solicitud %s: %s -> %s", request_id, current.status.value, updated.status.value)
        return updated

    def _transition(self, request_id: int, action: str, payload: Optional[dict] = None) -> AdvisoryRequest:
        current = self.get(request_id)
        patch = transition_patch(current.status, action, payload)
        return self.update_request(request_id, patch)

    def accept(self, request_id: int) -> AdvisoryRequest:
        return self._transition(request_id, ACCEPT)

    def reject(self, request_id: int, motive: str) -> AdvisoryRequest:
        return self._transition(request_id, REJECT, {"motive": motive})

    def cancel(self, request_id: int, motive: str) -> AdvisoryRequest:
        return self._transition(request_id, CANCEL, {"motive": motive})

    def complete(self, request_id: int, observations: str) -> AdvisoryRequest:
        return self._transition(request_id, COMPLETE, {"observations": observations})

    def reschedule(self, draft: RescheduleDraft, motive: str = "",
                   today: Optional[datetime.date] = None) -> AdvisoryRequest:
        if draft.day is None or draft.selected is None:
            raise ValidationError("Por favor, completa la nueva fecha y el nuevo horario.")
        if draft.selected not in draft.candidates:
            raise ValidationError("Horario no válido.")
        today = today or datetime.date.today()
        if draft.day < today:
            raise ValidationError("La nueva fecha no puede estar en el pasado.")

        return self._transition(draft.request.id, RESCHEDULE, {
            "date": draft.day,
            "time_slot": draft.selected.time_slot(),
            "motive": motive,
        })
