# models.py
from dataclasses import dataclass, field
import datetime
from enum import Enum
from typing import Optional


class Status(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.REJECTED})
ACTIVE_STATUSES = frozenset({Status.ACCEPTED, Status.RESCHEDULED})


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def label(self) -> str:
        return DAY_LABELS[self]

    @classmethod
    def parse(cls, value) -> "DayOfWeek":
        """Acepta 'Monday', 'monday' o un DayOfWeek."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


DAY_LABELS = {
    DayOfWeek.MONDAY: "Lunes",
    DayOfWeek.TUESDAY: "Martes",
    DayOfWeek.WEDNESDAY: "Miércoles",
    DayOfWeek.THURSDAY: "Jueves",
    DayOfWeek.FRIDAY: "Viernes",
    DayOfWeek.SATURDAY: "Sábado",
    DayOfWeek.SUNDAY: "Domingo",
}


class AdvisoryType(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"

    @classmethod
    def parse(cls, value) -> "AdvisoryType":
        # el backend histórico guarda "grupal"
        s = str(value or "").strip().lower()
        if s in ("group", "grupal"):
            return cls.GROUP
        return cls.INDIVIDUAL


class Role(str, Enum):
    """Variante cerrada de los tipos de usuario que pueden iniciar sesión."""
    STUDENT = "student"
    PROFESSOR = "professor"
    DIRECTOR = "director"


@dataclass
class AdvisoryRequest:
    """
    Una solicitud de asesoría tal como la ve el cliente.

    Los campos *_name y student_matricula están desnormalizados:
    vienen de los objetos anidados del backend o de sus fallbacks.
    `observations` es la única anotación (motivo de rechazo,
    motivo de reprogramación u observaciones finales).
    """
    id: int
    status: Status
    student_id: Optional[int] = None
    student_name: str = "N/A"
    student_matricula: str = "N/A"
    professor_id: Optional[int] = None
    professor_name: str = "N/A"
    date: Optional[datetime.date] = None  # fecha de calendario, normalizada en UTC
    time_slot: str = ""               # "HH:MM - HH:MM"
    subject: str = ""
    topic: str = ""
    type: AdvisoryType = AdvisoryType.INDIVIDUAL
    observations: str = ""
    created_at: Optional[datetime.datetime] = None
    is_manual_entry: bool = False
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class ScheduleWindow:
    id: int
    professor_id: int
    day_of_week: DayOfWeek
    start_time: str     # "HH:MM"
    end_time: str       # "HH:MM"
    is_available: bool = True

    def label(self) -> str:
        return f"{self.day_of_week.label} {self.start_time} - {self.end_time}"


@dataclass
class AvailableSlot:
    """Horario candidato devuelto por el backend para una fecha concreta."""
    id: int
    day_of_week: Optional[DayOfWeek]
    start_time: str
    end_time: str

    def time_slot(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    def label(self) -> str:
        day = self.day_of_week.label if self.day_of_week else ""
        return f"{day} {self.time_slot()}".strip()


@dataclass
class Professor:
    id: int
    name: str


@dataclass
class SessionUser:
    id: int
    name: str
    email: str
    role: Role
    student_id: Optional[int] = None
    professor_id: Optional[int] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)
