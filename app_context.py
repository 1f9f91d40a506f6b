# app_context.py
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from api_client import ApiClient
from availability import AvailabilityManager
from errors import ApiError, SessionExpiredError, ValidationError
from lifecycle import AdvisoryLifecycle
from models import AdvisoryRequest, Professor, Role, ScheduleWindow, SessionUser
from parser_api import parse_advisory, parse_professor, parse_user, parse_window
from session_store import SessionStore

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class DataStore:
    """Colecciones compartidas por todas las vistas de una sesión."""
    requests: List[AdvisoryRequest] = field(default_factory=list)
    windows: Dict[int, List[ScheduleWindow]] = field(default_factory=dict)
    professors: List[Professor] = field(default_factory=list)


class AppContext:
    """
    Contexto explícito de la aplicación: se crea al arrancar, se
    inicializa al iniciar sesión y se vacía al cerrarla. Las vistas lo
    reciben como parámetro.
    """

    def __init__(self, api: ApiClient, session_store: SessionStore, reports_dir: str = "reports"):
        self.api = api
        self.session_store = session_store
        self.reports_dir = reports_dir
        self.user: Optional[SessionUser] = None
        self.store = DataStore()
        self.lifecycle: Optional[AdvisoryLifecycle] = None
        self.availability: Optional[AvailabilityManager] = None

    @classmethod
    def from_config(cls, config: dict, base_dir: str = ".") -> "AppContext":
        def resolve(p):
            return p if os.path.isabs(p) else os.path.join(base_dir, p)

        return cls(
            ApiClient.from_config(config),
            SessionStore(resolve(config["session_file"])),
            reports_dir=resolve(config["reports_dir"]),
        )

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.api.token)

    @property
    def role(self) -> Optional[Role]:
        return self.user.role if self.user else None

    def _start(self, user: SessionUser, token: str) -> None:
        self.api.token = token
        self.user = user
        self.store = DataStore()
        self.lifecycle = AdvisoryLifecycle(self.api, self.store.requests, user)
        self.availability = AvailabilityManager(self.api, self.store.windows)

    # ====== SESIÓN ======

    def restore(self) -> bool:
        """
        Revalida la sesión guardada contra /auth/me.
        Cualquier fallo deja la aplicación sin sesión.
        """
        saved = self.session_store.load()
        if not saved:
            return False

        self.api.token = saved["token"]
        try:
            user = parse_user(self.api.me())
        except (ApiError, SessionExpiredError, ValueError, TypeError) as e:
            logger.warning("Sesión guardada inválida: %s", e)
            self.logout()
            return False

        self._start(user, saved["token"])
        self.session_store.save(user.raw, user.role.value, saved["token"])
        logger.info("Sesión restaurada para %s (%s)", user.email, user.role.value)
        return True

    def login(self, email: str, password: str, role) -> SessionUser:
        email = (email or "").strip()
        if not email or not password or not role:
            raise ValidationError("Por favor, completa todos los campos")
        if not EMAIL_RE.match(email):
            raise ValidationError("Por favor, ingresa un correo electrónico válido.")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError("Tipo de usuario incorrecto. Verifica tu selección.")

        data = self.api.login(email, password)
        try:
            user = parse_user(data.get("user") or {})
        except ValueError:
            raise ApiError("Respuesta inválida del servidor")
        if user.role is not role:
            raise ValidationError("Tipo de usuario incorrecto. Verifica tu selección.")

        token = data["token"]
        self.session_store.save(user.raw, user.role.value, token)
        self._start(user, token)
        logger.info("Sesión iniciada: %s (%s)", user.email, user.role.value)
        return user

    def logout(self) -> None:
        if self.api.token:
            try:
                self.api.logout()
            except (ApiError, SessionExpiredError) as e:
                logger.warning("Error al cerrar sesión en el servidor: %s", e)

        self.api.token = None
        self.session_store.clear()
        self.user = None
        self.store = DataStore()
        self.lifecycle = None
        self.availability = None
        logger.info("Sesión cerrada")

    # ====== CARGA DE DATOS ======

    def load_data(self) -> DataStore:
        """
        Carga lo que le toca ver al rol actual. Cada petición falla por
        separado (queda en el log); un 401 sí se propaga.
        """
        if self.user is None:
            raise ValidationError("No hay una sesión activa.")
        user = self.user

        if user.role is Role.PROFESSOR:
            if user.professor_id:
                self._load(self._load_windows, "horarios")
                self._load(
                    lambda: self._replace_requests(self.api.advisories_for_professor(user.professor_id)),
                    "asesorías del profesor",
                )
        elif user.role is Role.STUDENT:
            if user.student_id:
                self._load(
                    lambda: self._replace_requests(self.api.advisories_for_student(user.student_id)),
                    "asesorías del estudiante",
                )
        elif user.role is Role.DIRECTOR:
            self._load(lambda: self._replace_requests(self.api.director_history()), "historial")
        else:
            raise ValueError(f"Rol no soportado: {user.role!r}")

        self._load(self._load_professors, "profesores")
        return self.store

    def _load(self, fn, what: str) -> None:
        try:
            fn()
        except ApiError as e:
            logger.error("Error al cargar %s: %s", what, e)

    def _replace_requests(self, raw_list: list) -> None:
        # misma lista: el controlador del ciclo de vida la comparte
        self.store.requests[:] = [parse_advisory(raw) for raw in raw_list]

    def _load_windows(self) -> None:
        professor_id = self.user.professor_id
        windows = [parse_window(raw, professor_id=professor_id) for raw in self.api.my_schedules()]
        self.store.windows[professor_id] = windows

    def _load_professors(self) -> None:
        self.store.professors[:] = [parse_professor(raw) for raw in self.api.professors()]
