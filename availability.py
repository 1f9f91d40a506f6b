# availability.py
import datetime
import logging
from typing import Dict, List

from errors import ApiError, ValidationError
from logic import check_new_window
from models import AvailableSlot, ScheduleWindow
from parser_api import parse_slot, parse_window

logger = logging.getLogger(__name__)


class AvailabilityManager:
    """
    Horarios semanales de cada profesor.

    `windows` es compartido con el DataStore del AppContext:
    {professor_id: [ScheduleWindow, ...]}. Sólo este objeto lo modifica.
    """

    def __init__(self, api, windows: Dict[int, List[ScheduleWindow]]):
        self.api = api
        self.windows = windows

    def windows_for(self, professor_id: int) -> List[ScheduleWindow]:
        return self.windows.get(professor_id, [])

    def _find(self, professor_id: int, window_id: int):
        for w in self.windows_for(professor_id):
            if w.id == window_id:
                return w
        return None

    def add_window(self, professor_id: int, day, start: str, end: str) -> ScheduleWindow:
        """
        Valida (inicio < fin, sin solapes en el mismo día) y registra
        el horario en el backend. Si algo falla no cambia nada local.
        """
        if not professor_id:
            raise ValidationError("No se pudo identificar al profesor. Por favor, recargue la página.")

        day_of_week = check_new_window(self.windows_for(professor_id), day, start, end)

        payload = {
            "professorId": professor_id,
            "dayOfWeek": day_of_week.value,
            "startTime": start,
            "endTime": end,
            "isAvailable": True,
        }
        data = self.api.create_schedule(payload)
        window = parse_window({**payload, **(data or {})}, professor_id=professor_id)
        self.windows.setdefault(professor_id, []).append(window)
        logger.info("Horario %s agregado para el profesor %s", window.label(), professor_id)
        return window

    def remove_window(self, professor_id: int, window_id: int, confirmed: bool) -> bool:
        """Borra el horario; sin confirmación explícita no hace nada."""
        if not confirmed:
            return False
        self.api.delete_schedule(window_id)
        self.windows[professor_id] = [
            w for w in self.windows_for(professor_id) if w.id != window_id
        ]
        logger.info("Horario %s eliminado", window_id)
        return True

    def toggle_availability(self, professor_id: int, window_id: int) -> bool:
        """
        Pausa / activa un horario. Los errores de red sólo se registran en
        el log; el estado local sólo cambia si el servidor confirmó.
        """
        current = self._find(professor_id, window_id)
        if current is None:
            logger.warning("Horario %s no encontrado para el profesor %s", window_id, professor_id)
            return False

        new_value = not current.is_available
        try:
            self.api.set_schedule_availability(window_id, new_value)
        except ApiError as e:
            logger.error("Error al actualizar disponibilidad del horario %s: %s", window_id, e)
            return False

        current.is_available = new_value
        logger.info("Horario %s -> disponible=%s", window_id, new_value)
        return True

    def available_slots_for(self, professor_id: int, day: datetime.date) -> List[AvailableSlot]:
        """Horarios libres de un profesor en una fecha; lo resuelve el backend."""
        if not professor_id or day is None:
            return []
        try:
            data = self.api.available_slots(professor_id, day)
        except ApiError as e:
            logger.error("Error al obtener horarios disponibles (%s, %s): %s", professor_id, day, e)
            return []
        return [parse_slot(raw) for raw in data]
