# errors.py
from typing import Optional


class AdvisoryError(Exception):
    """Base de todos los errores del cliente de asesorías."""


class ValidationError(AdvisoryError):
    """Datos de un formulario inválidos; se detecta antes de llamar a la red."""


class ScheduleConflictError(ValidationError):
    def __init__(self, message: str, existing=None):
        super().__init__(message)
        self.existing = existing


class TransitionError(AdvisoryError):
    def __init__(self, current, action: str):
        super().__init__(f"La acción '{action}' no está permitida desde el estado '{current.value}'.")
        self.current = current
        self.action = action


class ApiError(AdvisoryError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message


class SessionExpiredError(AdvisoryError):
    """El backend rechazó el token (401); hay que volver a iniciar sesión."""
