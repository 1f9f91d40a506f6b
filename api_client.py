# api_client.py
import datetime
import json
import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

from errors import ApiError, SessionExpiredError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "api_base_url": "http://localhost:5000/api",
    "timeout": 30,
    "session_file": "session.json",
    "reports_dir": "reports",
}


# ===== CONFIG.JSON =====

def load_config(path: str = "config.json") -> dict:
    """
    Lee config.json y lo combina con DEFAULT_CONFIG.
    Si no existe o es inválido -> valores por defecto.
    """
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info("No se encontró %s, se usan los valores por defecto.", path)
        return config
    except (OSError, ValueError) as e:
        logger.warning("Error leyendo %s: %s", path, e)
        return config

    if not isinstance(data, dict):
        logger.warning("%s no es un objeto {}, se ignora.", path)
        return config

    for k in DEFAULT_CONFIG:
        if k in data:
            config[k] = data[k]
    return config


def _error_message(resp: requests.Response, default: str) -> str:
    """Mensaje legible de una respuesta de error (JSON o página HTML)."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])

    content_type = resp.headers.get("content-type", "")
    if "html" in content_type and resp.text:
        text = BeautifulSoup(resp.text, "html.parser").get_text(" ", strip=True)
        if text:
            return text[:200]
    return default


class ApiClient:
    """
    Cliente del backend REST de asesorías.

    Todas las llamadas devuelven el campo `data` del sobre
    {success, data, message}; si el cuerpo no trae `data` se devuelve
    el cuerpo completo.
    """

    def __init__(self, base_url: str, timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        self.token: Optional[str] = None

    @classmethod
    def from_config(cls, config: dict) -> "ApiClient":
        return cls(config["api_base_url"], timeout=config.get("timeout", 30))

    # ===================== low level =====================

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.http.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error("%s %s falló: %s", method, url, e)
            raise ApiError(
                "Error de conexión con el servidor. Verifica que el backend esté ejecutándose."
            ) from e

    def _request(self, method: str, path: str, payload=None, params=None,
                 authenticated: bool = True, default_error: Optional[str] = None):
        resp = self._send(method, path, json=payload, params=params)

        if resp.status_code == 401 and authenticated:
            raise SessionExpiredError(_error_message(resp, "La sesión expiró"))
        if not resp.ok:
            message = _error_message(resp, default_error or f"Error {resp.status_code}")
            raise ApiError(message, resp.status_code)

        if not resp.content:
            return None
        try:
            body = resp.json()
        except ValueError:
            raise ApiError("Respuesta inválida del servidor", resp.status_code)

        if isinstance(body, dict):
            if body.get("success") is False:
                raise ApiError(body.get("message") or default_error or "Operación rechazada", resp.status_code)
            if "data" in body:
                return body["data"]
        return body

    # ===================== auth =====================

    def login(self, email: str, password: str) -> dict:
        """POST /auth/login -> {'user': {...}, 'token': '...'}"""
        data = self._request(
            "POST", "/auth/login",
            payload={"email": email, "password": password},
            authenticated=False,
            default_error="Credenciales incorrectas",
        )
        if not isinstance(data, dict) or not data.get("token"):
            raise ApiError("Credenciales incorrectas")
        return data

    def logout(self) -> None:
        if self.token:
            self._request("POST", "/auth/logout")

    def me(self) -> dict:
        return self._request("GET", "/auth/me")

    # ===================== advisories =====================

    def advisories_for_student(self, student_id: int) -> list:
        return self._request("GET", f"/advisories/student/{student_id}") or []

    def advisories_for_professor(self, professor_id: int) -> list:
        return self._request("GET", f"/advisories/professor/{professor_id}") or []

    def director_history(self) -> list:
        return self._request("GET", "/advisories/history/director") or []

    def create_advisory(self, payload: dict) -> dict:
        return self._request("POST", "/advisories", payload=payload)

    def create_manual_advisory(self, payload: dict) -> dict:
        return self._request("POST", "/advisories/manual", payload=payload)

    def update_advisory_status(self, advisory_id: int, patch: dict) -> dict:
        return self._request("PUT", f"/advisories/{advisory_id}/status", payload=patch)

    # ===================== schedules =====================

    def my_schedules(self) -> list:
        return self._request("GET", "/schedules/my-schedules") or []

    def create_schedule(self, payload: dict) -> dict:
        return self._request("POST", "/schedules", payload=payload)

    def delete_schedule(self, schedule_id: int) -> None:
        self._request("DELETE", f"/schedules/{schedule_id}")

    def set_schedule_availability(self, schedule_id: int, is_available: bool) -> dict:
        return self._request(
            "PUT", f"/schedules/{schedule_id}/availability",
            payload={"isAvailable": is_available},
        )

    def available_slots(self, professor_id: int, day: datetime.date) -> list:
        return self._request("GET", f"/schedules/available/{professor_id}/{day.isoformat()}") or []

    # ===================== directory / reports =====================

    def professors(self) -> list:
        return self._request("GET", "/users/professors") or []

    def advisory_report(self, start: datetime.date, end: datetime.date,
                        professor_id: Optional[int] = None) -> bytes:
        """GET /reports/advisories -> PDF binario."""
        params = {"startDate": start.isoformat(), "endDate": end.isoformat()}
        if professor_id:
            params["professorId"] = professor_id

        resp = self._send("GET", "/reports/advisories", params=params)
        if resp.status_code == 401:
            raise SessionExpiredError(_error_message(resp, "La sesión expiró"))
        if not resp.ok:
            raise ApiError(
                _error_message(resp, f"Error al generar reporte: {resp.status_code}"),
                resp.status_code,
            )
        return resp.content
