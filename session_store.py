# session_store.py
import json
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Sesión persistida en disco (el equivalente al localStorage del navegador):
    {"user": {...}, "userType": "professor", "token": "..."}
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[dict]:
        """Devuelve la sesión guardada sólo si tiene user, userType y token."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("No se pudo leer la sesión guardada %s: %s", self.path, e)
            return None

        if not isinstance(data, dict):
            return None
        if not (data.get("user") and data.get("userType") and data.get("token")):
            return None
        return data

    def save(self, user: dict, user_type: str, token: str) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(
                {"user": user, "userType": user_type, "token": token},
                f, ensure_ascii=False, indent=4,
            )

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
