"""HTTP client the back-office API uses to call the admin bridge."""

import os
import logging
from typing import Any, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


class AdminBridgeClient:
    """Forwards the caller's own bearer token; the bridge authorizes it."""

    def __init__(self, base_url: str, timeout: float = 15, session: Optional[requests.Session] = None):
        self.base_url = str(base_url or "").rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    @classmethod
    def from_env(cls) -> "AdminBridgeClient":
        return cls(os.getenv("ADMIN_BRIDGE_URL", "http://localhost:8001"))

    def _post(self, path: str, token: str, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        try:
            resp = self.http.post(
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {token}"},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Admin bridge unreachable ({path}): {e}")
            return 502, {"error": f"Admin bridge unreachable: {e}"}
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {"error": resp.text or f"HTTP {resp.status_code}"}
        return resp.status_code, data if isinstance(data, dict) else {}

    def create_user(self, token: str, email: str, password: str, nombre: str, rol: str) -> Tuple[int, Dict[str, Any]]:
        return self._post(
            "/create-user",
            token,
            {"email": email, "password": password, "nombre": nombre, "rol": rol},
        )

    def update_user_email(self, token: str, user_id: str, new_email: str) -> Tuple[int, Dict[str, Any]]:
        return self._post("/update-user-email", token, {"userId": user_id, "newEmail": new_email})

    def get_user_email(self, token: str, user_id: str) -> Tuple[int, Dict[str, Any]]:
        return self._post("/get-user-email", token, {"userId": user_id})

    def delete_user(self, token: str, user_id: str) -> Tuple[int, Dict[str, Any]]:
        return self._post("/delete-user", token, {"userId": user_id})
