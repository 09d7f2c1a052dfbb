"""
Identity provider client.

Thin wrapper over a GoTrue-compatible auth HTTP API. Public calls (password
sign-in, refresh, recover) use the anon key; admin calls use the service key
and must only run server side.
"""

import os
import logging
from typing import Any, Dict, Optional

import requests

from eventos.database.errors import IdentityProviderError

logger = logging.getLogger(__name__)


def _error_message(data: Any, status: int) -> str:
    if isinstance(data, dict):
        for key in ("msg", "message", "error_description", "error"):
            v = data.get(key)
            if v:
                return str(v)
    return f"HTTP {status}"


class IdentityClient:

    def __init__(
        self,
        base_url: str,
        service_key: str = "",
        anon_key: str = "",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = str(base_url or "").rstrip("/")
        self.service_key = service_key
        self.anon_key = anon_key or service_key
        self.timeout = timeout
        self.http = session or requests.Session()

    @classmethod
    def from_env(cls) -> "IdentityClient":
        try:
            timeout = float(os.getenv("IDENTITY_TIMEOUT_SECONDS", "15"))
        except ValueError:
            timeout = 15.0
        return cls(
            os.getenv("IDENTITY_URL", "http://localhost:9999"),
            service_key=os.getenv("IDENTITY_SERVICE_KEY", ""),
            anon_key=os.getenv("IDENTITY_ANON_KEY", ""),
            timeout=timeout,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        admin: bool = False,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        api_key = self.service_key if admin else self.anon_key
        headers = {"apikey": api_key, "Content-Type": "application/json"}
        bearer = token or (self.service_key if admin else None)
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        url = f"{self.base_url}/auth/v1{path}"
        try:
            resp = self.http.request(
                method, url, headers=headers, json=json, params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Identity provider unreachable ({method} {path}): {e}")
            raise IdentityProviderError(f"Identity provider unreachable: {e}", 502) from e
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            raise IdentityProviderError(_error_message(data, resp.status_code), resp.status_code)
        return data if isinstance(data, dict) else {}

    # --- Sesión ---

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )

    def sign_out(self, access_token: str) -> None:
        self._request("POST", "/logout", token=access_token)

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._request("POST", "/recover", json={"email": email}, params=params)

    def get_user(self, access_token: str) -> Dict[str, Any]:
        """Principal for an access token; raises IdentityProviderError if invalid."""
        return self._request("GET", "/user", token=access_token)

    # --- Admin ---

    def admin_create_user(
        self,
        email: str,
        password: str,
        user_metadata: Optional[Dict[str, Any]] = None,
        app_metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/admin/users",
            admin=True,
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": user_metadata or {},
                "app_metadata": app_metadata or {},
            },
        )

    def admin_update_user(self, user_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/admin/users/{user_id}", admin=True, json=attributes)

    def admin_get_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/admin/users/{user_id}", admin=True)

    def admin_delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/admin/users/{user_id}", admin=True)
