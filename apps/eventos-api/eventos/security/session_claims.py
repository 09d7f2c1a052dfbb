from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Request

from eventos.models.orm_models import ROL_ADMIN, ROL_OPERADOR

ADMIN_ROLES = {ROL_ADMIN}
BACKOFFICE_ROLES = {ROL_ADMIN, ROL_OPERADOR}


def normalize_role(role: Any) -> str:
    """Upper-cased role with accents stripped ("Administración" -> "ADMINISTRACION")."""
    try:
        s = unicodedata.normalize("NFKD", str(role or "").strip())
    except Exception:
        return ""
    return "".join(ch for ch in s if not unicodedata.combining(ch)).upper()


def role_from_metadata(user: Dict[str, Any]) -> str:
    """Cached role claim: app_metadata.role, first of app_metadata.roles, then user_metadata.role."""
    app_meta = (user or {}).get("app_metadata") or {}
    user_meta = (user or {}).get("user_metadata") or {}
    role = app_meta.get("role")
    if not role:
        roles = app_meta.get("roles")
        if isinstance(roles, list) and roles:
            role = roles[0]
    if not role:
        role = user_meta.get("role")
    return normalize_role(role)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    raw = str(authorization or "").strip()
    if not raw:
        return None
    parts = raw.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        token = parts[1].strip()
    else:
        token = raw
    return token or None


def get_request_token(request: Request) -> Optional[str]:
    return extract_bearer_token(request.headers.get("Authorization"))


@dataclass
class AppSession:
    """Authenticated principal plus its profile row, resolved per request."""

    user_id: str
    email: Optional[str]
    access_token: str
    perfil: Dict[str, Any] = field(default_factory=dict)

    @property
    def rol(self) -> str:
        return normalize_role(self.perfil.get("rol"))

    @property
    def nombre(self) -> Optional[str]:
        return self.perfil.get("nombre")

    @property
    def is_admin(self) -> bool:
        return self.rol in ADMIN_ROLES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "perfil": self.perfil,
            "rol": self.rol,
            "is_admin": self.is_admin,
        }
