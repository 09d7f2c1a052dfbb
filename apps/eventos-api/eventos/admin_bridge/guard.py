"""
Shared authorization guard for the admin bridge.

Every bridge endpoint calls `require_admin` with the caller's token and gets
back either the principal or the (status, body) pair to answer with.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from eventos.database.errors import EventosError, IdentityProviderError
from eventos.models.orm_models import ROL_ADMIN
from eventos.security.session_claims import normalize_role, role_from_metadata
from eventos.services.identity_service import IdentityClient

logger = logging.getLogger(__name__)


class PerfilLookup(Protocol):
    def obtener_perfil(self, user_id: str) -> Optional[Dict[str, Any]]: ...


@dataclass
class GuardResult:
    user_id: Optional[str] = None
    status: Optional[int] = None
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is None


def _deny(status: int, error: str) -> GuardResult:
    return GuardResult(status=status, body={"error": error})


def require_admin(
    identity: IdentityClient,
    perfiles: PerfilLookup,
    token: Optional[str],
    action: str,
) -> GuardResult:
    if not token:
        return _deny(401, "No authorization token provided")

    try:
        user = identity.get_user(token)
    except IdentityProviderError as e:
        logger.error(f"Failed to resolve user from access token: {e}")
        return _deny(401, "Invalid authorization token")

    user_id = str(user.get("id") or "")
    if not user_id:
        return _deny(401, "Invalid authorization token")
    who = user.get("email") or user_id

    claim_role = role_from_metadata(user)
    if claim_role == ROL_ADMIN:
        return GuardResult(user_id=user_id)

    try:
        perfil = perfiles.obtener_perfil(user_id)
    except (EventosError, SQLAlchemyError) as e:
        logger.error(f"Error verifying perfil: {e}")
        return _deny(500, "Failed to verify user profile")

    if not perfil:
        logger.warning(f"User {who} attempted to {action} but no perfil row was found.")
        return _deny(403, f"Administrator profile not found for user {who}")

    if normalize_role(perfil.get("rol")) != ROL_ADMIN:
        logger.warning(f'User {who} attempted to {action} with role "{perfil.get("rol")}".')
        return _deny(403, f"Only administrators can {action}")

    try:
        identity.admin_update_user(
            user_id,
            {"app_metadata": {**(user.get("app_metadata") or {}), "role": ROL_ADMIN}},
        )
    except IdentityProviderError as e:
        logger.warning(f"Failed to sync admin role to app_metadata for {who}: {e}")

    return GuardResult(user_id=user_id)
