"""
Eventos API Dependencies
FastAPI dependency injection: database session, identity client and the
per-request AppSession.
"""

import logging
from functools import lru_cache
from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from eventos.admin_bridge.client import AdminBridgeClient
from eventos.database.connection import SessionLocal
from eventos.database.errors import IdentityProviderError
from eventos.security.session_claims import BACKOFFICE_ROLES, AppSession, get_request_token
from eventos.services.dashboard_service import DashboardService
from eventos.services.identity_service import IdentityClient
from eventos.services.perfil_service import PerfilService
from eventos.services.presupuesto_service import PresupuestoService
from eventos.services.reserva_service import ReservaService
from eventos.services.salon_service import SalonService
from eventos.services.servicio_service import ServicioService

logger = logging.getLogger(__name__)


def get_db_session() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@lru_cache(maxsize=1)
def get_identity_client() -> IdentityClient:
    return IdentityClient.from_env()


# --- Services ---


def get_perfil_service(db: Session = Depends(get_db_session)) -> PerfilService:
    return PerfilService(db)


def get_reserva_service(db: Session = Depends(get_db_session)) -> ReservaService:
    return ReservaService(db)


def get_salon_service(db: Session = Depends(get_db_session)) -> SalonService:
    return SalonService(db)


def get_servicio_service(db: Session = Depends(get_db_session)) -> ServicioService:
    return ServicioService(db)


def get_dashboard_service(db: Session = Depends(get_db_session)) -> DashboardService:
    return DashboardService(db)


def get_presupuesto_service(db: Session = Depends(get_db_session)) -> PresupuestoService:
    return PresupuestoService(db)


# --- Sesión ---


def get_app_session(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
) -> AppSession:
    """Resolve the bearer token to its principal and profile row.

    PolicyRecursionError / SetupRequiredError from the profile read propagate
    to the app-level handler, which answers with the remediation payload.
    """
    token = get_request_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        user = identity.get_user(token)
    except IdentityProviderError as e:
        logger.info(f"Rejected token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user_id = str(user.get("id") or "")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    perfil = perfiles.obtener_perfil(user_id)
    if not perfil:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Perfil no encontrado")

    return AppSession(user_id=user_id, email=user.get("email"), access_token=token, perfil=perfil)


def require_auth(app_session: AppSession = Depends(get_app_session)) -> AppSession:
    if app_session.rol not in BACKOFFICE_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return app_session


def require_admin_role(app_session: AppSession = Depends(require_auth)) -> AppSession:
    if not app_session.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Solo administradores")
    return app_session


@lru_cache(maxsize=1)
def get_admin_bridge_client() -> AdminBridgeClient:
    return AdminBridgeClient.from_env()
