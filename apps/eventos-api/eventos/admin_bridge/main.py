"""
Eventos Admin Bridge
Privileged user-management endpoints. Runs separately from the back-office
API because it holds the identity provider service key; every endpoint is
guarded by `require_admin`.
"""

import os
import logging
from dotenv import load_dotenv

load_dotenv()

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

from eventos.admin_bridge.guard import GuardResult, require_admin
from eventos.database.errors import EventosError, IdentityProviderError
from eventos.dependencies import get_identity_client, get_perfil_service
from eventos.models.orm_models import ROLES
from eventos.security.session_claims import get_request_token, normalize_role
from eventos.services.identity_service import IdentityClient
from eventos.services.perfil_service import PerfilService
from eventos.utils import read_json

app = FastAPI(
    title="Eventos Admin Bridge",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

router = APIRouter(prefix=str(os.getenv("ADMIN_BRIDGE_PREFIX") or "").rstrip("/"))


def _reply(result: GuardResult) -> JSONResponse:
    return JSONResponse(result.body, status_code=result.status)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return _error(str(exc) or "Internal server error", 500)


@app.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/create-user")
async def create_user(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    guard = require_admin(identity, perfiles, get_request_token(request), "create users")
    if not guard.ok:
        return _reply(guard)

    data = await read_json(request)
    email = str(data.get("email") or "").strip()
    password = str(data.get("password") or "")
    nombre = str(data.get("nombre") or data.get("name") or "").strip()
    rol_raw = data.get("rol") or data.get("role")
    if not email or not password or not nombre or not rol_raw:
        return _error("Missing required fields: email, password, nombre, rol", 400)
    rol = normalize_role(rol_raw)
    if rol not in ROLES:
        return _error("Invalid role. Must be ADMIN or OPERADOR", 400)

    try:
        user = identity.admin_create_user(
            email,
            password,
            user_metadata={"nombre": nombre},
            app_metadata={"role": rol},
        )
    except IdentityProviderError as e:
        logger.error(f"Error creating auth user {email}: {e}")
        return _error(e.message, 400)

    user = user.get("user") or user
    user_id = str(user.get("id") or "")
    if not user_id:
        return _error("Identity provider returned no user id", 400)

    try:
        perfiles.crear_perfil(user_id, nombre, rol)
    except (EventosError, SQLAlchemyError) as e:
        logger.error(f"Error creating perfil for {user_id}: {e}")
        try:
            identity.admin_delete_user(user_id)
        except IdentityProviderError as cleanup:
            logger.error(f"Could not remove orphan auth user {user_id}: {cleanup}")
        return _error("Failed to create user profile", 500)

    logger.info(f"User {email} created with role {rol} by {guard.user_id}")
    return {
        "success": True,
        "user": {"id": user_id, "email": user.get("email") or email, "name": nombre, "role": rol},
    }


@router.post("/update-user-email")
async def update_user_email(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    guard = require_admin(identity, perfiles, get_request_token(request), "update user emails")
    if not guard.ok:
        return _reply(guard)

    data = await read_json(request)
    user_id = str(data.get("userId") or "").strip()
    new_email = str(data.get("newEmail") or "").strip()
    if not user_id or not new_email:
        return _error("Missing required fields: userId, newEmail", 400)

    try:
        user = identity.admin_update_user(user_id, {"email": new_email, "email_confirm": True})
    except IdentityProviderError as e:
        logger.error(f"Error updating email for {user_id}: {e}")
        return _error(e.message, 400)

    user = user.get("user") or user
    return {"success": True, "user": {"id": user_id, "email": user.get("email") or new_email}}


@router.post("/get-user-email")
async def get_user_email(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    guard = require_admin(identity, perfiles, get_request_token(request), "view user emails")
    if not guard.ok:
        return _reply(guard)

    data = await read_json(request)
    user_id = str(data.get("userId") or "").strip()
    if not user_id:
        return _error("Missing required field: userId", 400)

    try:
        user = identity.admin_get_user(user_id)
    except IdentityProviderError as e:
        logger.error(f"Error reading user {user_id}: {e}")
        return _error(e.message, 400)

    user = user.get("user") or user
    return {"success": True, "email": user.get("email")}


@router.post("/delete-user")
async def delete_user(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    """Remove the profile row first, then the login account.

    The two steps are not atomic: if the account removal fails the profile
    is already gone and the error is returned as is.
    """
    guard = require_admin(identity, perfiles, get_request_token(request), "delete users")
    if not guard.ok:
        return _reply(guard)

    data = await read_json(request)
    user_id = str(data.get("userId") or "").strip()
    if not user_id:
        return _error("Missing required field: userId", 400)

    try:
        perfiles.eliminar_perfil(user_id)
    except (EventosError, SQLAlchemyError) as e:
        logger.error(f"Error deleting perfil {user_id}: {e}")
        return _error(str(e), 400)

    try:
        identity.admin_delete_user(user_id)
    except IdentityProviderError as e:
        logger.error(f"Perfil {user_id} deleted but auth user removal failed: {e}")
        return _error(e.message, 400)

    logger.info(f"User {user_id} deleted by {guard.user_id}")
    return {"success": True}


app.include_router(router, tags=["Admin Bridge"])
