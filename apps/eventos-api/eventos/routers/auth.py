import os
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from eventos.database.errors import IdentityProviderError
from eventos.dependencies import get_app_session, get_identity_client, get_perfil_service
from eventos.security.session_claims import AppSession, get_request_token
from eventos.services.identity_service import IdentityClient
from eventos.services.perfil_service import PerfilService
from eventos.utils import read_json

logger = logging.getLogger(__name__)

router = APIRouter()


def _session_payload(tokens: Dict[str, Any], perfiles: PerfilService) -> JSONResponse:
    user = tokens.get("user") or {}
    user_id = str(user.get("id") or "")
    perfil = perfiles.obtener_perfil(user_id) if user_id else None
    if not perfil:
        return JSONResponse({"ok": False, "error": "Perfil no encontrado"}, status_code=403)
    session = AppSession(
        user_id=user_id,
        email=user.get("email"),
        access_token=str(tokens.get("access_token") or ""),
        perfil=perfil,
    )
    return JSONResponse(
        {
            "ok": True,
            "access_token": tokens.get("access_token"),
            "refresh_token": tokens.get("refresh_token"),
            "expires_in": tokens.get("expires_in"),
            "session": jsonable_encoder(session.to_dict()),
        }
    )


@router.post("/api/auth/login")
async def api_login(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    data = await read_json(request)
    email = str(data.get("email") or "").strip()
    password = str(data.get("password") or "")
    if not email or not password:
        return JSONResponse({"ok": False, "error": "Email y contraseña son obligatorios"}, status_code=400)
    try:
        tokens = identity.sign_in_with_password(email, password)
    except IdentityProviderError as e:
        logger.info(f"Login rechazado para {email}: {e}")
        return JSONResponse({"ok": False, "error": "Credenciales inválidas"}, status_code=401)
    return _session_payload(tokens, perfiles)


@router.post("/api/auth/refresh")
async def api_refresh(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    data = await read_json(request)
    refresh_token = str(data.get("refresh_token") or "").strip()
    if not refresh_token:
        return JSONResponse({"ok": False, "error": "refresh_token requerido"}, status_code=400)
    try:
        tokens = identity.refresh_session(refresh_token)
    except IdentityProviderError as e:
        return JSONResponse({"ok": False, "error": e.message}, status_code=401)
    return _session_payload(tokens, perfiles)


@router.post("/api/auth/recover")
async def api_recover(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
):
    data = await read_json(request)
    email = str(data.get("email") or "").strip()
    if not email:
        return JSONResponse({"ok": False, "error": "Email requerido"}, status_code=400)
    try:
        identity.reset_password_for_email(email, os.getenv("PASSWORD_RESET_REDIRECT_URL") or None)
    except IdentityProviderError as e:
        return JSONResponse({"ok": False, "error": e.message}, status_code=400)
    return {"ok": True}


@router.post("/api/auth/logout")
async def api_logout(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
):
    token = get_request_token(request)
    if token:
        try:
            identity.sign_out(token)
        except IdentityProviderError as e:
            logger.warning(f"Logout at identity provider failed: {e}")
    return {"ok": True}


@router.get("/api/auth/session")
async def api_session(app_session: AppSession = Depends(get_app_session)):
    return {"ok": True, "session": jsonable_encoder(app_session.to_dict())}
