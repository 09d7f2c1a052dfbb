import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from eventos.admin_bridge.client import AdminBridgeClient
from eventos.dependencies import get_admin_bridge_client, get_perfil_service, require_admin_role
from eventos.security.session_claims import AppSession
from eventos.services.perfil_service import PerfilService
from eventos.utils import read_json

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/usuarios")
async def api_listar_usuarios(
    _: AppSession = Depends(require_admin_role),
    perfiles: PerfilService = Depends(get_perfil_service),
):
    return {"ok": True, "usuarios": perfiles.listar_perfiles()}


@router.post("/api/usuarios")
async def api_crear_usuario(
    request: Request,
    app_session: AppSession = Depends(require_admin_role),
    bridge: AdminBridgeClient = Depends(get_admin_bridge_client),
):
    data = await read_json(request)
    status_code, body = bridge.create_user(
        app_session.access_token,
        str(data.get("email") or "").strip(),
        str(data.get("password") or ""),
        str(data.get("nombre") or "").strip(),
        str(data.get("rol") or "").strip().upper(),
    )
    return JSONResponse(body, status_code=status_code)


@router.put("/api/usuarios/{user_id}")
async def api_actualizar_usuario(
    user_id: str,
    request: Request,
    app_session: AppSession = Depends(require_admin_role),
    perfiles: PerfilService = Depends(get_perfil_service),
    bridge: AdminBridgeClient = Depends(get_admin_bridge_client),
):
    """Update the profile row, then sync the login email through the bridge.

    A failed email sync keeps the profile change and reports email_synced=False.
    """
    data = await read_json(request)
    cambios = {k: data[k] for k in ("nombre", "rol") if k in data}
    perfil = perfiles.actualizar_perfil(user_id, cambios)

    email = str(data.get("email") or "").strip()
    email_synced = None
    email_error = None
    if email:
        status_code, body = bridge.update_user_email(app_session.access_token, user_id, email)
        email_synced = status_code < 400
        if not email_synced:
            email_error = body.get("error")
            logger.warning(f"Perfil {user_id} actualizado pero el email no se sincronizó: {email_error}")

    out = {"ok": True, "perfil": perfil, "email_synced": email_synced}
    if email_error:
        out["email_error"] = email_error
    return out


@router.get("/api/usuarios/{user_id}/email")
async def api_email_usuario(
    user_id: str,
    app_session: AppSession = Depends(require_admin_role),
    bridge: AdminBridgeClient = Depends(get_admin_bridge_client),
):
    status_code, body = bridge.get_user_email(app_session.access_token, user_id)
    return JSONResponse(body, status_code=status_code)


@router.delete("/api/usuarios/{user_id}")
async def api_eliminar_usuario(
    user_id: str,
    app_session: AppSession = Depends(require_admin_role),
    bridge: AdminBridgeClient = Depends(get_admin_bridge_client),
):
    status_code, body = bridge.delete_user(app_session.access_token, user_id)
    return JSONResponse(body, status_code=status_code)
