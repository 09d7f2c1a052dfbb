import logging

from fastapi import APIRouter, Depends, Request

from eventos.dependencies import get_salon_service, require_admin_role, require_auth
from eventos.security.session_claims import AppSession
from eventos.services.salon_service import SalonService
from eventos.utils import read_json

logger = logging.getLogger(__name__)
router = APIRouter()


# --- Salones ---


@router.get("/api/salones")
async def api_listar_salones(
    _: AppSession = Depends(require_auth),
    svc: SalonService = Depends(get_salon_service),
):
    return {"ok": True, "salones": svc.obtener_salones()}


@router.get("/api/salones/{salon_id}")
async def api_obtener_salon(
    salon_id: int,
    _: AppSession = Depends(require_auth),
    svc: SalonService = Depends(get_salon_service),
):
    return {"ok": True, "salon": svc.obtener_salon(salon_id)}


@router.post("/api/salones")
async def api_crear_salon(
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: SalonService = Depends(get_salon_service),
):
    data = await read_json(request)
    return {"ok": True, "salon": svc.crear_salon(data)}


@router.put("/api/salones/{salon_id}")
async def api_actualizar_salon(
    salon_id: int,
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: SalonService = Depends(get_salon_service),
):
    data = await read_json(request)
    return {"ok": True, "salon": svc.actualizar_salon(salon_id, data)}


@router.delete("/api/salones/{salon_id}")
async def api_eliminar_salon(
    salon_id: int,
    _: AppSession = Depends(require_admin_role),
    svc: SalonService = Depends(get_salon_service),
):
    svc.eliminar_salon(salon_id)
    return {"ok": True}


# --- Distribuciones ---


@router.get("/api/salones/{salon_id}/distribuciones")
async def api_listar_distribuciones(
    salon_id: int,
    _: AppSession = Depends(require_auth),
    svc: SalonService = Depends(get_salon_service),
):
    return {"ok": True, "distribuciones": svc.obtener_distribuciones(salon_id)}


@router.post("/api/salones/{salon_id}/distribuciones")
async def api_crear_distribucion(
    salon_id: int,
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: SalonService = Depends(get_salon_service),
):
    data = await read_json(request)
    return {"ok": True, "distribucion": svc.crear_distribucion(salon_id, data)}


@router.put("/api/distribuciones/{distribucion_id}")
async def api_actualizar_distribucion(
    distribucion_id: int,
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: SalonService = Depends(get_salon_service),
):
    data = await read_json(request)
    return {"ok": True, "distribucion": svc.actualizar_distribucion(distribucion_id, data)}


@router.delete("/api/distribuciones/{distribucion_id}")
async def api_eliminar_distribucion(
    distribucion_id: int,
    _: AppSession = Depends(require_admin_role),
    svc: SalonService = Depends(get_salon_service),
):
    svc.eliminar_distribucion(distribucion_id)
    return {"ok": True}
