from fastapi import APIRouter, Depends, Request

from eventos.dependencies import get_servicio_service, require_admin_role, require_auth
from eventos.security.session_claims import AppSession
from eventos.services.servicio_service import ServicioService
from eventos.utils import read_json

router = APIRouter()


@router.get("/api/categorias-servicios")
async def api_listar_categorias(
    _: AppSession = Depends(require_auth),
    svc: ServicioService = Depends(get_servicio_service),
):
    return {"ok": True, "categorias": svc.obtener_categorias()}


@router.post("/api/categorias-servicios")
async def api_crear_categoria(
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: ServicioService = Depends(get_servicio_service),
):
    return {"ok": True, "categoria": svc.crear_categoria(await read_json(request))}


@router.put("/api/categorias-servicios/{categoria_id}")
async def api_actualizar_categoria(
    categoria_id: int,
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: ServicioService = Depends(get_servicio_service),
):
    return {"ok": True, "categoria": svc.actualizar_categoria(categoria_id, await read_json(request))}


@router.delete("/api/categorias-servicios/{categoria_id}")
async def api_eliminar_categoria(
    categoria_id: int,
    _: AppSession = Depends(require_admin_role),
    svc: ServicioService = Depends(get_servicio_service),
):
    svc.eliminar_categoria(categoria_id)
    return {"ok": True}


@router.get("/api/servicios")
async def api_listar_servicios(
    _: AppSession = Depends(require_auth),
    svc: ServicioService = Depends(get_servicio_service),
):
    return {"ok": True, "servicios": svc.obtener_servicios()}


@router.post("/api/servicios")
async def api_crear_servicio(
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: ServicioService = Depends(get_servicio_service),
):
    return {"ok": True, "servicio": svc.crear_servicio(await read_json(request))}


@router.put("/api/servicios/{servicio_id}")
async def api_actualizar_servicio(
    servicio_id: int,
    request: Request,
    _: AppSession = Depends(require_admin_role),
    svc: ServicioService = Depends(get_servicio_service),
):
    return {"ok": True, "servicio": svc.actualizar_servicio(servicio_id, await read_json(request))}


@router.delete("/api/servicios/{servicio_id}")
async def api_eliminar_servicio(
    servicio_id: int,
    _: AppSession = Depends(require_admin_role),
    svc: ServicioService = Depends(get_servicio_service),
):
    svc.eliminar_servicio(servicio_id)
    return {"ok": True}
