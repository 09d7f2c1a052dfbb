import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from eventos.dependencies import get_presupuesto_service, get_reserva_service, require_auth
from eventos.security.session_claims import AppSession
from eventos.services import b2_storage
from eventos.services.presupuesto_service import PresupuestoService
from eventos.services.reserva_service import ReservaService
from eventos.utils import read_json

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/reservas")
async def api_listar_reservas(
    estado: Optional[str] = Query(None),
    _: AppSession = Depends(require_auth),
    svc: ReservaService = Depends(get_reserva_service),
):
    return {"ok": True, "reservas": svc.listar_reservas(estado)}


@router.get("/api/reservas/{reserva_id}")
async def api_obtener_reserva(
    reserva_id: int,
    _: AppSession = Depends(require_auth),
    svc: ReservaService = Depends(get_reserva_service),
):
    return {"ok": True, "reserva": svc.obtener_reserva(reserva_id)}


@router.post("/api/reservas")
async def api_crear_reserva(
    request: Request,
    app_session: AppSession = Depends(require_auth),
    svc: ReservaService = Depends(get_reserva_service),
):
    data = await read_json(request)
    return svc.guardar_reserva(data, creado_por=app_session.user_id)


@router.put("/api/reservas/{reserva_id}")
async def api_actualizar_reserva(
    reserva_id: int,
    request: Request,
    _: AppSession = Depends(require_auth),
    svc: ReservaService = Depends(get_reserva_service),
):
    data = await read_json(request)
    return svc.guardar_reserva(data, reserva_id=reserva_id)


@router.patch("/api/reservas/{reserva_id}/estado")
async def api_cambiar_estado(
    reserva_id: int,
    request: Request,
    _: AppSession = Depends(require_auth),
    svc: ReservaService = Depends(get_reserva_service),
):
    data = await read_json(request)
    return svc.cambiar_estado(reserva_id, data.get("estado"))


@router.delete("/api/reservas/{reserva_id}")
async def api_eliminar_reserva(
    reserva_id: int,
    _: AppSession = Depends(require_auth),
    svc: ReservaService = Depends(get_reserva_service),
):
    eliminada = svc.eliminar_reserva(reserva_id)
    path = eliminada.get("presupuesto_url")
    if path:
        ok, msg = b2_storage.delete_file(path)
        if not ok:
            logger.warning(f"Presupuesto de la reserva {reserva_id} no eliminado del storage: {msg}")
    return {"ok": True}


@router.post("/api/reservas/{reserva_id}/presupuesto")
async def api_exportar_presupuesto(
    reserva_id: int,
    request: Request,
    _: AppSession = Depends(require_auth),
    svc: PresupuestoService = Depends(get_presupuesto_service),
):
    data = await read_json(request)
    return svc.exportar(reserva_id, tipo_evento=data.get("tipo_evento"))
