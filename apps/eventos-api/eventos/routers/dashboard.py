from typing import Optional

from fastapi import APIRouter, Depends, Query

from eventos.dependencies import get_dashboard_service, require_auth
from eventos.security.session_claims import AppSession
from eventos.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/api/dashboard")
async def api_dashboard(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    salon_id: Optional[int] = Query(None),
    estado: Optional[str] = Query(None),
    _: AppSession = Depends(require_auth),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.obtener_dashboard(year=year, month=month, salon_id=salon_id, estado=estado)
