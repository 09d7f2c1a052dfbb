# Eventos API Services Package
from eventos.services.reserva_service import ReservaService
from eventos.services.salon_service import SalonService
from eventos.services.servicio_service import ServicioService
from eventos.services.perfil_service import PerfilService
from eventos.services.dashboard_service import DashboardService
from eventos.services.presupuesto_service import PresupuestoService

__all__ = [
    "ReservaService",
    "SalonService",
    "ServicioService",
    "PerfilService",
    "DashboardService",
    "PresupuestoService",
]
