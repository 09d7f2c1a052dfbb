# Eventos API Models Package
from eventos.models.orm_models import (
    # Base
    Base,
    # Perfiles
    Perfil,
    # Salones
    Salon,
    Distribucion,
    # Clientes
    Cliente,
    # Servicios
    CategoriaServicio,
    Servicio,
    # Reservas
    Reserva,
    ReservaServicio,
)

__all__ = [
    "Base",
    "Perfil",
    "Salon",
    "Distribucion",
    "Cliente",
    "CategoriaServicio",
    "Servicio",
    "Reserva",
    "ReservaServicio",
]
