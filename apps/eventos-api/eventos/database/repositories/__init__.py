from eventos.database.repositories.reserva_repository import ReservaRepository

__all__ = ["ReservaRepository"]
