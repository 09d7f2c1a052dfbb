# Eventos API Database Package
from eventos.database.connection import SessionLocal, get_database_url

__all__ = [
    "SessionLocal",
    "get_database_url",
]
