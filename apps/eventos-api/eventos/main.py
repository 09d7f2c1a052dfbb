"""
Eventos API
FastAPI back office for hotel event halls: reservations, rooms and layouts,
service catalog, dashboard and user management.
"""

import os
import logging
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

# Setup logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

from eventos import __version__
from eventos.database.connection import get_database_url
from eventos.database.errors import EventosError, RemediationRequiredError
from eventos.routers import auth, dashboard, reservas, salones, servicios, usuarios
from eventos.utils import env_flag

app = FastAPI(
    title="Eventos API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

allowed_origins = [
    o.strip()
    for o in str(os.getenv("CORS_ALLOWED_ORIGINS") or "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials="*" not in allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EventosError)
async def _eventos_error_handler(request: Request, exc: EventosError):
    if isinstance(exc, RemediationRequiredError):
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"Error on {request.url.path}: {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(SQLAlchemyError)
async def _db_error_handler(request: Request, exc: SQLAlchemyError):
    msg = str(getattr(exc, "orig", None) or exc)
    logger.error(f"Database error on {request.url.path}: {msg}")
    return JSONResponse({"ok": False, "error": msg}, status_code=500)


@app.exception_handler(HTTPException)
async def _http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse({"ok": False, "error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.on_event("startup")
async def _startup_auto_migrate() -> None:
    if not env_flag("AUTO_MIGRATE_DB", False):
        return
    required = env_flag("AUTO_MIGRATE_DB_REQUIRED", False)
    try:
        from eventos.database.migration_runner import upgrade_head

        upgrade_head(sqlalchemy_url=get_database_url(), lock_name="eventos-db")
    except Exception as e:
        logger.error(f"Auto-migrate failed: {e}")
        if required:
            raise


@app.get("/")
async def root():
    return {"name": "Eventos API", "version": __version__, "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


app.include_router(auth.router, tags=["Auth"])
app.include_router(reservas.router, tags=["Reservas"])
app.include_router(salones.router, tags=["Salones"])
app.include_router(servicios.router, tags=["Servicios"])
app.include_router(dashboard.router, tags=["Dashboard"])
app.include_router(usuarios.router, tags=["Usuarios"])
