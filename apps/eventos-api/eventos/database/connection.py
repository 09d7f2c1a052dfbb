import os
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

# Configuración de logs
logger = logging.getLogger(__name__)

# --- SQLAlchemy Configuration ---


def get_database_url() -> str:
    """Construye la URL de conexión a partir de variables de entorno."""
    url = os.getenv("DATABASE_URL")
    if url:
        # Asegurar driver correcto para PostgreSQL si no se especifica
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+psycopg2://", 1)
        elif url.startswith("postgresql://") and "+" not in url.split("://")[0]:
            url = url.replace("postgresql://", "postgresql+psycopg2://", 1)
        return url

    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME", "eventos")
    sslmode = os.getenv("DB_SSLMODE", "")

    auth = f"{user}:{password}" if password else user
    base_url = f"postgresql+psycopg2://{auth}@{host}:{port}/{db_name}"

    # Required by hosted databases (Supabase, Neon)
    if sslmode:
        base_url += f"?sslmode={sslmode}"

    return base_url


def _is_serverless() -> bool:
    return bool(
        os.getenv("VERCEL")
        or os.getenv("AWS_LAMBDA_FUNCTION_NAME")
        or os.getenv("K_SERVICE")
    )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer for {name}, using {default}")
        return default


DATABASE_URL = get_database_url()

serverless = _is_serverless()
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,  # Verifica la conexión antes de usarla
    pool_size=_int_env("DB_POOL_SIZE", 1 if serverless else 10),
    max_overflow=_int_env("DB_MAX_OVERFLOW", 0 if serverless else 20),
    pool_recycle=1800,  # Reciclar conexiones cada 30 mins
)

session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
SessionLocal = scoped_session(session_factory)


