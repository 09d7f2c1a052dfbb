"""
Domain errors and database error classification.

The storage layer translates driver errors into these types so services and
routers never match on raw SQLSTATE codes or message text.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import DBAPIError

from eventos.models.orm_models import NO_SOLAPE_CONSTRAINT

EXCLUSION_VIOLATION = "23P01"
INFINITE_RECURSION = "42P17"
UNDEFINED_TABLE = "42P01"

CONFLICT_MESSAGE = (
    "Ya existe una reserva en ese rango de fechas para el salón seleccionado. "
    "Por favor elija otro horario."
)


class EventosError(Exception):
    """Base error; `status_code` is the HTTP status routers answer with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message}


class ValidationError(EventosError):
    status_code = 400


class NotFoundError(EventosError):
    status_code = 404


class PermissionDeniedError(EventosError):
    status_code = 403


class ReservationConflictError(EventosError):
    """The room already holds a non-cancelled reservation overlapping the range."""

    status_code = 409

    def __init__(self, message: str = CONFLICT_MESSAGE):
        super().__init__(message)


class RemediationRequiredError(EventosError):
    """Errors the operator must fix by running statements against the database."""

    status_code = 503
    code = "REMEDIATION_REQUIRED"
    steps: List[str] = []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": self.code,
            "mensaje": self.message,
            "remediation": list(self.steps),
        }


class PolicyRecursionError(RemediationRequiredError):
    code = "RLS_RECURSION_ERROR"
    steps = [
        "DROP POLICY IF EXISTS perfiles_select_admin ON public.perfiles;",
        "CREATE OR REPLACE FUNCTION public.es_admin(uid uuid) RETURNS boolean "
        "LANGUAGE sql SECURITY DEFINER SET search_path = public AS $$ "
        "SELECT EXISTS (SELECT 1 FROM public.perfiles WHERE user_id = uid AND rol = 'ADMIN') $$;",
        "CREATE POLICY perfiles_select_admin ON public.perfiles FOR SELECT "
        "USING (auth.uid() = user_id OR public.es_admin(auth.uid()));",
    ]

    def __init__(self, message: str = "Se detectó una recursión infinita en las políticas RLS de perfiles"):
        super().__init__(message)


class SetupRequiredError(RemediationRequiredError):
    code = "SETUP_REQUIRED"
    steps = [
        "python -m eventos.cli.migrate",
        "Crear el primer usuario administrador en el proveedor de identidad",
        "INSERT INTO public.perfiles (user_id, nombre, rol) "
        "VALUES ('PEGA-AQUI-EL-UUID-DEL-USUARIO', 'Administrador Hotel', 'ADMIN');",
    ]

    def __init__(self, message: str = "No se encontró la tabla 'perfiles'. La base de datos no está configurada"):
        super().__init__(message)


def _pgcode(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None)
    return str(code) if code else None


def is_overlap_violation(exc: BaseException) -> bool:
    if _pgcode(exc) == EXCLUSION_VIOLATION:
        return True
    return NO_SOLAPE_CONSTRAINT in str(exc)


def classify_db_error(exc: DBAPIError) -> Exception:
    """Map a driver error to a domain error, or return it unchanged."""
    code = _pgcode(exc)
    text = str(exc).lower()
    if is_overlap_violation(exc):
        return ReservationConflictError()
    if code == INFINITE_RECURSION or "infinite recursion" in text:
        return PolicyRecursionError()
    if code == UNDEFINED_TABLE and "perfiles" in text:
        return SetupRequiredError()
    return exc


class IdentityProviderError(EventosError):
    """The identity provider rejected a call or could not be reached."""

    status_code = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = int(status_code)


class StorageError(EventosError):
    status_code = 502
