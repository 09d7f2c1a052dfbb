"""
Perfil Service

Profile rows (perfiles) keyed by identity-provider user id. Reading a profile
is the first query of every session, so driver errors here are classified:
policy recursion and a missing table become remediation errors instead of a
generic failure.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from eventos.database.errors import NotFoundError, ValidationError, classify_db_error
from eventos.models.orm_models import ROLES, Perfil
from eventos.services.base import BaseService

logger = logging.getLogger(__name__)


def _perfil_dict(p: Perfil) -> Dict[str, Any]:
    return {
        "user_id": str(p.user_id),
        "nombre": p.nombre,
        "rol": p.rol,
        "creado_en": p.creado_en,
    }


def validar_rol(rol: Any) -> str:
    value = str(rol or "").strip().upper()
    if value not in ROLES:
        raise ValidationError("Rol inválido. Debe ser ADMIN u OPERADOR")
    return value


class PerfilService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    def obtener_perfil(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            p = self.db.scalars(select(Perfil).where(Perfil.user_id == str(user_id))).first()
        except DBAPIError as e:
            self.db.rollback()
            err = classify_db_error(e)
            logger.error(f"Error cargando perfil {user_id}: {e}")
            if err is e:
                raise
            raise err from e
        return _perfil_dict(p) if p else None

    def listar_perfiles(self) -> List[Dict[str, Any]]:
        rows = self.db.scalars(select(Perfil).order_by(Perfil.creado_en.desc())).all()
        return [_perfil_dict(p) for p in rows]

    def crear_perfil(self, user_id: str, nombre: str, rol: str) -> Dict[str, Any]:
        p = Perfil(user_id=str(user_id), nombre=str(nombre).strip(), rol=validar_rol(rol))
        self.db.add(p)
        self._commit()
        self.db.refresh(p)
        return _perfil_dict(p)

    def actualizar_perfil(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        p = self.db.get(Perfil, str(user_id))
        if p is None:
            raise NotFoundError("Perfil no encontrado")
        if "nombre" in data:
            nombre = str(data.get("nombre") or "").strip()
            if not nombre:
                raise ValidationError("El nombre es obligatorio")
            p.nombre = nombre
        if "rol" in data:
            p.rol = validar_rol(data.get("rol"))
        self._commit()
        self.db.refresh(p)
        return _perfil_dict(p)

    def eliminar_perfil(self, user_id: str) -> bool:
        p = self.db.get(Perfil, str(user_id))
        if p is None:
            return False
        self.db.delete(p)
        self._commit()
        return True
