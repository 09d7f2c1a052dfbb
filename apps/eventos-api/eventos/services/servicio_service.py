import logging
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from eventos.database.errors import NotFoundError, ValidationError
from eventos.models.orm_models import CategoriaServicio, Servicio
from eventos.services.base import BaseService
from eventos.utils import to_decimal, to_int

logger = logging.getLogger(__name__)


def validar_precio(value: Any) -> Decimal:
    precio = to_decimal(value)
    if precio is None or precio < 0:
        raise ValidationError("El precio debe ser un número válido mayor o igual a 0")
    return precio


def _nombre(value: Any) -> str:
    nombre = str(value or "").strip()
    if not nombre:
        raise ValidationError("El nombre es obligatorio")
    return nombre


def _texto(value: Any):
    return str(value or "").strip() or None


class ServicioService(BaseService):
    """Additional-service catalog: categories and their services."""

    def __init__(self, db: Session):
        super().__init__(db)

    # --- Categorías ---

    def obtener_categorias(self) -> List[Dict[str, Any]]:
        rows = self.db.scalars(select(CategoriaServicio).order_by(CategoriaServicio.nombre)).all()
        return [{"id": c.id, "nombre": c.nombre, "descripcion": c.descripcion} for c in rows]

    def crear_categoria(self, data: Dict[str, Any]) -> Dict[str, Any]:
        c = CategoriaServicio(nombre=_nombre(data.get("nombre")), descripcion=_texto(data.get("descripcion")))
        self.db.add(c)
        self._commit()
        self.db.refresh(c)
        return {"id": c.id, "nombre": c.nombre, "descripcion": c.descripcion}

    def actualizar_categoria(self, categoria_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        c = self.db.get(CategoriaServicio, int(categoria_id))
        if c is None:
            raise NotFoundError("Categoría no encontrada")
        if "nombre" in data:
            c.nombre = _nombre(data.get("nombre"))
        if "descripcion" in data:
            c.descripcion = _texto(data.get("descripcion"))
        self._commit()
        self.db.refresh(c)
        return {"id": c.id, "nombre": c.nombre, "descripcion": c.descripcion}

    def eliminar_categoria(self, categoria_id: int) -> bool:
        # Services go with it (ON DELETE CASCADE).
        c = self.db.get(CategoriaServicio, int(categoria_id))
        if c is None:
            raise NotFoundError("Categoría no encontrada")
        self.db.delete(c)
        self._commit()
        logger.info(f"Categoría de servicios eliminada: {categoria_id}")
        return True

    # --- Servicios ---

    def _servicio_dict(self, s: Servicio) -> Dict[str, Any]:
        return {
            "id": s.id,
            "id_categoria": s.id_categoria,
            "categoria": s.categoria.nombre if s.categoria else None,
            "nombre": s.nombre,
            "descripcion": s.descripcion,
            "precio": s.precio,
        }

    def obtener_servicios(self) -> List[Dict[str, Any]]:
        rows = self.db.scalars(
            select(Servicio).options(joinedload(Servicio.categoria)).order_by(Servicio.nombre)
        ).all()
        return [self._servicio_dict(s) for s in rows]

    def _categoria_existente(self, value: Any) -> int:
        cid = to_int(value)
        if not cid or self.db.get(CategoriaServicio, cid) is None:
            raise ValidationError("Debe seleccionar una categoría válida")
        return cid

    def crear_servicio(self, data: Dict[str, Any]) -> Dict[str, Any]:
        s = Servicio(
            id_categoria=self._categoria_existente(data.get("id_categoria")),
            nombre=_nombre(data.get("nombre")),
            descripcion=_texto(data.get("descripcion")),
            precio=validar_precio(data.get("precio")),
        )
        self.db.add(s)
        self._commit()
        self.db.refresh(s)
        return self._servicio_dict(s)

    def actualizar_servicio(self, servicio_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        s = self.db.get(Servicio, int(servicio_id))
        if s is None:
            raise NotFoundError("Servicio no encontrado")
        if "id_categoria" in data:
            s.id_categoria = self._categoria_existente(data.get("id_categoria"))
        if "nombre" in data:
            s.nombre = _nombre(data.get("nombre"))
        if "descripcion" in data:
            s.descripcion = _texto(data.get("descripcion"))
        if "precio" in data:
            s.precio = validar_precio(data.get("precio"))
        self._commit()
        self.db.refresh(s)
        return self._servicio_dict(s)

    def eliminar_servicio(self, servicio_id: int) -> bool:
        s = self.db.get(Servicio, int(servicio_id))
        if s is None:
            raise NotFoundError("Servicio no encontrado")
        self.db.delete(s)
        self._commit()
        return True
