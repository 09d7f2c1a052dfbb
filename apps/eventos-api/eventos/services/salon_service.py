"""
Salon Service - SQLAlchemy ORM Implementation

Rooms (salones) and their layouts (distribuciones). A room's capacity can
never drop below its largest layout; a layout never exceeds its room.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from eventos.database.errors import NotFoundError, ValidationError
from eventos.models.orm_models import Distribucion, Salon
from eventos.services.base import BaseService
from eventos.utils import to_decimal, to_int

logger = logging.getLogger(__name__)


def validar_capacidad_salon(capacidad: Any, mayor_distribucion: int = 0) -> int:
    cap = to_int(capacidad)
    if cap is None or cap <= 0:
        raise ValidationError("La capacidad debe ser un número entero positivo")
    if mayor_distribucion and cap < int(mayor_distribucion):
        raise ValidationError(
            "La capacidad del salon no puede ser inferior a la mayor distribucion "
            f"({int(mayor_distribucion)} personas)"
        )
    return cap


def validar_capacidad_distribucion(capacidad: Any, capacidad_salon: int) -> int:
    cap = to_int(capacidad)
    if cap is None or cap <= 0:
        raise ValidationError("La capacidad debe ser un número entero positivo")
    if cap > int(capacidad_salon):
        raise ValidationError(
            f"La distribucion no puede superar la capacidad del salon ({int(capacidad_salon)} personas)"
        )
    return cap


def validar_precio_base(value: Any) -> Decimal:
    precio = to_decimal(value)
    if precio is None or precio < 0:
        raise ValidationError("El precio base debe ser un número mayor o igual a 0")
    return precio


def _nombre_requerido(value: Any) -> str:
    nombre = str(value or "").strip()
    if not nombre:
        raise ValidationError("El nombre es obligatorio")
    return nombre


def _salon_dict(s: Salon, with_distribuciones: bool = False) -> Dict[str, Any]:
    out = {
        "id": s.id,
        "nombre": s.nombre,
        "capacidad": s.capacidad,
        "precio_base": s.precio_base,
        "descripcion": s.descripcion,
    }
    if with_distribuciones:
        out["distribuciones"] = [_distribucion_dict(d) for d in s.distribuciones]
    return out


def _distribucion_dict(d: Distribucion) -> Dict[str, Any]:
    return {
        "id": d.id,
        "id_salon": d.id_salon,
        "nombre": d.nombre,
        "capacidad": d.capacidad,
    }


class SalonService(BaseService):
    """Service for managing rooms and their layouts."""

    def __init__(self, db: Session):
        super().__init__(db)

    def _get_salon(self, salon_id: int) -> Salon:
        s = self.db.get(Salon, int(salon_id))
        if s is None:
            raise NotFoundError("Salón no encontrado")
        return s

    def _mayor_distribucion(self, salon_id: int) -> int:
        stmt = select(func.max(Distribucion.capacidad)).where(Distribucion.id_salon == int(salon_id))
        return int(self.db.scalar(stmt) or 0)

    # =========================================================================
    # SALONES
    # =========================================================================

    def obtener_salones(self) -> List[Dict[str, Any]]:
        salones = self.db.scalars(select(Salon).order_by(Salon.nombre)).all()
        return [_salon_dict(s) for s in salones]

    def obtener_salon(self, salon_id: int) -> Dict[str, Any]:
        s = self.db.scalars(
            select(Salon)
            .options(selectinload(Salon.distribuciones))
            .where(Salon.id == int(salon_id))
        ).first()
        if s is None:
            raise NotFoundError("Salón no encontrado")
        return _salon_dict(s, with_distribuciones=True)

    def crear_salon(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raw = data.get("precio_base")
        precio = Decimal("0") if raw in (None, "") else validar_precio_base(raw)
        s = Salon(
            nombre=_nombre_requerido(data.get("nombre")),
            capacidad=validar_capacidad_salon(data.get("capacidad")),
            precio_base=precio,
            descripcion=(str(data.get("descripcion")).strip() or None) if data.get("descripcion") else None,
        )
        self.db.add(s)
        self._commit()
        self.db.refresh(s)
        logger.info(f"Salón creado: {s.id} {s.nombre}")
        return _salon_dict(s)

    def actualizar_salon(self, salon_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        s = self._get_salon(salon_id)
        if "nombre" in data:
            s.nombre = _nombre_requerido(data.get("nombre"))
        if "capacidad" in data:
            s.capacidad = validar_capacidad_salon(
                data.get("capacidad"), self._mayor_distribucion(s.id)
            )
        if "precio_base" in data:
            s.precio_base = validar_precio_base(data.get("precio_base"))
        if "descripcion" in data:
            s.descripcion = str(data.get("descripcion") or "").strip() or None
        self._commit()
        self.db.refresh(s)
        return _salon_dict(s)

    def eliminar_salon(self, salon_id: int) -> bool:
        s = self._get_salon(salon_id)
        self.db.delete(s)
        try:
            self._commit()
        except IntegrityError:
            raise ValidationError("No se puede eliminar un salón que tiene reservas")
        logger.info(f"Salón eliminado: {salon_id}")
        return True

    # =========================================================================
    # DISTRIBUCIONES
    # =========================================================================

    def obtener_distribuciones(self, salon_id: int) -> List[Dict[str, Any]]:
        self._get_salon(salon_id)
        rows = self.db.scalars(
            select(Distribucion)
            .where(Distribucion.id_salon == int(salon_id))
            .order_by(Distribucion.nombre)
        ).all()
        return [_distribucion_dict(d) for d in rows]

    def crear_distribucion(self, salon_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        s = self._get_salon(salon_id)
        d = Distribucion(
            id_salon=s.id,
            nombre=_nombre_requerido(data.get("nombre")),
            capacidad=validar_capacidad_distribucion(data.get("capacidad"), s.capacidad),
        )
        self.db.add(d)
        self._commit()
        self.db.refresh(d)
        return _distribucion_dict(d)

    def actualizar_distribucion(self, distribucion_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        d = self.db.get(Distribucion, int(distribucion_id))
        if d is None:
            raise NotFoundError("Distribución no encontrada")
        if "nombre" in data:
            d.nombre = _nombre_requerido(data.get("nombre"))
        if "capacidad" in data:
            s = self._get_salon(d.id_salon)
            d.capacidad = validar_capacidad_distribucion(data.get("capacidad"), s.capacidad)
        self._commit()
        self.db.refresh(d)
        return _distribucion_dict(d)

    def eliminar_distribucion(self, distribucion_id: int) -> bool:
        d = self.db.get(Distribucion, int(distribucion_id))
        if d is None:
            raise NotFoundError("Distribución no encontrada")
        self.db.delete(d)
        self._commit()
        return True
