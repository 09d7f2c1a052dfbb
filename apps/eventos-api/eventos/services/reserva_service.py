"""
Reserva Service - reservation engine.

Create-or-update of a reservation together with its client and service
lines. Overlap protection lives in the database (exclusion constraint on
room + time range); this service only surfaces the violation as
ReservationConflictError.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventos.database.errors import EventosError, NotFoundError, ValidationError
from eventos.database.repositories.reserva_repository import ReservaRepository
from eventos.models.orm_models import ESTADO_PENDIENTE, ESTADOS_RESERVA
from eventos.services.base import BaseService
from eventos.services.cliente_service import cambios_cliente_vinculado, resolver_cliente
from eventos.utils import parse_datetime, to_decimal, to_int

logger = logging.getLogger(__name__)

AVISO_SERVICIOS = (
    "La reserva se guardó, pero no se pudieron guardar los servicios adicionales"
)


# =========================================================================
# Selección de servicios
# =========================================================================


def fijar_cantidad(seleccion: Dict[int, int], servicio_id: int, cantidad: Any) -> Dict[int, int]:
    """Set a line quantity; zero or negative removes the line."""
    out = dict(seleccion)
    qty = to_int(cantidad, 0) or 0
    if qty <= 0:
        out.pop(int(servicio_id), None)
    else:
        out[int(servicio_id)] = qty
    return out


def alternar_servicio(seleccion: Dict[int, int], servicio_id: int) -> Dict[int, int]:
    out = dict(seleccion)
    sid = int(servicio_id)
    if sid in out:
        del out[sid]
    else:
        out[sid] = 1
    return out


def seleccionar_categoria(seleccion: Dict[int, int], servicio_ids: Iterable[int]) -> Dict[int, int]:
    """Add every service of a category not already selected, with quantity 1."""
    out = dict(seleccion)
    for sid in servicio_ids:
        out.setdefault(int(sid), 1)
    return out


def _seleccion_desde_payload(raw: Any) -> Dict[int, int]:
    seleccion: Dict[int, int] = {}
    if not raw:
        return seleccion
    if isinstance(raw, dict):
        items = [{"id_servicio": k, "cantidad": v} for k, v in raw.items()]
    elif isinstance(raw, list):
        items = raw
    else:
        raise ValidationError("Formato de servicios inválido")
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Formato de servicios inválido")
        sid = to_int(item.get("id_servicio") if "id_servicio" in item else item.get("id"))
        if sid is None:
            raise ValidationError("Servicio inválido")
        seleccion = fijar_cantidad(seleccion, sid, item.get("cantidad", 1))
    return seleccion


# =========================================================================
# Entrada
# =========================================================================


@dataclass
class ReservaInput:
    nombre_cliente: str
    id_salon: int
    fecha_inicio: datetime
    fecha_fin: datetime
    estado: str = ESTADO_PENDIENTE
    email_cliente: Optional[str] = None
    telefono_cliente: Optional[str] = None
    empresa_cliente: Optional[str] = None
    id_distribucion: Optional[int] = None
    cantidad_personas: Optional[int] = None
    observaciones: Optional[str] = None
    servicios: Dict[int, int] = field(default_factory=dict)
    categorias: List[int] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ReservaInput":
        data = data or {}
        nombre = str(data.get("nombre_cliente") or "").strip()
        if not nombre:
            raise ValidationError("El nombre del cliente es obligatorio")

        id_salon = to_int(data.get("id_salon"))
        if not id_salon:
            raise ValidationError("Debe seleccionar un salón")

        inicio = parse_datetime(data.get("fecha_inicio"))
        fin = parse_datetime(data.get("fecha_fin"))
        if inicio is None or fin is None:
            raise ValidationError("Las fechas de inicio y fin son obligatorias")
        if fin <= inicio:
            raise ValidationError("La fecha de fin debe ser posterior a la fecha de inicio")

        estado = str(data.get("estado") or ESTADO_PENDIENTE).strip()
        if estado not in ESTADOS_RESERVA:
            raise ValidationError(f"Estado inválido: {estado}")

        cantidad_personas = None
        if data.get("cantidad_personas") not in (None, ""):
            cantidad_personas = to_int(data.get("cantidad_personas"))
            if cantidad_personas is None or cantidad_personas < 0:
                raise ValidationError("La cantidad de personas debe ser un número positivo")

        categorias = data.get("categorias") or []
        if not isinstance(categorias, list):
            raise ValidationError("Formato de categorías inválido")

        return cls(
            nombre_cliente=nombre,
            id_salon=id_salon,
            fecha_inicio=inicio,
            fecha_fin=fin,
            estado=estado,
            email_cliente=data.get("email_cliente"),
            telefono_cliente=data.get("telefono_cliente"),
            empresa_cliente=data.get("empresa_cliente"),
            id_distribucion=to_int(data.get("id_distribucion")) or None,
            cantidad_personas=cantidad_personas,
            observaciones=(str(data.get("observaciones")).strip() or None)
            if data.get("observaciones") is not None
            else None,
            servicios=_seleccion_desde_payload(data.get("servicios")),
            categorias=[c for c in (to_int(x) for x in categorias) if c],
        )


# =========================================================================
# Servicio
# =========================================================================


class ReservaService(BaseService):
    """Reservation engine. Accepts an explicit repository for tests."""

    def __init__(self, db: Optional[Session] = None, repo: Optional[ReservaRepository] = None):
        super().__init__(db)
        self.repo = repo or ReservaRepository(db)

    def listar_reservas(self, estado: Optional[str] = None) -> List[Dict[str, Any]]:
        if estado and estado not in ESTADOS_RESERVA:
            raise ValidationError(f"Estado inválido: {estado}")
        return self.repo.listar_reservas(estado)

    def obtener_reserva(self, reserva_id: int) -> Dict[str, Any]:
        r = self.repo.obtener_reserva_detalle(int(reserva_id))
        if not r:
            raise NotFoundError("Reserva no encontrada")
        return r

    def _resolver_cliente_id(self, entrada: ReservaInput, existente: Optional[Dict[str, Any]]) -> int:
        if existente and existente.get("id_cliente"):
            cliente_id = int(existente["id_cliente"])
            actual = self.repo.obtener_cliente(cliente_id)
            if actual:
                cambios = cambios_cliente_vinculado(
                    actual,
                    entrada.nombre_cliente,
                    entrada.email_cliente,
                    entrada.telefono_cliente,
                    entrada.empresa_cliente,
                )
                self.repo.actualizar_cliente(cliente_id, cambios)
                return cliente_id

        res = resolver_cliente(
            self.repo.buscar_cliente,
            entrada.nombre_cliente,
            entrada.email_cliente,
            entrada.telefono_cliente,
            entrada.empresa_cliente,
        )
        if res.es_nuevo:
            return self.repo.crear_cliente(res.nuevo)
        self.repo.actualizar_cliente(res.cliente_id, res.cambios)
        return res.cliente_id

    def guardar_reserva(
        self,
        data: Dict[str, Any],
        reserva_id: Optional[int] = None,
        creado_por: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create (reserva_id None) or update a reservation.

        Client and reservation row commit together. Service lines are
        replaced afterwards in their own transaction; if that fails the
        reservation stays saved and a warning is returned.
        """
        entrada = ReservaInput.from_payload(data)

        seleccion = dict(entrada.servicios)
        if entrada.categorias:
            seleccion = seleccionar_categoria(
                seleccion, self.repo.servicios_de_categorias(entrada.categorias)
            )

        salon = self.repo.obtener_salon(entrada.id_salon)
        if not salon:
            raise ValidationError("El salón seleccionado no existe")
        if entrada.id_distribucion is not None:
            distribucion = self.repo.obtener_distribucion(entrada.id_distribucion)
            if not distribucion or int(distribucion["id_salon"]) != entrada.id_salon:
                raise ValidationError("La distribución seleccionada no pertenece al salón")
        monto = to_decimal(salon.get("precio_base"), Decimal("0"))

        try:
            existente = None
            if reserva_id is not None:
                existente = self.repo.obtener_reserva(int(reserva_id))
                if not existente:
                    raise NotFoundError("Reserva no encontrada")

            cliente_id = self._resolver_cliente_id(entrada, existente)
            campos = {
                "id_cliente": cliente_id,
                "id_salon": entrada.id_salon,
                "id_distribucion": entrada.id_distribucion,
                "fecha_inicio": entrada.fecha_inicio,
                "fecha_fin": entrada.fecha_fin,
                "estado": entrada.estado,
                "monto": monto,
                "cantidad_personas": entrada.cantidad_personas,
                "observaciones": entrada.observaciones,
            }
            if existente:
                rid = int(existente["id"])
                self.repo.actualizar_reserva(rid, campos)
            else:
                campos["creado_por"] = creado_por
                rid = self.repo.insertar_reserva(campos)
            self.repo.commit()
        except (EventosError, SQLAlchemyError):
            self.repo.rollback()
            raise

        warnings: List[str] = []
        try:
            self.repo.reemplazar_servicios(rid, seleccion)
            self.repo.commit()
        except (EventosError, SQLAlchemyError) as e:
            self.repo.rollback()
            logger.warning(f"Reserva {rid} guardada sin servicios: {e}")
            warnings.append(AVISO_SERVICIOS)

        logger.info(f"Reserva {rid} {'actualizada' if existente else 'creada'} (salon={entrada.id_salon})")
        return {
            "ok": True,
            "id": rid,
            "monto": monto,
            "servicios": seleccion,
            "warnings": warnings,
        }

    def cambiar_estado(self, reserva_id: int, estado: str) -> Dict[str, Any]:
        estado = str(estado or "").strip()
        if estado not in ESTADOS_RESERVA:
            raise ValidationError(f"Estado inválido: {estado}")
        try:
            self.repo.actualizar_reserva(int(reserva_id), {"estado": estado})
            self.repo.commit()
        except (EventosError, SQLAlchemyError):
            self.repo.rollback()
            raise
        return {"ok": True, "id": int(reserva_id), "estado": estado}

    def eliminar_reserva(self, reserva_id: int) -> Dict[str, Any]:
        """Delete unconditionally; service lines go with it (ON DELETE CASCADE)."""
        try:
            deleted = self.repo.eliminar_reserva(int(reserva_id))
            if not deleted:
                raise NotFoundError("Reserva no encontrada")
            self.repo.commit()
        except (EventosError, SQLAlchemyError):
            self.repo.rollback()
            raise
        logger.info(f"Reserva {reserva_id} eliminada")
        return deleted
