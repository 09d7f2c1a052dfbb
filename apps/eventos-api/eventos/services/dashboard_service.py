"""
Dashboard Service

Monthly calendar grid plus KPI rollups. Everything is read-only; the
calendar/overlap helpers are plain functions so they can be exercised
without a database.
"""

import calendar
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from eventos.database.errors import ValidationError
from eventos.models.orm_models import ESTADO_CANCELADO, ESTADOS_RESERVA, Reserva, Salon
from eventos.services.base import BaseService
from eventos.utils import get_app_timezone, now_local

logger = logging.getLogger(__name__)

COLORES_ESTADO = {
    "Pendiente": "#F7C948",
    "Confirmado": "#4C7AF2",
    "Pagado": "#35B679",
    "Cancelado": "#B0B7C3",
}

SIN_DATOS = "N/A"


def rango_dia(dia: date, tz=None) -> Tuple[datetime, datetime]:
    """[D 00:00:00, D 23:59:59] in local time."""
    tz = tz or get_app_timezone()
    return (
        datetime.combine(dia, time(0, 0, 0), tzinfo=tz),
        datetime.combine(dia, time(23, 59, 59), tzinfo=tz),
    )


def rango_mes(year: int, month: int, tz=None) -> Tuple[datetime, datetime]:
    last = calendar.monthrange(year, month)[1]
    inicio, _ = rango_dia(date(year, month, 1), tz)
    _, fin = rango_dia(date(year, month, last), tz)
    return inicio, fin


def restar_meses(dia: date, meses: int) -> date:
    idx = dia.year * 12 + (dia.month - 1) - meses
    year, month = divmod(idx, 12)
    month += 1
    return date(year, month, min(dia.day, calendar.monthrange(year, month)[1]))


def se_superpone(inicio: datetime, fin: datetime, desde: datetime, hasta: datetime) -> bool:
    """Closed-interval overlap test used for calendar cells."""
    return inicio <= hasta and fin >= desde


def reservas_del_dia(reservas: List[Dict[str, Any]], dia: date, tz=None) -> List[Dict[str, Any]]:
    desde, hasta = rango_dia(dia, tz)
    return [
        r for r in reservas if se_superpone(r["fecha_inicio"], r["fecha_fin"], desde, hasta)
    ]


def construir_calendario(
    year: int, month: int, reservas: List[Dict[str, Any]], tz=None
) -> List[Optional[Dict[str, Any]]]:
    """Month grid, Sunday first: leading None cells then one cell per day."""
    primero = date(year, month, 1)
    offset = (primero.weekday() + 1) % 7
    celdas: List[Optional[Dict[str, Any]]] = [None] * offset
    for d in range(1, calendar.monthrange(year, month)[1] + 1):
        dia = date(year, month, d)
        celdas.append(
            {
                "dia": d,
                "fecha": dia.isoformat(),
                "reservas": reservas_del_dia(reservas, dia, tz),
            }
        )
    return celdas


def salon_mas_reservado(nombres: List[str]) -> str:
    """Room name with most entries; ties keep first appearance."""
    if not nombres:
        return SIN_DATOS
    conteo = Counter(nombres)
    # Counter preserves insertion order and sorted() is stable.
    nombre, n = sorted(conteo.items(), key=lambda kv: kv[1], reverse=True)[0]
    return f"{nombre} ({n} reservas)"


class DashboardService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    def _reserva_dict(self, r: Reserva) -> Dict[str, Any]:
        return {
            "id": r.id,
            "id_salon": r.id_salon,
            "salon_nombre": r.salon.nombre if r.salon else None,
            "cliente_nombre": r.cliente.nombre if r.cliente else None,
            "fecha_inicio": r.fecha_inicio,
            "fecha_fin": r.fecha_fin,
            "estado": r.estado,
            "color": COLORES_ESTADO.get(r.estado),
            "monto": r.monto,
        }

    def reservas_del_mes(
        self,
        year: int,
        month: int,
        salon_id: Optional[int] = None,
        estado: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        inicio, fin = rango_mes(year, month)
        stmt = (
            select(Reserva)
            .options(joinedload(Reserva.cliente), joinedload(Reserva.salon))
            .where(Reserva.fecha_inicio <= fin, Reserva.fecha_fin >= inicio)
            .order_by(Reserva.fecha_inicio)
        )
        if salon_id:
            stmt = stmt.where(Reserva.id_salon == int(salon_id))
        if estado:
            stmt = stmt.where(Reserva.estado == estado)
        return [self._reserva_dict(r) for r in self.db.scalars(stmt).unique().all()]

    def contar_reservas_mes(self, year: int, month: int) -> int:
        inicio, fin = rango_mes(year, month)
        return int(
            self.db.scalar(
                select(func.count(Reserva.id)).where(
                    Reserva.fecha_inicio >= inicio,
                    Reserva.fecha_inicio <= fin,
                    Reserva.estado != ESTADO_CANCELADO,
                )
            )
            or 0
        )

    def salon_top_trimestre(self, hoy: date) -> str:
        desde, _ = rango_dia(restar_meses(hoy, 3))
        rows = self.db.execute(
            select(Salon.nombre)
            .join(Reserva, Reserva.id_salon == Salon.id)
            .where(Reserva.fecha_inicio >= desde, Reserva.estado != ESTADO_CANCELADO)
            .order_by(Reserva.fecha_inicio, Reserva.id)
        ).all()
        return salon_mas_reservado([r[0] for r in rows])

    def contar_salones(self) -> int:
        return int(self.db.scalar(select(func.count(Salon.id))) or 0)

    def contar_eventos_hoy(self, hoy: date) -> int:
        desde, hasta = rango_dia(hoy)
        return int(
            self.db.scalar(
                select(func.count(Reserva.id)).where(
                    Reserva.fecha_inicio <= hasta,
                    Reserva.fecha_fin >= desde,
                    Reserva.estado != ESTADO_CANCELADO,
                )
            )
            or 0
        )

    def obtener_dashboard(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        salon_id: Optional[int] = None,
        estado: Optional[str] = None,
    ) -> Dict[str, Any]:
        hoy = now_local().date()
        year = int(year or hoy.year)
        month = int(month or hoy.month)
        if month < 1 or month > 12:
            raise ValidationError("Mes inválido")
        if estado and estado not in ESTADOS_RESERVA:
            raise ValidationError(f"Estado inválido: {estado}")

        salones = [
            {"id": s.id, "nombre": s.nombre}
            for s in self.db.scalars(select(Salon).order_by(Salon.nombre)).all()
        ]
        reservas = self.reservas_del_mes(year, month, salon_id, estado)
        return {
            "ok": True,
            "year": year,
            "month": month,
            "salones": salones,
            "reservas": reservas,
            "calendario": construir_calendario(year, month, reservas),
            "colores": COLORES_ESTADO,
            "kpis": {
                "reservas_mes": self.contar_reservas_mes(year, month),
                "salon_top": self.salon_top_trimestre(hoy),
                "total_salones": self.contar_salones(),
                "eventos_hoy": self.contar_eventos_hoy(hoy),
            },
        }
