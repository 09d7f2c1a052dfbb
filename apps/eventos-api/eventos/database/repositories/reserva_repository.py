from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import joinedload, selectinload

from .base import BaseRepository
from ..errors import NotFoundError
from ...models.orm_models import Cliente, Distribucion, Reserva, ReservaServicio, Salon, Servicio


def _cliente_dict(c: Cliente) -> Dict[str, Any]:
    return {
        "id": c.id,
        "nombre": c.nombre,
        "empresa": c.empresa,
        "telefono": c.telefono,
        "email": c.email,
    }


def _reserva_dict(r: Reserva) -> Dict[str, Any]:
    return {
        "id": r.id,
        "id_cliente": r.id_cliente,
        "id_salon": r.id_salon,
        "id_distribucion": r.id_distribucion,
        "fecha_inicio": r.fecha_inicio,
        "fecha_fin": r.fecha_fin,
        "estado": r.estado,
        "monto": r.monto,
        "cantidad_personas": r.cantidad_personas,
        "observaciones": r.observaciones,
        "creado_por": r.creado_por,
        "presupuesto_url": r.presupuesto_url,
    }


class ReservaRepository(BaseRepository):
    """Row-level access for reservations, their client and their service lines.

    Methods flush but never commit; the caller decides the transaction
    boundary. Driver errors surface as domain errors (an overlap becomes
    ReservationConflictError).
    """

    # --- Clientes ---

    def buscar_cliente(self, email: Optional[str], nombre: str) -> Optional[Dict[str, Any]]:
        conds = [Cliente.nombre == nombre]
        if email:
            conds.append(Cliente.email == email)
        c = self.db.scalars(
            select(Cliente).where(or_(*conds)).order_by(Cliente.id).limit(1)
        ).first()
        return _cliente_dict(c) if c else None

    def obtener_cliente(self, cliente_id: int) -> Optional[Dict[str, Any]]:
        c = self.db.get(Cliente, int(cliente_id))
        return _cliente_dict(c) if c else None

    def crear_cliente(self, data: Dict[str, Any]) -> int:
        c = Cliente(
            nombre=data["nombre"],
            email=data.get("email"),
            telefono=data.get("telefono"),
            empresa=data.get("empresa"),
        )
        self.db.add(c)
        self.flush()
        return int(c.id)

    def actualizar_cliente(self, cliente_id: int, cambios: Dict[str, Any]) -> None:
        if not cambios:
            return
        c = self.db.get(Cliente, int(cliente_id))
        if c is None:
            raise NotFoundError("Cliente no encontrado")
        for key, value in cambios.items():
            setattr(c, key, value)
        self.flush()

    # --- Salones ---

    def obtener_salon(self, salon_id: int) -> Optional[Dict[str, Any]]:
        s = self.db.get(Salon, int(salon_id))
        if s is None:
            return None
        return {
            "id": s.id,
            "nombre": s.nombre,
            "capacidad": s.capacidad,
            "precio_base": s.precio_base,
        }

    def obtener_distribucion(self, distribucion_id: int) -> Optional[Dict[str, Any]]:
        d = self.db.get(Distribucion, int(distribucion_id))
        if d is None:
            return None
        return {"id": d.id, "id_salon": d.id_salon, "nombre": d.nombre, "capacidad": d.capacidad}

    # --- Reservas ---

    def obtener_reserva(self, reserva_id: int) -> Optional[Dict[str, Any]]:
        r = self.db.get(Reserva, int(reserva_id))
        return _reserva_dict(r) if r else None

    def obtener_reserva_detalle(self, reserva_id: int) -> Optional[Dict[str, Any]]:
        stmt = (
            select(Reserva)
            .options(
                joinedload(Reserva.cliente),
                joinedload(Reserva.salon),
                joinedload(Reserva.distribucion),
                selectinload(Reserva.reserva_servicios)
                .joinedload(ReservaServicio.servicio)
                .joinedload(Servicio.categoria),
            )
            .where(Reserva.id == int(reserva_id))
        )
        r = self.db.scalars(stmt).unique().first()
        if r is None:
            return None
        out = _reserva_dict(r)
        out["cliente"] = _cliente_dict(r.cliente) if r.cliente else None
        out["salon"] = (
            {
                "id": r.salon.id,
                "nombre": r.salon.nombre,
                "capacidad": r.salon.capacidad,
                "precio_base": r.salon.precio_base,
                "descripcion": r.salon.descripcion,
            }
            if r.salon
            else None
        )
        out["distribucion"] = (
            {
                "id": r.distribucion.id,
                "nombre": r.distribucion.nombre,
                "capacidad": r.distribucion.capacidad,
            }
            if r.distribucion
            else None
        )
        out["servicios"] = [
            {
                "id_servicio": rs.id_servicio,
                "nombre": rs.servicio.nombre if rs.servicio else None,
                "categoria": (
                    rs.servicio.categoria.nombre
                    if rs.servicio and rs.servicio.categoria
                    else None
                ),
                "descripcion": rs.servicio.descripcion if rs.servicio else None,
                "precio": rs.servicio.precio if rs.servicio else 0,
                "cantidad": rs.cantidad,
            }
            for rs in r.reserva_servicios
        ]
        return out

    def listar_reservas(self, estado: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = (
            select(Reserva)
            .options(joinedload(Reserva.cliente), joinedload(Reserva.salon))
            .order_by(Reserva.fecha_inicio.desc())
        )
        if estado:
            stmt = stmt.where(Reserva.estado == estado)
        out: List[Dict[str, Any]] = []
        for r in self.db.scalars(stmt).unique().all():
            item = _reserva_dict(r)
            item["cliente_nombre"] = r.cliente.nombre if r.cliente else None
            item["salon_nombre"] = r.salon.nombre if r.salon else None
            out.append(item)
        return out

    def insertar_reserva(self, data: Dict[str, Any]) -> int:
        r = Reserva(**data)
        self.db.add(r)
        self.flush()
        return int(r.id)

    def actualizar_reserva(self, reserva_id: int, data: Dict[str, Any]) -> None:
        r = self.db.get(Reserva, int(reserva_id))
        if r is None:
            raise NotFoundError("Reserva no encontrada")
        for key, value in data.items():
            setattr(r, key, value)
        self.flush()

    def eliminar_reserva(self, reserva_id: int) -> Optional[Dict[str, Any]]:
        r = self.db.get(Reserva, int(reserva_id))
        if r is None:
            return None
        out = _reserva_dict(r)
        self.db.delete(r)
        self.flush()
        return out

    # --- Servicios de la reserva ---

    def reemplazar_servicios(self, reserva_id: int, lineas: Dict[int, int]) -> None:
        rid = int(reserva_id)
        self.db.execute(delete(ReservaServicio).where(ReservaServicio.id_reserva == rid))
        for servicio_id, cantidad in lineas.items():
            self.db.add(
                ReservaServicio(id_reserva=rid, id_servicio=int(servicio_id), cantidad=int(cantidad))
            )
        self.flush()

    def servicios_de_categorias(self, categoria_ids: List[int]) -> List[int]:
        if not categoria_ids:
            return []
        rows = self.db.execute(
            select(Servicio.id)
            .where(Servicio.id_categoria.in_([int(c) for c in categoria_ids]))
            .order_by(Servicio.id)
        ).all()
        return [int(r[0]) for r in rows]
