from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    BigInteger,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Numeric,
    Index,
    CheckConstraint,
    func,
    literal_column,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import ExcludeConstraint, UUID


ROL_ADMIN = "ADMIN"
ROL_OPERADOR = "OPERADOR"
ROLES = (ROL_ADMIN, ROL_OPERADOR)

ESTADO_PENDIENTE = "Pendiente"
ESTADO_CONFIRMADO = "Confirmado"
ESTADO_PAGADO = "Pagado"
ESTADO_CANCELADO = "Cancelado"
ESTADOS_RESERVA = (
    ESTADO_PENDIENTE,
    ESTADO_CONFIRMADO,
    ESTADO_PAGADO,
    ESTADO_CANCELADO,
)

NO_SOLAPE_CONSTRAINT = "reservas_no_solape_excl"


class Base(DeclarativeBase):
    pass


# --- Perfiles y Roles ---


class Perfil(Base):
    __tablename__ = "perfiles"

    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    rol: Mapped[str] = mapped_column(String(20), nullable=False, server_default=ROL_OPERADOR)
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("rol IN ('ADMIN', 'OPERADOR')", name="perfiles_rol_check"),
    )


# --- Catalogo: Salones y Distribuciones ---


class Salon(Base):
    __tablename__ = "salones"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    capacidad: Mapped[int] = mapped_column(Integer, nullable=False)
    precio_base: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    descripcion: Mapped[Optional[str]] = mapped_column(Text)
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    distribuciones: Mapped[List["Distribucion"]] = relationship(
        "Distribucion",
        back_populates="salon",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Distribucion.nombre",
    )

    __table_args__ = (
        CheckConstraint("capacidad > 0", name="salones_capacidad_check"),
        CheckConstraint("precio_base >= 0", name="salones_precio_base_check"),
    )


class Distribucion(Base):
    __tablename__ = "distribuciones"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    id_salon: Mapped[int] = mapped_column(
        ForeignKey("salones.id", ondelete="CASCADE"), nullable=False
    )
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    capacidad: Mapped[int] = mapped_column(Integer, nullable=False)
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    salon: Mapped["Salon"] = relationship("Salon", back_populates="distribuciones")

    __table_args__ = (
        CheckConstraint("capacidad > 0", name="distribuciones_capacidad_check"),
        Index("idx_distribuciones_id_salon", "id_salon"),
    )


# --- Clientes ---


class Cliente(Base):
    __tablename__ = "clientes"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    empresa: Mapped[Optional[str]] = mapped_column(String(255))
    telefono: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    reservas: Mapped[List["Reserva"]] = relationship("Reserva", back_populates="cliente")

    __table_args__ = (
        Index("idx_clientes_email", "email"),
        Index("idx_clientes_nombre", "nombre"),
    )


# --- Servicios adicionales ---


class CategoriaServicio(Base):
    __tablename__ = "categorias_servicios"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[Optional[str]] = mapped_column(Text)
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    servicios: Mapped[List["Servicio"]] = relationship(
        "Servicio",
        back_populates="categoria",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Servicio(Base):
    __tablename__ = "servicios"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    id_categoria: Mapped[int] = mapped_column(
        ForeignKey("categorias_servicios.id", ondelete="CASCADE"), nullable=False
    )
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[Optional[str]] = mapped_column(Text)
    precio: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    categoria: Mapped["CategoriaServicio"] = relationship(
        "CategoriaServicio", back_populates="servicios"
    )

    __table_args__ = (
        CheckConstraint("precio >= 0", name="servicios_precio_check"),
        Index("idx_servicios_id_categoria", "id_categoria"),
    )


# --- Reservas ---


class Reserva(Base):
    __tablename__ = "reservas"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    id_cliente: Mapped[Optional[int]] = mapped_column(
        ForeignKey("clientes.id", ondelete="SET NULL")
    )
    id_salon: Mapped[int] = mapped_column(
        ForeignKey("salones.id", ondelete="RESTRICT"), nullable=False
    )
    id_distribucion: Mapped[Optional[int]] = mapped_column(
        ForeignKey("distribuciones.id", ondelete="SET NULL")
    )
    fecha_inicio: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    fecha_fin: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    estado: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=ESTADO_PENDIENTE
    )
    monto: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    cantidad_personas: Mapped[Optional[int]] = mapped_column(Integer)
    observaciones: Mapped[Optional[str]] = mapped_column(Text)
    creado_por: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False))
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    actualizado_en: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )
    presupuesto_url: Mapped[Optional[str]] = mapped_column(Text)

    cliente: Mapped[Optional["Cliente"]] = relationship("Cliente", back_populates="reservas")
    salon: Mapped["Salon"] = relationship("Salon")
    distribucion: Mapped[Optional["Distribucion"]] = relationship("Distribucion")
    reserva_servicios: Mapped[List["ReservaServicio"]] = relationship(
        "ReservaServicio",
        back_populates="reserva",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("fecha_fin > fecha_inicio", name="reservas_rango_check"),
        CheckConstraint(
            "estado IN ('Pendiente', 'Confirmado', 'Pagado', 'Cancelado')",
            name="reservas_estado_check",
        ),
        Index("idx_reservas_id_salon", "id_salon"),
        Index("idx_reservas_fecha_inicio", "fecha_inicio"),
    )


# Requires the btree_gist extension (created by the baseline migration).
Reserva.__table__.append_constraint(
    ExcludeConstraint(
        (Reserva.__table__.c.id_salon, "="),
        (
            func.tstzrange(
                Reserva.__table__.c.fecha_inicio,
                Reserva.__table__.c.fecha_fin,
                literal_column("'[)'"),
            ),
            "&&",
        ),
        name=NO_SOLAPE_CONSTRAINT,
        using="gist",
        where=text("estado <> 'Cancelado'"),
    )
)


class ReservaServicio(Base):
    __tablename__ = "reserva_servicios"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    id_reserva: Mapped[int] = mapped_column(
        ForeignKey("reservas.id", ondelete="CASCADE"), nullable=False
    )
    id_servicio: Mapped[int] = mapped_column(
        ForeignKey("servicios.id", ondelete="CASCADE"), nullable=False
    )
    cantidad: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    creado_en: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    reserva: Mapped["Reserva"] = relationship("Reserva", back_populates="reserva_servicios")
    servicio: Mapped["Servicio"] = relationship("Servicio")

    __table_args__ = (
        CheckConstraint("cantidad >= 1", name="reserva_servicios_cantidad_check"),
        Index("idx_reserva_servicios_id_reserva", "id_reserva"),
    )


__all__ = [
    "Base",
    "Perfil",
    "Salon",
    "Distribucion",
    "Cliente",
    "CategoriaServicio",
    "Servicio",
    "Reserva",
    "ReservaServicio",
    "ROL_ADMIN",
    "ROL_OPERADOR",
    "ROLES",
    "ESTADO_PENDIENTE",
    "ESTADO_CONFIRMADO",
    "ESTADO_PAGADO",
    "ESTADO_CANCELADO",
    "ESTADOS_RESERVA",
    "NO_SOLAPE_CONSTRAINT",
]
