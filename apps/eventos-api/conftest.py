"""
Pytest Configuration
Configuration file for pytest test runner
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest

project_path = Path(__file__).parent
sys.path.insert(0, str(project_path))

os.environ.setdefault("DATABASE_URL", "postgresql+psycopg2://postgres@localhost:5432/eventos_test")
os.environ.setdefault("APP_TIMEZONE", "America/Argentina/Buenos_Aires")
os.environ.setdefault("IDENTITY_URL", "http://identity.test")
os.environ.setdefault("AUTO_MIGRATE_DB", "false")

from sqlalchemy.exc import IntegrityError

from eventos.database.errors import ReservationConflictError, ValidationError
from eventos.models.orm_models import ESTADO_CANCELADO, NO_SOLAPE_CONSTRAINT

TZ = timezone(timedelta(hours=-3))


# Test markers
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
    config.addinivalue_line(
        "markers", "api: API tests"
    )
    config.addinivalue_line(
        "markers", "slow: Slow running tests"
    )


# Test collection
collect_ignore_glob = [
    "alembic/*",
    "*/venv/*",
    "*/env/*",
    "*/__pycache__/*"
]


class PgError(Exception):
    """Stand-in for a psycopg2 error: carries `pgcode` like the driver does."""

    def __init__(self, message: str, pgcode: Optional[str] = None):
        super().__init__(message)
        self.pgcode = pgcode


def overlap_error() -> IntegrityError:
    orig = PgError(
        f'conflicting key value violates exclusion constraint "{NO_SOLAPE_CONSTRAINT}"',
        "23P01",
    )
    return IntegrityError("INSERT INTO reservas ...", {}, orig)


class FakeReservaRepository:
    """In-memory ReservaRepository.

    Writes are staged until commit(); commit enforces the room/time-range
    exclusion rule against already committed rows, the way the database
    constraint does.
    """

    def __init__(self, salones: Optional[Dict[int, Dict[str, Any]]] = None):
        self.salones = salones or {}
        self.clientes: Dict[int, Dict[str, Any]] = {}
        self.reservas: Dict[int, Dict[str, Any]] = {}
        self.lineas: Dict[int, Dict[int, int]] = {}
        self.servicios: Dict[int, Dict[str, Any]] = {}
        self.categorias: Dict[int, List[int]] = {}
        self.distribuciones: Dict[int, Dict[str, Any]] = {}
        self._pending: Optional[Dict[str, Any]] = None
        self._next_cliente = 1
        self._next_reserva = 1
        self.fail_lineas = False
        self.commits = 0
        self.rollbacks = 0

    # --- staging ---

    def _stage(self) -> Dict[str, Any]:
        if self._pending is None:
            self._pending = {
                "clientes": {k: dict(v) for k, v in self.clientes.items()},
                "reservas": {k: dict(v) for k, v in self.reservas.items()},
                "lineas": {k: dict(v) for k, v in self.lineas.items()},
            }
        return self._pending

    def _view(self, name: str) -> Dict[int, Any]:
        return (self._pending or {}).get(name, getattr(self, name))

    def commit(self):
        if self._pending is None:
            return
        for rid, r in self._pending["reservas"].items():
            if r["estado"] == ESTADO_CANCELADO:
                continue
            for oid, o in self.reservas.items():
                if oid == rid or o["estado"] == ESTADO_CANCELADO or o["id_salon"] != r["id_salon"]:
                    continue
                if r["fecha_inicio"] < o["fecha_fin"] and o["fecha_inicio"] < r["fecha_fin"]:
                    self._pending = None
                    raise ReservationConflictError()
        self.clientes = self._pending["clientes"]
        self.reservas = self._pending["reservas"]
        self.lineas = self._pending["lineas"]
        self._pending = None
        self.commits += 1

    def rollback(self):
        self._pending = None
        self.rollbacks += 1

    # --- clientes ---

    def buscar_cliente(self, email, nombre):
        for c in sorted(self._view("clientes").values(), key=lambda c: c["id"]):
            if (email and c.get("email") == email) or c.get("nombre") == nombre:
                return dict(c)
        return None

    def obtener_cliente(self, cliente_id):
        c = self._view("clientes").get(int(cliente_id))
        return dict(c) if c else None

    def crear_cliente(self, data):
        staged = self._stage()
        cid = self._next_cliente
        self._next_cliente += 1
        staged["clientes"][cid] = {"id": cid, **data}
        return cid

    def actualizar_cliente(self, cliente_id, cambios):
        staged = self._stage()
        staged["clientes"][int(cliente_id)].update(cambios or {})

    # --- salones / servicios ---

    def obtener_salon(self, salon_id):
        return self.salones.get(int(salon_id))

    def obtener_distribucion(self, distribucion_id):
        d = self.distribuciones.get(int(distribucion_id))
        return dict(d) if d else None

    def servicios_de_categorias(self, ids):
        out: List[int] = []
        for cid in ids:
            out.extend(self.categorias.get(int(cid), []))
        return out

    # --- reservas ---

    def obtener_reserva(self, reserva_id):
        r = self._view("reservas").get(int(reserva_id))
        return dict(r) if r else None

    def obtener_reserva_detalle(self, reserva_id):
        r = self.obtener_reserva(reserva_id)
        if not r:
            return None
        salon = self.salones.get(r["id_salon"], {})
        r["cliente"] = self.obtener_cliente(r["id_cliente"])
        r["salon"] = dict(salon)
        r["distribucion"] = None
        r["servicios"] = [
            {**self.servicios.get(sid, {"nombre": f"Servicio {sid}", "precio": 0}), "id_servicio": sid, "cantidad": qty}
            for sid, qty in sorted(self.lineas.get(int(reserva_id), {}).items())
        ]
        return r

    def listar_reservas(self, estado=None):
        rows = [dict(r) for r in self.reservas.values() if not estado or r["estado"] == estado]
        return sorted(rows, key=lambda r: r["fecha_inicio"], reverse=True)

    def insertar_reserva(self, data):
        staged = self._stage()
        rid = self._next_reserva
        self._next_reserva += 1
        staged["reservas"][rid] = {"id": rid, "presupuesto_url": None, **data}
        return rid

    def actualizar_reserva(self, reserva_id, data):
        staged = self._stage()
        staged["reservas"][int(reserva_id)].update(data)

    def eliminar_reserva(self, reserva_id):
        staged = self._stage()
        r = staged["reservas"].pop(int(reserva_id), None)
        staged["lineas"].pop(int(reserva_id), None)
        return r

    def reemplazar_servicios(self, reserva_id, seleccion):
        if self.fail_lineas:
            raise ValidationError("servicio inexistente")
        staged = self._stage()
        staged["lineas"][int(reserva_id)] = dict(seleccion)


# Fixtures
@pytest.fixture
def salon_r():
    return {"id": 1, "nombre": "Salón Real", "capacidad": 200, "precio_base": 1000, "descripcion": "Salón principal"}


@pytest.fixture
def fake_repo(salon_r):
    repo = FakeReservaRepository(salones={1: salon_r})
    repo.servicios[10] = {"id": 10, "nombre": "Catering", "descripcion": "Menú", "precio": 50}
    repo.servicios[11] = {"id": 11, "nombre": "DJ", "descripcion": None, "precio": 300}
    repo.categorias[5] = [10, 11]
    repo.salones[2] = {"id": 2, "nombre": "Jardín", "capacidad": 80, "precio_base": 600}
    repo.distribuciones[3] = {"id": 3, "id_salon": 1, "nombre": "Banquete", "capacidad": 120}
    repo.distribuciones[4] = {"id": 4, "id_salon": 2, "nombre": "Cóctel", "capacidad": 80}
    return repo


@pytest.fixture
def evento():
    """Start/end of a 4-hour event as ISO strings."""
    inicio = datetime(2026, 11, 20, 20, 0, tzinfo=TZ)
    return inicio.isoformat(), (inicio + timedelta(hours=4)).isoformat()


@pytest.fixture
def mock_database():
    """Mock database fixture"""
    from sqlalchemy.orm import Session

    mock_session = Mock(spec=Session)
    mock_session.add = Mock()
    mock_session.commit = Mock()
    mock_session.rollback = Mock()
    mock_session.flush = Mock()
    mock_session.refresh = Mock()
    return mock_session
