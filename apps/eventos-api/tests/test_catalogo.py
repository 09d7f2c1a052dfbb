from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import PgError
from eventos.database.errors import NotFoundError, ValidationError
from eventos.models.orm_models import Salon
from eventos.services.perfil_service import validar_rol
from eventos.services.salon_service import (
    SalonService,
    validar_capacidad_distribucion,
    validar_capacidad_salon,
    validar_precio_base,
)
from eventos.services.servicio_service import validar_precio
from eventos.utils import to_decimal

pytestmark = pytest.mark.unit


class TestCapacidades:
    def test_salon_no_baja_de_su_mayor_distribucion(self):
        with pytest.raises(ValidationError, match=r"\(120 personas\)"):
            validar_capacidad_salon(100, 120)

    def test_salon_igual_a_mayor_distribucion(self):
        assert validar_capacidad_salon("120", 120) == 120

    def test_capacidad_no_positiva(self):
        with pytest.raises(ValidationError):
            validar_capacidad_salon(0)
        with pytest.raises(ValidationError):
            validar_capacidad_distribucion("abc", 100)

    def test_distribucion_no_supera_al_salon(self):
        with pytest.raises(ValidationError, match=r"\(200 personas\)"):
            validar_capacidad_distribucion(201, 200)
        assert validar_capacidad_distribucion(200, 200) == 200


def test_precio():
    assert validar_precio("12.5") == Decimal("12.5")
    assert validar_precio(0) == Decimal("0")
    with pytest.raises(ValidationError):
        validar_precio(-1)
    with pytest.raises(ValidationError):
        validar_precio("gratis")


@pytest.mark.parametrize("valor", ["NaN", "nan", "Infinity", "-Infinity", "sNaN"])
def test_precio_no_finito(valor):
    assert to_decimal(valor) is None
    with pytest.raises(ValidationError, match="número válido"):
        validar_precio(valor)
    with pytest.raises(ValidationError, match="precio base"):
        validar_precio_base(valor)


def test_rol():
    assert validar_rol("admin") == "ADMIN"
    with pytest.raises(ValidationError, match="ADMIN u OPERADOR"):
        validar_rol("GERENTE")


class TestSalonService:
    def test_crear_salon_sin_nombre(self, mock_database):
        with pytest.raises(ValidationError):
            SalonService(mock_database).crear_salon({"nombre": " ", "capacidad": 10, "precio_base": 100})
        mock_database.add.assert_not_called()

    def test_crear_salon_precio_no_finito(self, mock_database):
        with pytest.raises(ValidationError, match="precio base"):
            SalonService(mock_database).crear_salon({"nombre": "X", "capacidad": 10, "precio_base": "NaN"})
        mock_database.add.assert_not_called()

    def test_crear_salon_precio_invalido_no_se_vuelve_cero(self, mock_database):
        with pytest.raises(ValidationError):
            SalonService(mock_database).crear_salon({"nombre": "X", "capacidad": 10, "precio_base": "gratis"})
        mock_database.add.assert_not_called()

    def test_crear_salon_sin_precio(self, mock_database):
        out = SalonService(mock_database).crear_salon({"nombre": "X", "capacidad": 10})
        assert out["precio_base"] == Decimal("0")
        mock_database.add.assert_called_once()

    def test_actualizar_precio_infinito(self, mock_database):
        salon = Salon(id=1, nombre="Real", capacidad=200, precio_base=Decimal("1000"))
        mock_database.get = Mock(return_value=salon)
        with pytest.raises(ValidationError, match="precio base"):
            SalonService(mock_database).actualizar_salon(1, {"precio_base": "Infinity"})
        assert salon.precio_base == Decimal("1000")
        mock_database.commit.assert_not_called()

    def test_actualizar_capacidad_bajo_distribucion(self, mock_database):
        mock_database.get = Mock(return_value=Salon(id=1, nombre="Real", capacidad=200, precio_base=Decimal("1000")))
        mock_database.scalar = Mock(return_value=150)
        with pytest.raises(ValidationError, match="150 personas"):
            SalonService(mock_database).actualizar_salon(1, {"capacidad": 100})
        mock_database.commit.assert_not_called()

    def test_eliminar_salon_con_reservas(self, mock_database):
        mock_database.get = Mock(return_value=Salon(id=1, nombre="Real", capacidad=200, precio_base=Decimal("1000")))
        mock_database.commit.side_effect = IntegrityError("DELETE", {}, PgError("foreign key", "23503"))
        with pytest.raises(ValidationError, match="tiene reservas"):
            SalonService(mock_database).eliminar_salon(1)
        mock_database.rollback.assert_called_once()

    def test_salon_inexistente(self, mock_database):
        mock_database.get = Mock(return_value=None)
        with pytest.raises(NotFoundError):
            SalonService(mock_database).eliminar_salon(5)
