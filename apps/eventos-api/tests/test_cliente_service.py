import pytest

from eventos.services.cliente_service import cambios_cliente_vinculado, resolver_cliente

pytestmark = pytest.mark.unit

ANA = {"id": 3, "nombre": "Ana Gómez", "email": "ana@x.com", "telefono": None, "empresa": None}


def _lookup(*clientes):
    calls = []

    def buscar(email, nombre):
        calls.append((email, nombre))
        for c in clientes:
            if (email and c["email"] == email) or c["nombre"] == nombre:
                return c
        return None

    buscar.calls = calls
    return buscar


def test_cliente_nuevo():
    res = resolver_cliente(_lookup(), " Luis Pérez ", "luis@x.com", "", None)
    assert res.es_nuevo
    assert res.nuevo == {"nombre": "Luis Pérez", "email": "luis@x.com", "telefono": None, "empresa": None}


def test_coincidencia_por_nombre_agrega_contacto():
    res = resolver_cliente(_lookup(ANA), "Ana Gómez", None, "1155550000")
    assert res.cliente_id == 3
    assert res.cambios == {"telefono": "1155550000"}


def test_coincidencia_por_email_no_repite_campos_iguales():
    res = resolver_cliente(_lookup(ANA), "A. Gómez", "ana@x.com")
    assert res.cliente_id == 3
    assert res.cambios == {}


def test_busqueda_recibe_valores_normalizados():
    buscar = _lookup()
    resolver_cliente(buscar, "  Ana  ", "  ")
    assert buscar.calls == [(None, "Ana")]


def test_cliente_vinculado_sobrescribe_contacto():
    actual = dict(ANA, telefono="111", empresa="Acme")
    cambios = cambios_cliente_vinculado(actual, "Ana Gómez", "nueva@x.com", None, None)
    assert cambios == {"email": "nueva@x.com", "telefono": None}


def test_cliente_vinculado_sin_cambios():
    assert cambios_cliente_vinculado(ANA, "Ana Gómez", "ana@x.com") == {}
