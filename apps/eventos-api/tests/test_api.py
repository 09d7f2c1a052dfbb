from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from conftest import PgError

from eventos import dependencies as deps
from eventos.database.errors import CONFLICT_MESSAGE, IdentityProviderError, PolicyRecursionError
from eventos.main import app
from eventos.routers import reservas as reservas_router
from eventos.services.reserva_service import ReservaService

pytestmark = pytest.mark.api

AUTH = {"Authorization": "Bearer tok"}


@pytest.fixture
def identity():
    m = Mock()
    m.get_user.return_value = {"id": "u-1", "email": "u-1@hotel.test"}
    return m


@pytest.fixture
def perfiles():
    m = Mock()
    m.obtener_perfil.return_value = {"user_id": "u-1", "nombre": "Admin", "rol": "ADMIN"}
    return m


@pytest.fixture
def bridge_client():
    return Mock()


@pytest.fixture
def client(identity, perfiles, bridge_client, fake_repo):
    app.dependency_overrides[deps.get_identity_client] = lambda: identity
    app.dependency_overrides[deps.get_perfil_service] = lambda: perfiles
    app.dependency_overrides[deps.get_admin_bridge_client] = lambda: bridge_client
    app.dependency_overrides[deps.get_reserva_service] = lambda: ReservaService(repo=fake_repo)
    app.dependency_overrides[deps.get_salon_service] = lambda: Mock()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _reserva(evento, **extra):
    inicio, fin = evento
    body = {"nombre_cliente": "Ana Gómez", "id_salon": 1, "fecha_inicio": inicio, "fecha_fin": fin}
    body.update(extra)
    return body


class TestSesion:
    def test_sin_token(self, client):
        r = client.get("/api/reservas")
        assert r.status_code == 401
        assert r.json() == {"ok": False, "error": "Unauthorized"}

    def test_token_rechazado(self, client, identity):
        identity.get_user.side_effect = IdentityProviderError("invalid JWT", 401)
        assert client.get("/api/reservas", headers=AUTH).status_code == 401

    def test_sin_perfil(self, client, perfiles):
        perfiles.obtener_perfil.return_value = None
        r = client.get("/api/reservas", headers=AUTH)
        assert r.status_code == 403
        assert r.json()["error"] == "Perfil no encontrado"

    def test_recursion_rls_devuelve_remediacion(self, client, perfiles):
        perfiles.obtener_perfil.side_effect = PolicyRecursionError()
        r = client.get("/api/reservas", headers=AUTH)
        assert r.status_code == 503
        body = r.json()
        assert body["error"] == "RLS_RECURSION_ERROR"
        assert any("DROP POLICY" in step for step in body["remediation"])

    def test_login(self, client, identity):
        identity.sign_in_with_password.return_value = {
            "access_token": "a",
            "refresh_token": "r",
            "expires_in": 3600,
            "user": {"id": "u-1", "email": "u-1@hotel.test"},
        }
        r = client.post("/api/auth/login", json={"email": "u-1@hotel.test", "password": "x"})
        assert r.status_code == 200
        assert r.json()["session"]["is_admin"] is True

    def test_login_credenciales_invalidas(self, client, identity):
        identity.sign_in_with_password.side_effect = IdentityProviderError("Invalid login credentials", 400)
        r = client.post("/api/auth/login", json={"email": "u-1@hotel.test", "password": "mal"})
        assert r.status_code == 401
        assert r.json()["error"] == "Credenciales inválidas"


class TestReservas:
    def test_crear_y_conflicto(self, client, evento):
        first = client.post("/api/reservas", json=_reserva(evento), headers=AUTH)
        assert first.status_code == 200
        assert first.json()["ok"] is True

        second = client.post("/api/reservas", json=_reserva(evento, nombre_cliente="Otro"), headers=AUTH)
        assert second.status_code == 409
        assert second.json() == {"ok": False, "error": CONFLICT_MESSAGE}

    def test_fechas_invertidas(self, client, evento):
        inicio, fin = evento
        r = client.post("/api/reservas", json=_reserva(evento, fecha_inicio=fin, fecha_fin=inicio), headers=AUTH)
        assert r.status_code == 400
        assert "posterior" in r.json()["error"]

    def test_error_de_base_de_datos_responde_json(self, client, evento):
        svc = Mock()
        svc.guardar_reserva.side_effect = IntegrityError(
            "INSERT INTO reserva_servicios ...",
            {},
            PgError('insert or update on table "reserva_servicios" violates foreign key constraint', "23503"),
        )
        app.dependency_overrides[deps.get_reserva_service] = lambda: svc

        r = client.post("/api/reservas", json=_reserva(evento), headers=AUTH)

        assert r.status_code == 500
        assert r.headers["content-type"].startswith("application/json")
        body = r.json()
        assert body["ok"] is False
        assert "foreign key" in body["error"]

    def test_reserva_inexistente(self, client):
        assert client.get("/api/reservas/404", headers=AUTH).status_code == 404

    def test_eliminar_borra_el_presupuesto(self, client, evento, fake_repo, monkeypatch):
        rid = client.post("/api/reservas", json=_reserva(evento), headers=AUTH).json()["id"]
        fake_repo.reservas[rid]["presupuesto_url"] = "presupuestos/reservas/reserva-1.pdf"
        delete_file = Mock(return_value=(False, "B2 client not available"))
        monkeypatch.setattr(reservas_router.b2_storage, "delete_file", delete_file)

        r = client.delete(f"/api/reservas/{rid}", headers=AUTH)

        assert r.json() == {"ok": True}
        delete_file.assert_called_once_with("presupuestos/reservas/reserva-1.pdf")
        assert rid not in fake_repo.reservas


class TestPermisos:
    def test_operador_no_modifica_catalogo(self, client, perfiles):
        perfiles.obtener_perfil.return_value = {"user_id": "u-1", "nombre": "Op", "rol": "OPERADOR"}
        r = client.post("/api/salones", json={"nombre": "Nuevo", "capacidad": 10}, headers=AUTH)
        assert r.status_code == 403
        assert r.json()["error"] == "Solo administradores"

    def test_operador_no_gestiona_usuarios(self, client, perfiles, bridge_client):
        perfiles.obtener_perfil.return_value = {"user_id": "u-1", "nombre": "Op", "rol": "OPERADOR"}
        r = client.post("/api/usuarios", json={"email": "x@y.z"}, headers=AUTH)
        assert r.status_code == 403
        bridge_client.create_user.assert_not_called()


class TestUsuarios:
    def test_email_no_sincronizado(self, client, perfiles, bridge_client):
        perfiles.actualizar_perfil.return_value = {"user_id": "op-1", "nombre": "Nuevo", "rol": "OPERADOR"}
        bridge_client.update_user_email.return_value = (400, {"error": "Email already in use"})

        r = client.put("/api/usuarios/op-1", json={"nombre": "Nuevo", "email": "dup@hotel.test"}, headers=AUTH)

        assert r.status_code == 200
        body = r.json()
        assert body["email_synced"] is False
        assert body["email_error"] == "Email already in use"
        perfiles.actualizar_perfil.assert_called_once_with("op-1", {"nombre": "Nuevo"})
        bridge_client.update_user_email.assert_called_once_with("tok", "op-1", "dup@hotel.test")

    def test_crear_usuario_pasa_respuesta_del_bridge(self, client, bridge_client):
        bridge_client.create_user.return_value = (403, {"error": "Only administrators can create users"})
        body = {"email": "op@hotel.test", "password": "x", "nombre": "Op", "rol": "operador"}
        r = client.post("/api/usuarios", json=body, headers=AUTH)
        assert r.status_code == 403
        bridge_client.create_user.assert_called_once_with("tok", "op@hotel.test", "x", "Op", "OPERADOR")


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
