from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from conftest import PgError
from eventos.admin_bridge import main as bridge
from eventos.admin_bridge.guard import require_admin
from eventos.database.errors import IdentityProviderError
from eventos.dependencies import get_identity_client, get_perfil_service

pytestmark = pytest.mark.api

ADMIN_USER = {"id": "admin-1", "email": "admin@hotel.test", "app_metadata": {}, "user_metadata": {}}
AUTH = {"Authorization": "Bearer tok"}


@pytest.fixture
def identity():
    m = Mock()
    m.get_user.return_value = dict(ADMIN_USER)
    m.admin_create_user.return_value = {"id": "new-1", "email": "op@hotel.test"}
    m.admin_get_user.return_value = {"id": "op-1", "email": "op@hotel.test"}
    m.admin_update_user.return_value = {"id": "op-1", "email": "nuevo@hotel.test"}
    return m


@pytest.fixture
def perfiles():
    m = Mock()
    m.obtener_perfil.return_value = {"user_id": "admin-1", "nombre": "Admin", "rol": "ADMIN"}
    m.eliminar_perfil.return_value = True
    return m


@pytest.fixture
def client(identity, perfiles):
    bridge.app.dependency_overrides[get_identity_client] = lambda: identity
    bridge.app.dependency_overrides[get_perfil_service] = lambda: perfiles
    yield TestClient(bridge.app)
    bridge.app.dependency_overrides.clear()


class TestGuard:
    def test_sin_token(self, identity, perfiles):
        res = require_admin(identity, perfiles, None, "create users")
        assert (res.status, res.body) == (401, {"error": "No authorization token provided"})
        identity.get_user.assert_not_called()

    def test_token_invalido(self, identity, perfiles):
        identity.get_user.side_effect = IdentityProviderError("bad jwt", 401)
        res = require_admin(identity, perfiles, "tok", "create users")
        assert (res.status, res.body["error"]) == (401, "Invalid authorization token")

    def test_rol_en_metadata_evita_consultar_perfil(self, identity, perfiles):
        identity.get_user.return_value = dict(ADMIN_USER, app_metadata={"role": "admin"})
        res = require_admin(identity, perfiles, "tok", "create users")
        assert res.ok and res.user_id == "admin-1"
        perfiles.obtener_perfil.assert_not_called()
        identity.admin_update_user.assert_not_called()

    def test_admin_por_perfil_sincroniza_claim(self, identity, perfiles):
        res = require_admin(identity, perfiles, "tok", "create users")
        assert res.ok
        identity.admin_update_user.assert_called_once_with("admin-1", {"app_metadata": {"role": "ADMIN"}})

    def test_fallo_al_sincronizar_claim_no_bloquea(self, identity, perfiles):
        identity.admin_update_user.side_effect = IdentityProviderError("down", 503)
        assert require_admin(identity, perfiles, "tok", "create users").ok

    def test_sin_perfil(self, identity, perfiles):
        perfiles.obtener_perfil.return_value = None
        res = require_admin(identity, perfiles, "tok", "create users")
        assert res.status == 403
        assert res.body["error"] == "Administrator profile not found for user admin@hotel.test"

    def test_operador(self, identity, perfiles):
        perfiles.obtener_perfil.return_value = {"user_id": "admin-1", "rol": "OPERADOR"}
        res = require_admin(identity, perfiles, "tok", "delete users")
        assert (res.status, res.body["error"]) == (403, "Only administrators can delete users")

    def test_error_leyendo_perfil(self, identity, perfiles):
        perfiles.obtener_perfil.side_effect = IntegrityError("SELECT", {}, PgError("boom"))
        res = require_admin(identity, perfiles, "tok", "create users")
        assert (res.status, res.body["error"]) == (500, "Failed to verify user profile")


class TestCreateUser:
    BODY = {"email": "op@hotel.test", "password": "secreto123", "nombre": "Operador", "rol": "OPERADOR"}

    def test_crea_cuenta_y_perfil(self, client, identity, perfiles):
        r = client.post("/create-user", json=self.BODY, headers=AUTH)
        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "user": {"id": "new-1", "email": "op@hotel.test", "name": "Operador", "role": "OPERADOR"},
        }
        identity.admin_create_user.assert_called_once_with(
            "op@hotel.test",
            "secreto123",
            user_metadata={"nombre": "Operador"},
            app_metadata={"role": "OPERADOR"},
        )
        perfiles.crear_perfil.assert_called_once_with("new-1", "Operador", "OPERADOR")

    def test_acepta_name_y_role(self, client, perfiles):
        body = {"email": "op@hotel.test", "password": "x", "name": "Op", "role": "admin"}
        r = client.post("/create-user", json=body, headers=AUTH)
        assert r.status_code == 200
        perfiles.crear_perfil.assert_called_once_with("new-1", "Op", "ADMIN")

    def test_sin_token(self, client, identity):
        r = client.post("/create-user", json=self.BODY)
        assert r.status_code == 401
        assert r.json() == {"error": "No authorization token provided"}
        identity.admin_create_user.assert_not_called()

    def test_operador_no_crea_cuentas(self, client, identity, perfiles):
        perfiles.obtener_perfil.return_value = {"user_id": "admin-1", "rol": "OPERADOR"}
        r = client.post("/create-user", json=self.BODY, headers=AUTH)
        assert r.status_code == 403
        assert r.json()["error"] == "Only administrators can create users"
        identity.admin_create_user.assert_not_called()

    def test_campos_faltantes(self, client):
        r = client.post("/create-user", json={"email": "x@y.z"}, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "Missing required fields: email, password, nombre, rol"

    def test_rol_invalido(self, client):
        r = client.post("/create-user", json=dict(self.BODY, rol="GERENTE"), headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "Invalid role. Must be ADMIN or OPERADOR"

    def test_error_del_proveedor(self, client, identity):
        identity.admin_create_user.side_effect = IdentityProviderError("User already registered", 422)
        r = client.post("/create-user", json=self.BODY, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "User already registered"

    def test_fallo_del_perfil_borra_la_cuenta(self, client, identity, perfiles):
        perfiles.crear_perfil.side_effect = IntegrityError("INSERT", {}, PgError("duplicate", "23505"))
        r = client.post("/create-user", json=self.BODY, headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "Failed to create user profile"
        identity.admin_delete_user.assert_called_once_with("new-1")


class TestOtrosEndpoints:
    def test_update_email(self, client, identity):
        r = client.post("/update-user-email", json={"userId": "op-1", "newEmail": "nuevo@hotel.test"}, headers=AUTH)
        assert r.status_code == 200
        assert r.json() == {"success": True, "user": {"id": "op-1", "email": "nuevo@hotel.test"}}

    def test_update_email_faltan_campos(self, client):
        r = client.post("/update-user-email", json={"userId": "op-1"}, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "Missing required fields: userId, newEmail"

    def test_get_email(self, client):
        r = client.post("/get-user-email", json={"userId": "op-1"}, headers=AUTH)
        assert r.json() == {"success": True, "email": "op@hotel.test"}

    def test_get_email_sin_user_id(self, client):
        r = client.post("/get-user-email", json={}, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "Missing required field: userId"

    def test_delete_user(self, client, identity, perfiles):
        r = client.post("/delete-user", json={"userId": "op-1"}, headers=AUTH)
        assert r.json() == {"success": True}
        perfiles.eliminar_perfil.assert_called_once_with("op-1")
        identity.admin_delete_user.assert_called_once_with("op-1")

    def test_delete_user_fallo_parcial(self, client, identity, perfiles):
        identity.admin_delete_user.side_effect = IdentityProviderError("User not found", 404)
        r = client.post("/delete-user", json={"userId": "op-1"}, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "User not found"
        perfiles.eliminar_perfil.assert_called_once_with("op-1")
        perfiles.crear_perfil.assert_not_called()

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
