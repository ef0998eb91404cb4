"""
Tests de API - Autenticación
"""
import pytest

from gestor_afilado.domain.enums import UsuarioRol
from gestor_afilado.domain.models import Usuario
from gestor_afilado.security.auth import get_password_hash


@pytest.fixture
def usuario_gerente(db):
    usuario = Usuario(
        email="gerente@afilado.local",
        password_hash=get_password_hash("clave-segura"),
        nombre_completo="Gerente Planta",
        rol=UsuarioRol.GERENTE.value,
    )
    db.add(usuario)
    db.commit()
    return usuario


class TestAuthAPI:
    """Tests de endpoints de autenticación"""

    def test_login_sin_credenciales(self, client):
        """POST /auth/login sin cuerpo debe retornar 422"""
        r = client.post("/auth/login")
        assert r.status_code == 422

    def test_login_credenciales_invalidas(self, client):
        r = client.post("/auth/login", data={"username": "nadie@afilado.local", "password": "x"})
        assert r.status_code == 401

    def test_login_clave_incorrecta(self, client, usuario_gerente):
        r = client.post("/auth/login", data={"username": "gerente@afilado.local", "password": "otra"})
        assert r.status_code == 401

    def test_login_y_me(self, client, usuario_gerente):
        r = client.post("/auth/login", data={"username": "Gerente@Afilado.local", "password": "clave-segura"})
        assert r.status_code == 200
        token = r.json()["access_token"]
        assert r.json()["token_type"] == "bearer"

        r = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        data = r.json()
        assert data["email"] == "gerente@afilado.local"
        assert data["rol"] == "GERENTE"
        assert data["empresa"] is None

    def test_usuario_inactivo_no_entra(self, db, client, usuario_gerente):
        usuario_gerente.activo = False
        db.commit()
        r = client.post("/auth/login", data={"username": "gerente@afilado.local", "password": "clave-segura"})
        assert r.status_code == 401

    def test_me_sin_token(self, client):
        """GET /auth/me sin token debe retornar 401"""
        r = client.get("/auth/me")
        assert r.status_code == 401

    def test_me_con_token_invalido(self, client):
        r = client.get("/auth/me", headers={"Authorization": "Bearer token_invalido"})
        assert r.status_code == 401

    def test_endpoint_protegido_sin_token(self, client):
        r = client.get("/salidas-masivas")
        assert r.status_code == 401
