"""
Fixtures para tests de integración API.
Usa TestClient de FastAPI contra la app real, con la sesión de pruebas y el
usuario autenticado inyectados por override de dependencias.
"""
import pytest
from fastapi.testclient import TestClient

from gestor_afilado.main import app
from gestor_afilado.dependencies import get_db
from gestor_afilado.security.auth import get_current_user


def _cliente_http(db, usuario):
    app.dependency_overrides[get_db] = lambda: db
    if usuario is not None:
        app.dependency_overrides[get_current_user] = lambda: usuario
    return TestClient(app)


@pytest.fixture
def client(db):
    """Cliente HTTP sin autenticación."""
    yield _cliente_http(db, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client_auth(db, catalogo):
    """Cliente autenticado como administrador."""
    yield _cliente_http(db, catalogo.admin)
    app.dependency_overrides.clear()


@pytest.fixture
def client_cliente(db, catalogo):
    """Cliente autenticado como usuario CLIENTE de catalogo.empresa."""
    yield _cliente_http(db, catalogo.cliente)
    app.dependency_overrides.clear()
