"""
Configuración global de pytest.

La BD de pruebas es SQLite en memoria (una sola conexión compartida); cada test
recrea el esquema y siembra los estados de sierra.
"""
import os
import sys
import tempfile
from datetime import date
from pathlib import Path
from types import SimpleNamespace

# Variables de entorno antes de importar la aplicación
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="afilado_logs_"))

# Agregar el directorio raíz al path para imports
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import pytest

from gestor_afilado.db import Base, SessionLocal, engine, _import_all_models
from gestor_afilado.application.seed import seed_estados_sierra
from gestor_afilado.domain.enums import EstadoSierraId, UsuarioRol
from gestor_afilado.domain.models import Empresa, Sucursal, Usuario
from gestor_afilado.domain.models_sierras import Sierra, Afilado, TipoSierra, TipoAfilado
from gestor_afilado.infrastructure.unit_of_work import UnitOfWork

_import_all_models()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_estados_sierra(session)
    session.commit()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def uow(db):
    return UnitOfWork(db)


@pytest.fixture
def catalogo(db):
    """Empresa, sucursal, tipos y usuarios mínimos, ya confirmados."""
    empresa = Empresa(razon_social="Aserradero Los Robles", rut="76111222-3")
    otra_empresa = Empresa(razon_social="Maderas del Sur", rut="77999888-1")
    db.add_all([empresa, otra_empresa])
    db.flush()

    sucursal = Sucursal(empresa_id=empresa.id, nombre="Planta Temuco")
    otra_sucursal = Sucursal(empresa_id=otra_empresa.id, nombre="Planta Osorno")
    tipo_sierra = TipoSierra(nombre="Sierra cinta")
    tipo_afilado = TipoAfilado(nombre="Afilado estándar")
    db.add_all([sucursal, otra_sucursal, tipo_sierra, tipo_afilado])
    db.flush()

    admin = Usuario(email="admin@test.local", password_hash="x", rol=UsuarioRol.ADMINISTRADOR.value)
    gerente = Usuario(email="gerente@test.local", password_hash="x", rol=UsuarioRol.GERENTE.value)
    cliente = Usuario(email="cliente@test.local", password_hash="x", rol=UsuarioRol.CLIENTE.value, empresa_id=empresa.id)
    db.add_all([admin, gerente, cliente])
    db.commit()

    return SimpleNamespace(
        empresa=empresa,
        otra_empresa=otra_empresa,
        sucursal=sucursal,
        otra_sucursal=otra_sucursal,
        tipo_sierra=tipo_sierra,
        tipo_afilado=tipo_afilado,
        admin=admin,
        gerente=gerente,
        cliente=cliente,
    )


@pytest.fixture
def crear_sierra(db, catalogo):
    """Fábrica de sierras en un estado dado."""
    def _crear(codigo, estado_id=EstadoSierraId.DISPONIBLE, activo=True, sucursal=None):
        sierra = Sierra(
            codigo_barras=codigo,
            sucursal_id=(sucursal or catalogo.sucursal).id,
            tipo_sierra_id=catalogo.tipo_sierra.id,
            estado_id=int(estado_id),
            activo=activo,
        )
        db.add(sierra)
        db.commit()
        return sierra
    return _crear


@pytest.fixture
def crear_afilado(db, catalogo):
    """Fábrica de afilados; pendientes salvo que se indique fecha_salida."""
    def _crear(sierra, fecha_afilado=date(2025, 5, 20), fecha_salida=None):
        afilado = Afilado(
            sierra_id=sierra.id,
            tipo_afilado_id=catalogo.tipo_afilado.id,
            fecha_afilado=fecha_afilado,
            fecha_salida=fecha_salida,
        )
        db.add(afilado)
        db.commit()
        return afilado
    return _crear
