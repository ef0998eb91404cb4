import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings


def _engine_kwargs() -> dict:
    """SQLite necesita compartir conexión entre hilos (TestClient, uvicorn)."""
    if not settings.is_sqlite:
        return {}
    kwargs = {"connect_args": {"check_same_thread": False}}
    if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
        # Base en memoria: una sola conexión o cada sesión vería una BD vacía
        kwargs["poolclass"] = StaticPool
    else:
        os.makedirs("./data", exist_ok=True)
    return kwargs


engine = create_engine(settings.database_url, echo=False, future=True, **_engine_kwargs())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def _import_all_models():
    """Importa todos los modelos para que Base.metadata los registre."""
    from .domain import models  # noqa: F401 - Empresa, Sucursal, Usuario
    from .domain import models_sierras  # noqa: F401 - Sierra, Afilado, catálogos
    from .domain import models_masivas  # noqa: F401 - SalidaMasiva, BajaMasiva
    from .domain import models_audit  # noqa: F401 - AuditLog


def init_db():
    """Crear tablas si no existen y sembrar los estados de sierra."""
    _import_all_models()
    Base.metadata.create_all(bind=engine)
    from .application.seed import seed_estados_sierra
    db = SessionLocal()
    try:
        seed_estados_sierra(db)
        db.commit()
    finally:
        db.close()


def recreate_schema_from_models():
    """Elimina todas las tablas y las recrea desde los modelos."""
    _import_all_models()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
