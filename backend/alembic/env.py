"""
Entorno de Alembic para el gestor de afilado.

La URL de la BD no vive en alembic.ini: se toma de gestor_afilado.config
(DATABASE_URL / .env), igual que la aplicación.
"""
from logging.config import fileConfig
import sys
from pathlib import Path

from sqlalchemy import engine_from_config, pool
from alembic import context

# backend/ en el path para importar gestor_afilado
BACKEND_ROOT = Path(__file__).resolve().parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from gestor_afilado.config import settings  # noqa: E402
from gestor_afilado.db import Base, _import_all_models  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_import_all_models()
config.set_main_option("sqlalchemy.url", settings.database_url)
target_metadata = Base.metadata


def _opciones_comunes() -> dict:
    # SQLite no soporta ALTER COLUMN: las migraciones usan batch mode
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": settings.is_sqlite,
    }


def run_migrations_offline() -> None:
    """Genera el SQL sin conectarse (alembic upgrade --sql)."""
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_opciones_comunes(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **_opciones_comunes())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
