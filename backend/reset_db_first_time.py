#!/usr/bin/env python3
"""
Resetea la base de datos para iniciar como si fuera la primera vez.
Quedan solo los estados de sierra; el administrador se crea en el primer login
(desarrollo) o con scripts/seed_demo.py.

Uso: python reset_db_first_time.py
"""
import sys
from pathlib import Path

# Añadir el directorio del backend al path
sys.path.insert(0, str(Path(__file__).resolve().parent))

def main():
    from gestor_afilado.config import settings
    from gestor_afilado.db import SessionLocal, recreate_schema_from_models
    from gestor_afilado.application.seed import seed_estados_sierra

    print(f"Reseteando base de datos ({settings.database_url})...")
    print("Se eliminarán todas las sierras, afilados y operaciones masivas.")
    resp = input("Continuar? (s/n): ").strip().lower()
    if resp != "s":
        print("Cancelado.")
        return

    recreate_schema_from_models()
    db = SessionLocal()
    try:
        seed_estados_sierra(db)
        db.commit()
    finally:
        db.close()

    print("\nListo. Reinicia el backend.")
    print(f"Credenciales por defecto (desarrollo): {settings.admin_user} / {settings.admin_pass}")

if __name__ == "__main__":
    main()
