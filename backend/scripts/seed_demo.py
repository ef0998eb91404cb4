#!/usr/bin/env python3
"""
Script para cargar datos de prueba en el gestor de afilado.

Uso:
  cd backend && python -m scripts.seed_demo
  cd backend && python scripts/seed_demo.py

Crea:
- Administrador (ADMIN_USER / ADMIN_PASS de la configuración) si no existe
- Empresa demo con su sucursal y catálogos de tipos
- 6 sierras: 2 disponibles, 2 en afilado y 2 listas para retiro
- Un afilado pendiente por cada sierra que no está disponible

Deja datos listos para probar escaneos de salida y baja masiva.
"""
import sys
from pathlib import Path
from datetime import date, timedelta

# Agregar backend al path
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from gestor_afilado.config import settings
from gestor_afilado.db import SessionLocal, init_db
from gestor_afilado.application.seed import seed_demo_data
from gestor_afilado.application.services_sierras import SierraService
from gestor_afilado.application.services_afilados import AfiladoService
from gestor_afilado.domain.models_sierras import TipoSierra, TipoAfilado
from gestor_afilado.infrastructure.unit_of_work import UnitOfWork


def seed_sierras(uow: UnitOfWork, sucursal_id: int) -> int:
    """Registra sierras DEMO-001..006 que no existan y las deja en distintos estados."""
    tipo_sierra = uow.db.query(TipoSierra).order_by(TipoSierra.id).first()
    tipo_afilado = uow.db.query(TipoAfilado).order_by(TipoAfilado.id).first()
    sierras = SierraService(uow)
    afilados = AfiladoService(uow)
    ingreso = date.today() - timedelta(days=3)
    creadas = 0

    for i in range(1, 7):
        codigo = f"DEMO-{i:03d}"
        if sierras.obtener_por_codigo(codigo):
            continue
        sierra = sierras.registrar(codigo, sucursal_id, tipo_sierra.id)
        if i > 2:
            afilados.registrar(sierra.id, tipo_afilado.id, ingreso, observaciones="Carga de prueba")
        if i > 4:
            sierras.marcar_lista_para_retiro(sierra.id)
        creadas += 1
    return creadas


def main():
    print("Gestor de afilado - Carga de datos de prueba")
    print("=" * 50)

    init_db()
    db = SessionLocal()
    uow = UnitOfWork(db)
    try:
        print("\n1. Ejecutando seed demo...")
        result = seed_demo_data(db, admin_user=settings.admin_user, admin_pass=settings.admin_pass)
        db.commit()
        print(f"   ✓ Empresa demo id={result['empresa']}, sucursal id={result['sucursal']}")
        if result["admin_creado"]:
            print(f"   ✓ Administrador {settings.admin_user} creado")

        print("\n2. Registrando sierras y afilados...")
        creadas = seed_sierras(uow, result["sucursal"])
        uow.commit()
        print(f"   ✓ {creadas} sierra(s) creada(s)")
    except Exception as e:
        uow.rollback()
        print(f"   ❌ Error: {e}")
        return 1
    finally:
        db.close()

    print("\nListo. Escanee DEMO-003 a DEMO-006 en una salida masiva.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
