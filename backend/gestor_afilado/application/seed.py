"""
Datos iniciales del sistema.

- seed_estados_sierra: los cuatro estados fijos (siempre, en init_db)
- seed_demo_data: empresa, sucursal, catálogos y administrador de ejemplo
"""
from sqlalchemy.orm import Session
from ..domain.enums import EstadoSierraId, NOMBRES_ESTADO_SIERRA, UsuarioRol
from ..domain.models import Empresa, Sucursal, Usuario
from ..domain.models_sierras import EstadoSierra, TipoSierra, TipoAfilado

DEMO_EMPRESA_RAZON_SOCIAL = "Aserradero Demo"
DEMO_EMPRESA_RUT = "76123456-7"


def seed_estados_sierra(db: Session) -> int:
    """Inserta los estados que falten. Devuelve cuántos se crearon."""
    existentes = {e.id for e in db.query(EstadoSierra).all()}
    creados = 0
    for estado_id in EstadoSierraId:
        if estado_id.value in existentes:
            continue
        db.add(EstadoSierra(id=estado_id.value, nombre=NOMBRES_ESTADO_SIERRA[estado_id]))
        creados += 1
    db.flush()
    return creados


def seed_demo_data(db: Session, admin_user: str, admin_pass: str) -> dict:
    """
    Crea datos demo. Si ya existe la empresa demo, no duplica.
    """
    from ..security.auth import get_password_hash

    result = {"empresa": None, "sucursal": None, "admin_creado": False}
    seed_estados_sierra(db)

    admin = db.query(Usuario).filter(Usuario.email == admin_user).first()
    if not admin:
        db.add(Usuario(
            email=admin_user,
            password_hash=get_password_hash(admin_pass),
            nombre_completo="Administrador",
            rol=UsuarioRol.ADMINISTRADOR.value,
        ))
        result["admin_creado"] = True

    empresa = db.query(Empresa).filter(Empresa.rut == DEMO_EMPRESA_RUT).first()
    if not empresa:
        empresa = Empresa(razon_social=DEMO_EMPRESA_RAZON_SOCIAL, rut=DEMO_EMPRESA_RUT)
        db.add(empresa)
        db.flush()
    result["empresa"] = empresa.id

    sucursal = db.query(Sucursal).filter(Sucursal.empresa_id == empresa.id).first()
    if not sucursal:
        sucursal = Sucursal(empresa_id=empresa.id, nombre="Casa Matriz")
        db.add(sucursal)
        db.flush()
    result["sucursal"] = sucursal.id

    for nombre in ("Sierra cinta", "Sierra circular", "Sierra huincha"):
        if not db.query(TipoSierra).filter(TipoSierra.nombre == nombre).first():
            db.add(TipoSierra(nombre=nombre))
    for nombre in ("Afilado estándar", "Afilado con recalce"):
        if not db.query(TipoAfilado).filter(TipoAfilado.nombre == nombre).first():
            db.add(TipoAfilado(nombre=nombre))
    db.flush()
    return result
