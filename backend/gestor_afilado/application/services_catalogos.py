"""
Catálogos y Clientes
====================
Empresas, sucursales, tipos de sierra, tipos de afilado y usuarios.

Ninguna entidad con historial se elimina físicamente si tiene dependientes:
se desactiva (activo=False).
"""
import logging
from typing import Optional

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import UsuarioRol
from ..domain.models import Empresa, Sucursal, Usuario
from ..domain.models_sierras import Sierra, Afilado, TipoSierra, TipoAfilado

logger = logging.getLogger(__name__)


class CatalogoError(Exception):
    codigo = "CATALOGO_ERROR"

    def __init__(self, mensaje: str):
        super().__init__(mensaje)
        self.mensaje = mensaje


class CatalogoNoEncontradoError(CatalogoError):
    codigo = "NOT_FOUND"


class CatalogoDuplicadoError(CatalogoError):
    codigo = "DUPLICATE"


class ReferenciaInvalidaError(CatalogoError):
    codigo = "INVALID_REFERENCE"


def _limpiar(valor: Optional[str]) -> Optional[str]:
    if valor is None:
        return None
    valor = valor.strip()
    return valor or None


# ===== Empresas =====

def crear_empresa(uow: UnitOfWork, datos: dict) -> Empresa:
    razon_social = _limpiar(datos.get("razon_social"))
    rut = _limpiar(datos.get("rut"))
    if not razon_social or not rut:
        raise CatalogoError("Razón social y RUT son obligatorios")
    if uow.empresas.by_rut(rut):
        raise CatalogoDuplicadoError(f"Ya existe una empresa con RUT {rut}")
    if uow.db.query(Empresa).filter(Empresa.razon_social == razon_social).first():
        raise CatalogoDuplicadoError("La empresa ya existe")

    empresa = uow.empresas.add(Empresa(
        razon_social=razon_social,
        rut=rut,
        direccion=datos.get("direccion"),
        telefono=datos.get("telefono"),
        email=datos.get("email"),
        activo=datos.get("activo", True),
    ))
    uow.flush()
    logger.info("Empresa creada: %s (%s)", razon_social, rut)
    return empresa


def obtener_empresa(uow: UnitOfWork, empresa_id: int) -> Empresa:
    empresa = uow.empresas.get(empresa_id)
    if not empresa:
        raise CatalogoNoEncontradoError("Empresa no encontrada")
    return empresa


def actualizar_empresa(uow: UnitOfWork, empresa_id: int, cambios: dict) -> Empresa:
    empresa = obtener_empresa(uow, empresa_id)
    if "rut" in cambios:
        otra = uow.empresas.by_rut(cambios["rut"])
        if otra and otra.id != empresa.id:
            raise CatalogoDuplicadoError(f"Ya existe una empresa con RUT {cambios['rut']}")
    for key, value in cambios.items():
        setattr(empresa, key, value)
    uow.flush()
    return empresa


def eliminar_empresa(uow: UnitOfWork, empresa_id: int) -> bool:
    """
    Elimina la empresa si no tiene sucursales ni usuarios; si los tiene, solo
    la desactiva. Devuelve True si se eliminó físicamente.
    """
    empresa = obtener_empresa(uow, empresa_id)
    tiene_dependientes = (
        uow.db.query(Sucursal.id).filter(Sucursal.empresa_id == empresa_id).first() is not None
        or uow.db.query(Usuario.id).filter(Usuario.empresa_id == empresa_id).first() is not None
    )
    if tiene_dependientes:
        empresa.activo = False
        uow.flush()
        return False
    uow.db.delete(empresa)
    uow.flush()
    return True


# ===== Sucursales =====

def crear_sucursal(uow: UnitOfWork, datos: dict) -> Sucursal:
    empresa = uow.empresas.get(datos.get("empresa_id"))
    if not empresa or not empresa.activo:
        raise ReferenciaInvalidaError("Empresa no encontrada o inactiva")
    nombre = _limpiar(datos.get("nombre"))
    if not nombre:
        raise CatalogoError("El nombre de la sucursal es obligatorio")
    sucursal = uow.sucursales.add(Sucursal(
        empresa_id=empresa.id,
        nombre=nombre,
        direccion=datos.get("direccion"),
        telefono=datos.get("telefono"),
        email=datos.get("email"),
        activo=datos.get("activo", True),
    ))
    uow.flush()
    return sucursal


def obtener_sucursal(uow: UnitOfWork, sucursal_id: int) -> Sucursal:
    sucursal = uow.sucursales.get(sucursal_id)
    if not sucursal:
        raise CatalogoNoEncontradoError("Sucursal no encontrada")
    return sucursal


def actualizar_sucursal(uow: UnitOfWork, sucursal_id: int, cambios: dict) -> Sucursal:
    sucursal = obtener_sucursal(uow, sucursal_id)
    if "empresa_id" in cambios and not uow.empresas.get(cambios["empresa_id"]):
        raise ReferenciaInvalidaError("Empresa no encontrada")
    for key, value in cambios.items():
        setattr(sucursal, key, value)
    uow.flush()
    return sucursal


def eliminar_sucursal(uow: UnitOfWork, sucursal_id: int) -> bool:
    sucursal = obtener_sucursal(uow, sucursal_id)
    if uow.db.query(Sierra.id).filter(Sierra.sucursal_id == sucursal_id).first() is not None:
        sucursal.activo = False
        uow.flush()
        return False
    uow.db.delete(sucursal)
    uow.flush()
    return True


# ===== Tipos de sierra / afilado =====

_TIPOS = {"sierra": TipoSierra, "afilado": TipoAfilado}


def crear_tipo(uow: UnitOfWork, clase: str, nombre: str, descripcion: Optional[str] = None):
    modelo = _TIPOS[clase]
    nombre = _limpiar(nombre)
    if not nombre:
        raise CatalogoError("El nombre es obligatorio")
    if uow.db.query(modelo).filter(modelo.nombre == nombre).first():
        raise CatalogoDuplicadoError(f"Ya existe un tipo de {clase} llamado {nombre}")
    tipo = modelo(nombre=nombre, descripcion=descripcion, activo=True)
    uow.db.add(tipo)
    uow.flush()
    return tipo


def obtener_tipo(uow: UnitOfWork, clase: str, tipo_id: int):
    tipo = uow.db.get(_TIPOS[clase], tipo_id)
    if not tipo:
        raise CatalogoNoEncontradoError(f"Tipo de {clase} no encontrado")
    return tipo


def actualizar_tipo(uow: UnitOfWork, clase: str, tipo_id: int, cambios: dict):
    modelo = _TIPOS[clase]
    tipo = obtener_tipo(uow, clase, tipo_id)
    if "nombre" in cambios:
        otro = uow.db.query(modelo).filter(modelo.nombre == cambios["nombre"]).first()
        if otro and otro.id != tipo.id:
            raise CatalogoDuplicadoError(f"Ya existe un tipo de {clase} llamado {cambios['nombre']}")
    for key, value in cambios.items():
        setattr(tipo, key, value)
    uow.flush()
    return tipo


def eliminar_tipo(uow: UnitOfWork, clase: str, tipo_id: int) -> bool:
    tipo = obtener_tipo(uow, clase, tipo_id)
    if clase == "sierra":
        en_uso = uow.db.query(Sierra.id).filter(Sierra.tipo_sierra_id == tipo_id).first() is not None
    else:
        en_uso = uow.db.query(Afilado.id).filter(Afilado.tipo_afilado_id == tipo_id).first() is not None
    if en_uso:
        tipo.activo = False
        uow.flush()
        return False
    uow.db.delete(tipo)
    uow.flush()
    return True


# ===== Usuarios =====

def _validar_rol(uow: UnitOfWork, rol: str, empresa_id: Optional[int]) -> None:
    try:
        UsuarioRol(rol)
    except ValueError:
        raise CatalogoError(f"Rol inválido: {rol}")
    if rol == UsuarioRol.CLIENTE.value:
        if empresa_id is None:
            raise ReferenciaInvalidaError("Un usuario cliente debe pertenecer a una empresa")
        if not uow.empresas.get(empresa_id):
            raise ReferenciaInvalidaError("Empresa no encontrada")


def crear_usuario(uow: UnitOfWork, datos: dict) -> Usuario:
    from ..security.auth import get_password_hash

    email = (_limpiar(datos.get("email")) or "").lower()
    if not email or not datos.get("password"):
        raise CatalogoError("Email y contraseña son obligatorios")
    if uow.usuarios.by_email(email):
        raise CatalogoDuplicadoError("El usuario ya existe")
    rol = datos.get("rol") or UsuarioRol.ADMINISTRADOR.value
    _validar_rol(uow, rol, datos.get("empresa_id"))

    usuario = uow.usuarios.add(Usuario(
        email=email,
        password_hash=get_password_hash(datos["password"]),
        nombre_completo=datos.get("nombre_completo"),
        rol=rol,
        empresa_id=datos.get("empresa_id"),
        activo=datos.get("activo", True),
    ))
    uow.flush()
    logger.info("Usuario creado: %s (%s)", email, rol)
    return usuario


def actualizar_usuario(uow: UnitOfWork, usuario_id: int, cambios: dict) -> Usuario:
    from ..security.auth import get_password_hash

    usuario = uow.usuarios.get(usuario_id)
    if not usuario:
        raise CatalogoNoEncontradoError("Usuario no encontrado")
    if "email" in cambios:
        cambios["email"] = (cambios["email"] or "").strip().lower()
        otro = uow.usuarios.by_email(cambios["email"])
        if otro and otro.id != usuario.id:
            raise CatalogoDuplicadoError("El email ya está en uso")
    password = cambios.pop("password", None)
    if password:
        usuario.password_hash = get_password_hash(password)

    _validar_rol(uow, cambios.get("rol", usuario.rol), cambios.get("empresa_id", usuario.empresa_id))
    for key, value in cambios.items():
        setattr(usuario, key, value)
    uow.flush()
    return usuario
