"""
Registro de Sierras
===================

Alta, consulta y cambios de estado de las sierras (activos físicos).

Invariante: una sierra inactiva siempre queda "Fuera de servicio". Todas las
rutas de este módulo que tocan `activo` la respetan.
"""
import logging
from dataclasses import dataclass
from typing import Optional, List, Tuple

from sqlalchemy.orm import joinedload

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import EstadoSierraId
from ..domain.models import Sucursal
from ..domain.models_sierras import Sierra

logger = logging.getLogger(__name__)


class SierraError(Exception):
    """Excepción base del registro de sierras"""
    codigo = "SIERRA_ERROR"

    def __init__(self, mensaje: str):
        super().__init__(mensaje)
        self.mensaje = mensaje


class SierraNoEncontradaError(SierraError):
    codigo = "NOT_FOUND"


class CodigoDuplicadoError(SierraError):
    codigo = "DUPLICATE_BARCODE"


class TransicionInvalidaError(SierraError):
    codigo = "INVALID_TRANSITION"


class ReferenciaInvalidaError(SierraError):
    """Sucursal o tipo de sierra inexistente o inactivo"""
    codigo = "INVALID_REFERENCE"


@dataclass
class FiltrosSierra:
    codigo_barras: Optional[str] = None
    sucursal_id: Optional[int] = None
    empresa_id: Optional[int] = None
    tipo_sierra_id: Optional[int] = None
    estado_id: Optional[int] = None
    activo: Optional[bool] = None


class SierraService:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def obtener(self, sierra_id: int) -> Sierra:
        sierra = self.uow.sierras.get(sierra_id)
        if not sierra:
            raise SierraNoEncontradaError(f"Sierra {sierra_id} no encontrada")
        return sierra

    def obtener_por_codigo(self, codigo_barras: str) -> Optional[Sierra]:
        """Búsqueda por código de barras único. None si no existe."""
        codigo = (codigo_barras or "").strip()
        if not codigo:
            return None
        return self.uow.sierras.by_codigo(codigo)

    def _validar_referencias(self, sucursal_id: Optional[int], tipo_sierra_id: Optional[int]) -> None:
        if sucursal_id is not None:
            sucursal = self.uow.sucursales.get(sucursal_id)
            if not sucursal or not sucursal.activo:
                raise ReferenciaInvalidaError(f"Sucursal {sucursal_id} no encontrada o inactiva")
        if tipo_sierra_id is not None:
            tipo = self.uow.catalogos.tipo_sierra(tipo_sierra_id)
            if not tipo or not tipo.activo:
                raise ReferenciaInvalidaError(f"Tipo de sierra {tipo_sierra_id} no encontrado o inactivo")

    def registrar(self, codigo_barras: str, sucursal_id: int, tipo_sierra_id: int) -> Sierra:
        codigo = (codigo_barras or "").strip()
        if not codigo:
            raise SierraError("El código de barras es obligatorio")
        if self.uow.sierras.by_codigo(codigo):
            raise CodigoDuplicadoError(f"Ya existe una sierra con código {codigo}")
        self._validar_referencias(sucursal_id, tipo_sierra_id)

        sierra = self.uow.sierras.add(Sierra(
            codigo_barras=codigo,
            sucursal_id=sucursal_id,
            tipo_sierra_id=tipo_sierra_id,
            estado_id=EstadoSierraId.DISPONIBLE.value,
            activo=True,
        ))
        self.uow.flush()
        logger.info("Sierra registrada: %s (id=%s)", codigo, sierra.id)
        return sierra

    def actualizar(self, sierra_id: int, cambios: dict) -> Sierra:
        """
        Actualización parcial. Si queda inactiva se fuerza "Fuera de servicio";
        no se puede dejar activa una sierra en estado 4 sin indicar un estado nuevo.
        """
        sierra = self.obtener(sierra_id)

        if "codigo_barras" in cambios:
            codigo = (cambios["codigo_barras"] or "").strip()
            otra = self.uow.sierras.by_codigo(codigo)
            if not codigo or (otra and otra.id != sierra.id):
                raise CodigoDuplicadoError(f"Ya existe otra sierra con código {codigo}")
            cambios["codigo_barras"] = codigo

        self._validar_referencias(cambios.get("sucursal_id"), cambios.get("tipo_sierra_id"))
        if "estado_id" in cambios and not self.uow.catalogos.estado(cambios["estado_id"]):
            raise ReferenciaInvalidaError(f"Estado {cambios['estado_id']} no existe")

        for key, value in cambios.items():
            setattr(sierra, key, value)

        if not sierra.activo:
            sierra.estado_id = EstadoSierraId.FUERA_DE_SERVICIO.value
        elif sierra.estado_id == EstadoSierraId.FUERA_DE_SERVICIO.value and "activo" in cambios:
            sierra.estado_id = EstadoSierraId.DISPONIBLE.value

        self.uow.flush()
        return sierra

    def marcar_lista_para_retiro(self, sierra_id: int) -> Sierra:
        """En proceso de afilado -> Lista para retiro"""
        sierra = self.obtener(sierra_id)
        if not sierra.activo or sierra.estado_id != EstadoSierraId.EN_AFILADO.value:
            raise TransicionInvalidaError(
                f"La sierra {sierra.codigo_barras} debe estar en proceso de afilado para quedar lista para retiro"
            )
        sierra.estado_id = EstadoSierraId.LISTA_PARA_RETIRO.value
        self.uow.flush()
        return sierra

    def desactivar(self, sierra_id: int) -> Sierra:
        """Borrado lógico: las sierras nunca se eliminan físicamente."""
        sierra = self.obtener(sierra_id)
        sierra.activo = False
        sierra.estado_id = EstadoSierraId.FUERA_DE_SERVICIO.value
        self.uow.flush()
        logger.info("Sierra %s desactivada", sierra.codigo_barras)
        return sierra

    def activar(self, sierra_id: int) -> Sierra:
        sierra = self.obtener(sierra_id)
        if sierra.activo:
            raise TransicionInvalidaError(f"La sierra {sierra.codigo_barras} ya está activa")
        sierra.activo = True
        sierra.estado_id = EstadoSierraId.DISPONIBLE.value
        self.uow.flush()
        return sierra

    def listar(self, filtros: FiltrosSierra, page: int = 1, page_size: int = 10) -> Tuple[List[Sierra], int]:
        query = self.uow.db.query(Sierra).options(
            joinedload(Sierra.sucursal),
            joinedload(Sierra.tipo_sierra),
            joinedload(Sierra.estado_sierra),
        )
        if filtros.codigo_barras:
            query = query.filter(Sierra.codigo_barras.ilike(f"%{filtros.codigo_barras}%"))
        if filtros.sucursal_id is not None:
            query = query.filter(Sierra.sucursal_id == filtros.sucursal_id)
        if filtros.empresa_id is not None:
            query = query.join(Sucursal, Sierra.sucursal_id == Sucursal.id).filter(Sucursal.empresa_id == filtros.empresa_id)
        if filtros.tipo_sierra_id is not None:
            query = query.filter(Sierra.tipo_sierra_id == filtros.tipo_sierra_id)
        if filtros.estado_id is not None:
            query = query.filter(Sierra.estado_id == filtros.estado_id)
        if filtros.activo is not None:
            query = query.filter(Sierra.activo == filtros.activo)

        total = query.count()
        items = query.order_by(Sierra.id).offset((page - 1) * page_size).limit(page_size).all()
        return items, total
