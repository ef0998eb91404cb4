"""
Registro de Afilados
====================

Un afilado se crea al recibir la sierra (ingreso) y queda pendiente hasta que
se le registra fecha de salida, ya sea individualmente (completar) o dentro
de una salida masiva.

Transiciones de la sierra:
- ingreso:    Disponible -> En proceso de afilado
- completar:  -> Disponible
- eliminar el último afilado pendiente: -> Disponible
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, List, Tuple

from sqlalchemy.orm import joinedload

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import EstadoSierraId, NOMBRES_ESTADO_SIERRA
from ..domain.models import Sucursal
from ..domain.models_sierras import Afilado, Sierra

logger = logging.getLogger(__name__)


class AfiladoError(Exception):
    """Excepción base para errores del registro de afilados"""
    codigo = "AFILADO_ERROR"

    def __init__(self, mensaje: str):
        super().__init__(mensaje)
        self.mensaje = mensaje


class AfiladoNoEncontradoError(AfiladoError):
    codigo = "NOT_FOUND"


class SierraNoDisponibleError(AfiladoError):
    """La sierra no existe, está inactiva o no está Disponible"""
    codigo = "INELIGIBLE_STATE"


class TipoAfiladoInvalidoError(AfiladoError):
    codigo = "INVALID_REFERENCE"


class AfiladoYaCerradoError(AfiladoError):
    codigo = "NOT_PENDING"


class AfiladoEnSalidaMasivaError(AfiladoError):
    codigo = "IN_BULK_EXIT"


@dataclass
class FiltrosAfilado:
    sierra_id: Optional[int] = None
    tipo_afilado_id: Optional[int] = None
    empresa_id: Optional[int] = None
    sucursal_id: Optional[int] = None
    fecha_desde: Optional[date] = None
    fecha_hasta: Optional[date] = None
    pendiente: Optional[bool] = None


class AfiladoService:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def obtener(self, afilado_id: int) -> Afilado:
        afilado = self.uow.afilados.get(afilado_id)
        if not afilado:
            raise AfiladoNoEncontradoError(f"Afilado {afilado_id} no encontrado")
        return afilado

    def registrar(
        self,
        sierra_id: int,
        tipo_afilado_id: int,
        fecha_afilado: date,
        observaciones: Optional[str] = None,
        usuario_id: Optional[int] = None,
    ) -> Afilado:
        """Ingreso de una sierra a afilado."""
        sierra = self.uow.sierras.get(sierra_id, for_update=True)
        if not sierra:
            raise SierraNoDisponibleError(f"La sierra {sierra_id} no existe")
        if not sierra.activo or sierra.estado_id != EstadoSierraId.DISPONIBLE.value:
            estado = NOMBRES_ESTADO_SIERRA.get(EstadoSierraId(sierra.estado_id), "Desconocido")
            raise SierraNoDisponibleError(
                f"La sierra {sierra.codigo_barras} no está disponible para afilado. Estado actual: {estado}"
            )

        tipo = self.uow.catalogos.tipo_afilado(tipo_afilado_id)
        if not tipo or not tipo.activo:
            raise TipoAfiladoInvalidoError(f"El tipo de afilado {tipo_afilado_id} no existe")

        afilado = self.uow.afilados.add(Afilado(
            sierra_id=sierra.id,
            tipo_afilado_id=tipo_afilado_id,
            fecha_afilado=fecha_afilado,
            observaciones=observaciones,
            usuario_id=usuario_id,
        ))
        sierra.estado_id = EstadoSierraId.EN_AFILADO.value
        self.uow.flush()
        logger.info("Afilado %s registrado para sierra %s", afilado.id, sierra.codigo_barras)
        return afilado

    def completar(self, afilado_id: int, fecha_salida: date, observaciones: Optional[str] = None) -> Afilado:
        """Salida individual: cierra el afilado y deja la sierra Disponible."""
        afilado = self.obtener(afilado_id)
        if not afilado.pendiente:
            raise AfiladoYaCerradoError(f"El afilado #{afilado_id} ya tiene registrada una fecha de salida")
        if fecha_salida < afilado.fecha_afilado:
            raise AfiladoError("La fecha de salida no puede ser anterior a la fecha de afilado")
        if not afilado.sierra.activo:
            # Una sierra dada de baja sigue Fuera de servicio
            raise SierraNoDisponibleError(
                f"La sierra {afilado.sierra.codigo_barras} está dada de baja; reactívela antes de registrar la salida"
            )

        afilado.fecha_salida = fecha_salida
        if observaciones:
            afilado.observaciones = observaciones
        afilado.sierra.estado_id = EstadoSierraId.DISPONIBLE.value
        self.uow.flush()
        return afilado

    def eliminar(self, afilado_id: int) -> None:
        afilado = self.obtener(afilado_id)
        if self.uow.afilados.en_salida_masiva(afilado_id):
            raise AfiladoEnSalidaMasivaError(
                f"El afilado #{afilado_id} pertenece a una salida masiva; elimine primero la salida"
            )
        sierra = afilado.sierra
        otros_pendientes = [
            p for p in self.uow.afilados.pendientes_por_sierra(sierra.id) if p.id != afilado.id
        ]
        if afilado.pendiente and sierra.activo and not otros_pendientes:
            sierra.estado_id = EstadoSierraId.DISPONIBLE.value
        self.uow.db.delete(afilado)
        self.uow.flush()

    def pendientes_por_sierra(self, sierra_id: int) -> List[Afilado]:
        return self.uow.afilados.pendientes_por_sierra(sierra_id)

    def listar(
        self,
        filtros: FiltrosAfilado,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Afilado], int]:
        query = self.uow.db.query(Afilado).options(
            joinedload(Afilado.sierra).joinedload(Sierra.sucursal),
            joinedload(Afilado.tipo_afilado),
        )
        if filtros.sierra_id is not None:
            query = query.filter(Afilado.sierra_id == filtros.sierra_id)
        if filtros.tipo_afilado_id is not None:
            query = query.filter(Afilado.tipo_afilado_id == filtros.tipo_afilado_id)
        if filtros.empresa_id is not None or filtros.sucursal_id is not None:
            query = query.join(Sierra, Afilado.sierra_id == Sierra.id)
            if filtros.sucursal_id is not None:
                query = query.filter(Sierra.sucursal_id == filtros.sucursal_id)
            if filtros.empresa_id is not None:
                query = query.join(Sucursal, Sierra.sucursal_id == Sucursal.id).filter(Sucursal.empresa_id == filtros.empresa_id)
        if filtros.fecha_desde:
            query = query.filter(Afilado.fecha_afilado >= filtros.fecha_desde)
        if filtros.fecha_hasta:
            query = query.filter(Afilado.fecha_afilado <= filtros.fecha_hasta)
        if filtros.pendiente is True:
            query = query.filter(Afilado.fecha_salida.is_(None))
        elif filtros.pendiente is False:
            query = query.filter(Afilado.fecha_salida.is_not(None))

        total = query.count()
        items = (
            query.order_by(Afilado.fecha_afilado.desc(), Afilado.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total
