"""
Escaneo de Códigos de Barras
============================

Convierte una secuencia de escaneos en un lote validado para una salida masiva
o una baja masiva. El lote vive en el cliente: cada escaneo recibe el lote
actual y devuelve el lote actualizado junto con el resultado. Nada se persiste
en esta etapa; solo se leen sierras y afilados.

Un escaneo rechazado nunca modifica el lote.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Union

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import ESTADOS_ELEGIBLES_SALIDA

logger = logging.getLogger(__name__)


class ResultadoEscaneo(str, Enum):
    AGREGADO = "AGREGADO"
    CODIGO_VACIO = "CODIGO_VACIO"
    DUPLICADO = "DUPLICADO"
    NOT_FOUND = "NOT_FOUND"
    INELIGIBLE_STATE = "INELIGIBLE_STATE"
    NO_PENDING_RECORDS = "NO_PENDING_RECORDS"
    ALREADY_INACTIVE = "ALREADY_INACTIVE"


@dataclass(frozen=True)
class ItemLoteSalida:
    """Un afilado pendiente dentro del lote de una salida masiva"""
    afilado_id: int
    sierra_id: int
    codigo_barras: str
    fecha_afilado: date
    estado_id: int
    tipo_afilado: Optional[str] = None

    @property
    def clave(self) -> int:
        return self.afilado_id


@dataclass(frozen=True)
class ItemLoteBaja:
    """Una sierra activa dentro del lote de una baja masiva"""
    sierra_id: int
    codigo_barras: str
    estado_id: int
    sucursal: Optional[str] = None
    tipo_sierra: Optional[str] = None

    @property
    def clave(self) -> int:
        return self.sierra_id


ItemLote = Union[ItemLoteSalida, ItemLoteBaja]


@dataclass
class RespuestaEscaneo:
    lote: List[ItemLote] = field(default_factory=list)
    resultado: ResultadoEscaneo = ResultadoEscaneo.AGREGADO
    mensaje: str = ""

    @property
    def aceptado(self) -> bool:
        return self.resultado == ResultadoEscaneo.AGREGADO


def _rechazar(lote: Sequence[ItemLote], resultado: ResultadoEscaneo, mensaje: str) -> RespuestaEscaneo:
    logger.debug("Escaneo rechazado (%s): %s", resultado.value, mensaje)
    return RespuestaEscaneo(lote=list(lote), resultado=resultado, mensaje=mensaje)


def _ya_escaneado(lote: Sequence[ItemLote], codigo: str) -> bool:
    return any(item.codigo_barras == codigo for item in lote)


def escanear_para_salida(uow: UnitOfWork, codigo_barras: str, lote: Sequence[ItemLoteSalida]) -> RespuestaEscaneo:
    """
    Agrega al lote todos los afilados pendientes de la sierra escaneada.

    La sierra debe estar "En proceso de afilado" o "Lista para retiro".
    Un escaneo puede agregar varios afilados.
    """
    codigo = (codigo_barras or "").strip()
    if not codigo:
        return _rechazar(lote, ResultadoEscaneo.CODIGO_VACIO, "Código de barras inválido")
    if _ya_escaneado(lote, codigo):
        return _rechazar(lote, ResultadoEscaneo.DUPLICADO, "Esta sierra ya ha sido escaneada")

    sierra = uow.sierras.by_codigo(codigo)
    if not sierra:
        return _rechazar(lote, ResultadoEscaneo.NOT_FOUND, "No se encontró ninguna sierra con ese código de barras")

    if sierra.estado_id not in ESTADOS_ELEGIBLES_SALIDA:
        estado = sierra.estado_sierra.nombre if sierra.estado_sierra else str(sierra.estado_id)
        return _rechazar(
            lote,
            ResultadoEscaneo.INELIGIBLE_STATE,
            f'La sierra debe estar en estado "En proceso de afilado" o "Lista para retiro". Estado actual: {estado}',
        )

    pendientes = uow.afilados.pendientes_por_sierra(sierra.id)
    if not pendientes:
        return _rechazar(lote, ResultadoEscaneo.NO_PENDING_RECORDS, "No hay afilados pendientes de salida para esta sierra")

    en_lote = {item.afilado_id for item in lote}
    nuevos = [
        ItemLoteSalida(
            afilado_id=a.id,
            sierra_id=sierra.id,
            codigo_barras=sierra.codigo_barras,
            fecha_afilado=a.fecha_afilado,
            estado_id=sierra.estado_id,
            tipo_afilado=a.tipo_afilado.nombre if a.tipo_afilado else None,
        )
        for a in pendientes
        if a.id not in en_lote
    ]
    return RespuestaEscaneo(
        lote=list(lote) + nuevos,
        resultado=ResultadoEscaneo.AGREGADO,
        mensaje=f"Sierra escaneada correctamente. Se agregaron {len(nuevos)} afilados.",
    )


def escanear_para_baja(uow: UnitOfWork, codigo_barras: str, lote: Sequence[ItemLoteBaja]) -> RespuestaEscaneo:
    """Agrega al lote la sierra escaneada si sigue activa."""
    codigo = (codigo_barras or "").strip()
    if not codigo:
        return _rechazar(lote, ResultadoEscaneo.CODIGO_VACIO, "Código de barras inválido")
    if _ya_escaneado(lote, codigo):
        return _rechazar(lote, ResultadoEscaneo.DUPLICADO, "Esta sierra ya ha sido escaneada")

    sierra = uow.sierras.by_codigo(codigo)
    if not sierra:
        return _rechazar(lote, ResultadoEscaneo.NOT_FOUND, "No se encontró ninguna sierra con ese código de barras")
    if not sierra.activo:
        return _rechazar(lote, ResultadoEscaneo.ALREADY_INACTIVE, "La sierra ya está marcada como inactiva")

    item = ItemLoteBaja(
        sierra_id=sierra.id,
        codigo_barras=sierra.codigo_barras,
        estado_id=sierra.estado_id,
        sucursal=sierra.sucursal.nombre if sierra.sucursal else None,
        tipo_sierra=sierra.tipo_sierra.nombre if sierra.tipo_sierra else None,
    )
    return RespuestaEscaneo(
        lote=list(lote) + [item],
        resultado=ResultadoEscaneo.AGREGADO,
        mensaje="Sierra escaneada correctamente",
    )


def quitar_de_lote(lote: Sequence[ItemLote], clave: int) -> List[ItemLote]:
    """Quita un ítem por su clave (afilado_id en salidas, sierra_id en bajas)."""
    return [item for item in lote if item.clave != clave]
