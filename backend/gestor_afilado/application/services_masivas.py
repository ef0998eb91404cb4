"""
Operaciones Masivas
===================

Salida masiva: cierra en bloque afilados pendientes y deja sus sierras Disponibles.
Baja masiva: desactiva en bloque sierras activas y las deja Fuera de servicio.

Disciplina común (validar y luego escribir):
1. Lote vacío -> EMPTY_BATCH, no se escribe nada.
2. Se bloquean y revalidan TODOS los ítems antes de la primera escritura.
   Un solo ítem inválido aborta el lote completo.
3. Cabecera + detalles + cambios de estado se hacen en la misma sesión; quien
   llama hace commit una sola vez (o rollback ante cualquier excepción).

Reversión (eliminar la cabecera):
- Salida: se limpia fecha_salida de cada afilado. La sierra no se toca, salvo
  con `reversion_exacta`, donde vuelve al estado registrado en el detalle si
  sigue Disponible.
- Baja: se restaura `activo` desde estado_anterior y la sierra queda Disponible;
  con `reversion_exacta` vuelve al estado registrado en el detalle.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, func

from ..config import settings
from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import EstadoSierraId, ESTADOS_ELEGIBLES_SALIDA
from ..domain.models import Sucursal
from ..domain.models_sierras import Sierra
from ..domain.models_masivas import SalidaMasiva, SalidaMasivaAfilado, BajaMasiva, BajaMasivaSierra

logger = logging.getLogger(__name__)


# ===== Excepciones =====

class MasivaError(Exception):
    """Excepción base para operaciones masivas"""
    codigo = "MASIVA_ERROR"

    def __init__(self, mensaje: str, ids: Optional[List[int]] = None):
        super().__init__(mensaje)
        self.mensaje = mensaje
        self.ids = ids or []


class LoteVacioError(MasivaError):
    codigo = "EMPTY_BATCH"


class MasivaNoEncontradaError(MasivaError):
    """Cabecera, afilado o sierra inexistente"""
    codigo = "NOT_FOUND"


class AfiladoNoPendienteError(MasivaError):
    codigo = "NOT_PENDING"


class EstadoNoElegibleError(MasivaError):
    codigo = "INELIGIBLE_STATE"


class SierraInactivaError(MasivaError):
    codigo = "ALREADY_INACTIVE"


class ReferenciaInvalidaError(MasivaError):
    codigo = "INVALID_REFERENCE"


def _sin_duplicados(ids: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(int(i) for i in ids))


# ===== Vistas tipadas =====

@dataclass
class DetalleSalida:
    afilado_id: int
    sierra_id: Optional[int]
    codigo_barras: Optional[str]
    tipo_afilado: Optional[str]
    fecha_afilado: Optional[date]
    fecha_salida: Optional[date]
    estado_id_anterior: Optional[int]


@dataclass
class DetalleBaja:
    sierra_id: int
    codigo_barras: Optional[str]
    sucursal: Optional[str]
    tipo_sierra: Optional[str]
    estado_anterior: bool
    estado_id_anterior: Optional[int]
    activo_actual: Optional[bool]


@dataclass
class SalidaMasivaCompleta:
    cabecera: SalidaMasiva
    sucursal: Optional[str]
    detalles: List[DetalleSalida] = field(default_factory=list)


@dataclass
class BajaMasivaCompleta:
    cabecera: BajaMasiva
    detalles: List[DetalleBaja] = field(default_factory=list)


@dataclass
class FiltrosMasivas:
    sucursal_id: Optional[int] = None
    empresa_id: Optional[int] = None
    fecha_desde: Optional[date] = None
    fecha_hasta: Optional[date] = None


@dataclass
class ResumenMasivas:
    total_salidas: int
    total_bajas: int
    afilados_en_salidas: int
    sierras_en_bajas: int
    ultimas_salidas: List[SalidaMasiva] = field(default_factory=list)
    ultimas_bajas: List[BajaMasiva] = field(default_factory=list)


# ===== Salida masiva =====

class SalidaMasivaService:

    def __init__(self, uow: UnitOfWork, reversion_exacta: Optional[bool] = None):
        self.uow = uow
        self.reversion_exacta = settings.reversion_exacta if reversion_exacta is None else reversion_exacta

    def registrar(
        self,
        afilado_ids: Iterable[int],
        fecha_salida: date,
        sucursal_id: int,
        observaciones: Optional[str] = None,
        usuario_id: Optional[int] = None,
    ) -> SalidaMasiva:
        ids = _sin_duplicados(afilado_ids)
        if not ids:
            raise LoteVacioError("Debe escanear al menos una sierra con afilados pendientes")

        sucursal = self.uow.sucursales.get(sucursal_id)
        if not sucursal:
            raise ReferenciaInvalidaError(f"Sucursal {sucursal_id} no encontrada")

        # Revalidación completa antes de escribir
        afilados = self.uow.afilados.by_ids(ids, for_update=True)
        encontrados = {a.id for a in afilados}
        faltantes = [i for i in ids if i not in encontrados]
        if faltantes:
            raise MasivaNoEncontradaError(f"Afilados no encontrados: {faltantes}", faltantes)

        cerrados = [a.id for a in afilados if not a.pendiente]
        if cerrados:
            raise AfiladoNoPendienteError(f"Los afilados {cerrados} ya tienen fecha de salida", cerrados)

        sierras = {a.sierra_id: a.sierra for a in afilados}
        self.uow.sierras.by_ids(sierras.keys(), for_update=True)
        no_elegibles = sorted(
            s.id for s in sierras.values()
            if not s.activo or s.estado_id not in ESTADOS_ELEGIBLES_SALIDA
        )
        if no_elegibles:
            codigos = [sierras[i].codigo_barras for i in no_elegibles]
            raise EstadoNoElegibleError(
                f"Las sierras {codigos} no están en proceso de afilado ni listas para retiro",
                no_elegibles,
            )

        # La cabecera pertenece a la sucursal de las sierras escaneadas
        ajenas = sorted(sid for sid, s in sierras.items() if s.sucursal_id != sucursal_id)
        if ajenas:
            codigos = [sierras[i].codigo_barras for i in ajenas]
            raise ReferenciaInvalidaError(
                f"Las sierras {codigos} no pertenecen a la sucursal {sucursal.nombre}",
                ajenas,
            )

        estados_previos = {sid: s.estado_id for sid, s in sierras.items()}

        salida = self.uow.salidas.add(SalidaMasiva(
            sucursal_id=sucursal_id,
            fecha_salida=fecha_salida,
            observaciones=observaciones,
            usuario_id=usuario_id,
            creado_en=datetime.now(),
        ))
        self.uow.flush()

        for afilado in afilados:
            self.uow.salidas.add_detalle(SalidaMasivaAfilado(
                salida_masiva_id=salida.id,
                afilado_id=afilado.id,
                estado_id_anterior=estados_previos[afilado.sierra_id],
            ))
            afilado.fecha_salida = fecha_salida

        for sierra in sierras.values():
            sierra.estado_id = EstadoSierraId.DISPONIBLE.value

        self.uow.flush()
        logger.info(
            "Salida masiva %s registrada: %s afilados, %s sierras, fecha %s",
            salida.id, len(afilados), len(sierras), fecha_salida,
        )
        return salida

    def eliminar(self, salida_id: int) -> int:
        """Revierte la salida. Devuelve la cantidad de afilados reabiertos."""
        salida = self.uow.salidas.get(salida_id)
        if not salida:
            raise MasivaNoEncontradaError(f"Salida masiva {salida_id} no encontrada")

        detalles = self.uow.salidas.detalles(salida_id)
        for detalle in detalles:
            afilado = detalle.afilado
            if afilado is None:
                continue
            afilado.fecha_salida = None
            sierra = afilado.sierra
            if (
                self.reversion_exacta
                and detalle.estado_id_anterior is not None
                and sierra is not None
                and sierra.activo
                and sierra.estado_id == EstadoSierraId.DISPONIBLE.value
            ):
                logger.debug("Sierra %s vuelve a estado %s", sierra.codigo_barras, detalle.estado_id_anterior)
                sierra.estado_id = detalle.estado_id_anterior

        for detalle in detalles:
            self.uow.db.delete(detalle)
        self.uow.flush()
        self.uow.db.delete(salida)
        self.uow.flush()
        logger.info("Salida masiva %s eliminada, %s afilados reabiertos", salida_id, len(detalles))
        return len(detalles)

    def obtener(self, salida_id: int) -> SalidaMasivaCompleta:
        salida = self.uow.salidas.get(salida_id)
        if not salida:
            raise MasivaNoEncontradaError(f"Salida masiva {salida_id} no encontrada")

        detalles = []
        for d in self.uow.salidas.detalles(salida_id):
            afilado = d.afilado
            sierra = afilado.sierra if afilado else None
            detalles.append(DetalleSalida(
                afilado_id=d.afilado_id,
                sierra_id=sierra.id if sierra else None,
                codigo_barras=sierra.codigo_barras if sierra else None,
                tipo_afilado=afilado.tipo_afilado.nombre if afilado and afilado.tipo_afilado else None,
                fecha_afilado=afilado.fecha_afilado if afilado else None,
                fecha_salida=afilado.fecha_salida if afilado else None,
                estado_id_anterior=d.estado_id_anterior,
            ))
        return SalidaMasivaCompleta(
            cabecera=salida,
            sucursal=salida.sucursal.nombre if salida.sucursal else None,
            detalles=detalles,
        )

    def listar(self, filtros: FiltrosMasivas, page: int = 1, page_size: int = 10) -> Tuple[List[SalidaMasiva], int]:
        query = self.uow.db.query(SalidaMasiva)
        if filtros.sucursal_id is not None:
            query = query.filter(SalidaMasiva.sucursal_id == filtros.sucursal_id)
        if filtros.empresa_id is not None:
            query = query.join(Sucursal, SalidaMasiva.sucursal_id == Sucursal.id).filter(Sucursal.empresa_id == filtros.empresa_id)
        if filtros.fecha_desde:
            query = query.filter(SalidaMasiva.fecha_salida >= filtros.fecha_desde)
        if filtros.fecha_hasta:
            query = query.filter(SalidaMasiva.fecha_salida <= filtros.fecha_hasta)

        total = query.count()
        items = (
            query.order_by(SalidaMasiva.fecha_salida.desc(), SalidaMasiva.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total


# ===== Baja masiva =====

def _bajas_de_empresa(empresa_id: int):
    return (
        select(BajaMasivaSierra.baja_masiva_id)
        .join(Sierra, BajaMasivaSierra.sierra_id == Sierra.id)
        .join(Sucursal, Sierra.sucursal_id == Sucursal.id)
        .where(Sucursal.empresa_id == empresa_id)
    )


class BajaMasivaService:

    def __init__(self, uow: UnitOfWork, reversion_exacta: Optional[bool] = None):
        self.uow = uow
        self.reversion_exacta = settings.reversion_exacta if reversion_exacta is None else reversion_exacta

    def registrar(
        self,
        sierra_ids: Iterable[int],
        fecha_baja: date,
        observaciones: Optional[str] = None,
        usuario_id: Optional[int] = None,
    ) -> BajaMasiva:
        ids = _sin_duplicados(sierra_ids)
        if not ids:
            raise LoteVacioError("Debe escanear al menos una sierra")

        sierras = self.uow.sierras.by_ids(ids, for_update=True)
        encontradas = {s.id for s in sierras}
        faltantes = [i for i in ids if i not in encontradas]
        if faltantes:
            raise MasivaNoEncontradaError(f"Sierras no encontradas: {faltantes}", faltantes)

        inactivas = [s for s in sierras if not s.activo]
        if inactivas:
            raise SierraInactivaError(
                f"Las sierras {[s.codigo_barras for s in inactivas]} ya están inactivas",
                [s.id for s in inactivas],
            )

        baja = self.uow.bajas.add(BajaMasiva(
            fecha_baja=fecha_baja,
            observaciones=observaciones,
            usuario_id=usuario_id,
            creado_en=datetime.now(),
        ))
        self.uow.flush()

        for sierra in sierras:
            self.uow.bajas.add_detalle(BajaMasivaSierra(
                baja_masiva_id=baja.id,
                sierra_id=sierra.id,
                estado_anterior=sierra.activo,
                estado_id_anterior=sierra.estado_id,
            ))
            sierra.activo = False
            sierra.estado_id = EstadoSierraId.FUERA_DE_SERVICIO.value

        self.uow.flush()
        logger.info("Baja masiva %s registrada: %s sierras, fecha %s", baja.id, len(sierras), fecha_baja)
        return baja

    def eliminar(self, baja_id: int) -> int:
        """Revierte la baja. Devuelve la cantidad de sierras restauradas."""
        baja = self.uow.bajas.get(baja_id)
        if not baja:
            raise MasivaNoEncontradaError(f"Baja masiva {baja_id} no encontrada")

        detalles = self.uow.bajas.detalles(baja_id)
        for detalle in detalles:
            sierra = detalle.sierra
            if sierra is None:
                continue
            sierra.activo = detalle.estado_anterior
            if not sierra.activo:
                sierra.estado_id = EstadoSierraId.FUERA_DE_SERVICIO.value
            elif self.reversion_exacta and detalle.estado_id_anterior is not None:
                sierra.estado_id = detalle.estado_id_anterior
            else:
                sierra.estado_id = EstadoSierraId.DISPONIBLE.value
            logger.debug("Sierra %s restaurada: activo=%s estado=%s", sierra.codigo_barras, sierra.activo, sierra.estado_id)

        for detalle in detalles:
            self.uow.db.delete(detalle)
        self.uow.flush()
        self.uow.db.delete(baja)
        self.uow.flush()
        logger.info("Baja masiva %s eliminada, %s sierras restauradas", baja_id, len(detalles))
        return len(detalles)

    def obtener(self, baja_id: int) -> BajaMasivaCompleta:
        baja = self.uow.bajas.get(baja_id)
        if not baja:
            raise MasivaNoEncontradaError(f"Baja masiva {baja_id} no encontrada")

        detalles = []
        for d in self.uow.bajas.detalles(baja_id):
            sierra = d.sierra
            detalles.append(DetalleBaja(
                sierra_id=d.sierra_id,
                codigo_barras=sierra.codigo_barras if sierra else None,
                sucursal=sierra.sucursal.nombre if sierra and sierra.sucursal else None,
                tipo_sierra=sierra.tipo_sierra.nombre if sierra and sierra.tipo_sierra else None,
                estado_anterior=d.estado_anterior,
                estado_id_anterior=d.estado_id_anterior,
                activo_actual=sierra.activo if sierra else None,
            ))
        return BajaMasivaCompleta(cabecera=baja, detalles=detalles)

    def listar(self, filtros: FiltrosMasivas, page: int = 1, page_size: int = 10) -> Tuple[List[BajaMasiva], int]:
        query = self.uow.db.query(BajaMasiva)
        if filtros.empresa_id is not None:
            query = query.filter(BajaMasiva.id.in_(_bajas_de_empresa(filtros.empresa_id)))
        if filtros.sucursal_id is not None:
            query = query.filter(BajaMasiva.id.in_(
                select(BajaMasivaSierra.baja_masiva_id)
                .join(Sierra, BajaMasivaSierra.sierra_id == Sierra.id)
                .where(Sierra.sucursal_id == filtros.sucursal_id)
            ))
        if filtros.fecha_desde:
            query = query.filter(BajaMasiva.fecha_baja >= filtros.fecha_desde)
        if filtros.fecha_hasta:
            query = query.filter(BajaMasiva.fecha_baja <= filtros.fecha_hasta)

        total = query.count()
        items = (
            query.order_by(BajaMasiva.fecha_baja.desc(), BajaMasiva.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total


# ===== Dashboard =====

def resumen_masivas(uow: UnitOfWork, empresa_id: Optional[int] = None, limite: int = 5) -> ResumenMasivas:
    db = uow.db

    salidas = db.query(SalidaMasiva)
    afilados_salida = db.query(func.count(SalidaMasivaAfilado.id)).select_from(SalidaMasivaAfilado)
    bajas = db.query(BajaMasiva)
    sierras_baja = db.query(func.count(BajaMasivaSierra.id)).select_from(BajaMasivaSierra)

    if empresa_id is not None:
        salidas = salidas.join(Sucursal, SalidaMasiva.sucursal_id == Sucursal.id).filter(Sucursal.empresa_id == empresa_id)
        afilados_salida = (
            afilados_salida.join(SalidaMasiva, SalidaMasivaAfilado.salida_masiva_id == SalidaMasiva.id)
            .join(Sucursal, SalidaMasiva.sucursal_id == Sucursal.id)
            .filter(Sucursal.empresa_id == empresa_id)
        )
        bajas = bajas.filter(BajaMasiva.id.in_(_bajas_de_empresa(empresa_id)))
        sierras_baja = (
            sierras_baja.join(Sierra, BajaMasivaSierra.sierra_id == Sierra.id)
            .join(Sucursal, Sierra.sucursal_id == Sucursal.id)
            .filter(Sucursal.empresa_id == empresa_id)
        )

    return ResumenMasivas(
        total_salidas=salidas.count(),
        total_bajas=bajas.count(),
        afilados_en_salidas=afilados_salida.scalar() or 0,
        sierras_en_bajas=sierras_baja.scalar() or 0,
        ultimas_salidas=salidas.order_by(SalidaMasiva.creado_en.desc(), SalidaMasiva.id.desc()).limit(limite).all(),
        ultimas_bajas=bajas.order_by(BajaMasiva.creado_en.desc(), BajaMasiva.id.desc()).limit(limite).all(),
    )
