"""
Queries para el Módulo de Reportes
Solo consultas - NO modifican datos
"""
from dataclasses import dataclass, asdict
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import aliased

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.models import Empresa, Sucursal
from ..domain.models_sierras import Sierra, Afilado, TipoSierra, TipoAfilado, EstadoSierra


@dataclass
class FiltrosReporte:
    empresa_id: Optional[int] = None
    sucursal_id: Optional[int] = None
    tipo_sierra_id: Optional[int] = None
    tipo_afilado_id: Optional[int] = None
    fecha_desde: Optional[date] = None
    fecha_hasta: Optional[date] = None
    activo: Optional[bool] = None


@dataclass
class FilaReporteAfilado:
    afilado_id: int
    empresa: Optional[str]
    sucursal: Optional[str]
    tipo_sierra: Optional[str]
    codigo_sierra: str
    tipo_afilado: Optional[str]
    estado_sierra: Optional[str]
    fecha_afilado: date
    fecha_salida: Optional[date]
    activo: bool

    def as_dict(self) -> dict:
        return asdict(self)


COLUMNAS_REPORTE = [
    ("empresa", "Empresa"),
    ("sucursal", "Sucursal"),
    ("tipo_sierra", "Tipo Sierra"),
    ("codigo_sierra", "Código Sierra"),
    ("tipo_afilado", "Tipo Afilado"),
    ("estado_sierra", "Estado"),
    ("fecha_afilado", "Fecha Afilado"),
    ("fecha_salida", "Fecha Salida"),
    ("activo", "Activo"),
]


class ReporteAfiladosQuery:
    """Afilados por cliente con los datos de la sierra y su ubicación."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.db

    def _query(self, filtros: FiltrosReporte):
        estado = aliased(EstadoSierra)
        query = (
            self.db.query(
                Afilado.id.label("afilado_id"),
                Empresa.razon_social.label("empresa"),
                Sucursal.nombre.label("sucursal"),
                TipoSierra.nombre.label("tipo_sierra"),
                Sierra.codigo_barras.label("codigo_sierra"),
                TipoAfilado.nombre.label("tipo_afilado"),
                estado.nombre.label("estado_sierra"),
                Afilado.fecha_afilado.label("fecha_afilado"),
                Afilado.fecha_salida.label("fecha_salida"),
                Sierra.activo.label("activo"),
            )
            .join(Sierra, Afilado.sierra_id == Sierra.id)
            .outerjoin(Sucursal, Sierra.sucursal_id == Sucursal.id)
            .outerjoin(Empresa, Sucursal.empresa_id == Empresa.id)
            .outerjoin(TipoSierra, Sierra.tipo_sierra_id == TipoSierra.id)
            .outerjoin(TipoAfilado, Afilado.tipo_afilado_id == TipoAfilado.id)
            .outerjoin(estado, Sierra.estado_id == estado.id)
        )
        if filtros.empresa_id is not None:
            query = query.filter(Sucursal.empresa_id == filtros.empresa_id)
        if filtros.sucursal_id is not None:
            query = query.filter(Sierra.sucursal_id == filtros.sucursal_id)
        if filtros.tipo_sierra_id is not None:
            query = query.filter(Sierra.tipo_sierra_id == filtros.tipo_sierra_id)
        if filtros.tipo_afilado_id is not None:
            query = query.filter(Afilado.tipo_afilado_id == filtros.tipo_afilado_id)
        if filtros.fecha_desde:
            query = query.filter(Afilado.fecha_afilado >= filtros.fecha_desde)
        if filtros.fecha_hasta:
            query = query.filter(Afilado.fecha_afilado <= filtros.fecha_hasta)
        if filtros.activo is not None:
            query = query.filter(Sierra.activo == filtros.activo)
        return query.order_by(Afilado.fecha_afilado.desc(), Afilado.id.desc())

    def contar(self, filtros: FiltrosReporte) -> int:
        return self._query(filtros).count()

    def filas(
        self,
        filtros: FiltrosReporte,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> List[FilaReporteAfilado]:
        query = self._query(filtros)
        if page is not None and page_size is not None:
            query = query.offset((page - 1) * page_size).limit(page_size)
        return [
            FilaReporteAfilado(
                afilado_id=r.afilado_id,
                empresa=r.empresa,
                sucursal=r.sucursal,
                tipo_sierra=r.tipo_sierra,
                codigo_sierra=r.codigo_sierra,
                tipo_afilado=r.tipo_afilado,
                estado_sierra=r.estado_sierra,
                fecha_afilado=r.fecha_afilado,
                fecha_salida=r.fecha_salida,
                activo=bool(r.activo),
            )
            for r in query.all()
        ]
