"""
Endpoints de Salidas Masivas

Flujo: el cliente escanea códigos (POST /escanear, con el lote actual) hasta
armar el lote y luego lo confirma (POST ""). La confirmación es atómica.
"""
import logging
from dataclasses import asdict
from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...security.auth import ContextoUsuario, get_contexto, require_gestion
from ...infrastructure.unit_of_work import UnitOfWork
from ...infrastructure.pdf_utils import crear_comprobante_pdf
from ...application.services_escaneo import ItemLoteSalida, ResultadoEscaneo, escanear_para_salida
from ...application.services_masivas import (
    SalidaMasivaService, MasivaError, FiltrosMasivas, SalidaMasivaCompleta,
)
from ...application.services_audit import log_audit, MODULE_SALIDAS, ACTION_CREATE, ACTION_REVERSE
from ..errores import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/salidas-masivas", tags=["salidas-masivas"])


# ===== DTOs =====

class EscaneoSalidaIn(BaseModel):
    codigo_barras: str
    lote: List[ItemLoteSalida] = []

class EscaneoSalidaOut(BaseModel):
    lote: List[ItemLoteSalida]
    resultado: ResultadoEscaneo
    mensaje: str

class SalidaMasivaIn(BaseModel):
    afilado_ids: List[int] = Field(default_factory=list)
    fecha_salida: date
    sucursal_id: int
    observaciones: Optional[str] = None

class DetalleSalidaOut(BaseModel):
    afilado_id: int
    sierra_id: Optional[int] = None
    codigo_barras: Optional[str] = None
    tipo_afilado: Optional[str] = None
    fecha_afilado: Optional[date] = None
    fecha_salida: Optional[date] = None
    estado_id_anterior: Optional[int] = None

class SalidaMasivaOut(BaseModel):
    id: int
    sucursal_id: int
    sucursal: Optional[str] = None
    fecha_salida: date
    observaciones: Optional[str] = None
    usuario_id: Optional[int] = None
    creado_en: datetime
    cantidad_afilados: int
    detalles: List[DetalleSalidaOut] = []

class SalidaMasivaResumenOut(BaseModel):
    id: int
    sucursal_id: int
    sucursal: Optional[str] = None
    fecha_salida: date
    observaciones: Optional[str] = None
    creado_en: datetime
    cantidad_afilados: int

class SalidaMasivaPage(BaseModel):
    items: List[SalidaMasivaResumenOut]
    total: int


def _to_out(completa: SalidaMasivaCompleta) -> SalidaMasivaOut:
    c = completa.cabecera
    return SalidaMasivaOut(
        id=c.id,
        sucursal_id=c.sucursal_id,
        sucursal=completa.sucursal,
        fecha_salida=c.fecha_salida,
        observaciones=c.observaciones,
        usuario_id=c.usuario_id,
        creado_en=c.creado_en,
        cantidad_afilados=len(completa.detalles),
        detalles=[DetalleSalidaOut(**asdict(d)) for d in completa.detalles],
    )


# ===== Endpoints =====

@router.post("/escanear", response_model=EscaneoSalidaOut)
def escanear(payload: EscaneoSalidaIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    """
    Procesa un escaneo. Un rechazo no es un error HTTP: se devuelve el lote sin
    cambios y el resultado correspondiente.
    """
    respuesta = escanear_para_salida(UnitOfWork(db), payload.codigo_barras, payload.lote)
    return EscaneoSalidaOut(lote=respuesta.lote, resultado=respuesta.resultado, mensaje=respuesta.mensaje)

@router.post("", response_model=SalidaMasivaOut)
def registrar_salida_masiva(payload: SalidaMasivaIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    service = SalidaMasivaService(uow)
    try:
        salida = service.registrar(
            afilado_ids=payload.afilado_ids,
            fecha_salida=payload.fecha_salida,
            sucursal_id=payload.sucursal_id,
            observaciones=payload.observaciones,
            usuario_id=ctx.usuario_id,
        )
        uow.commit()
    except MasivaError as e:
        uow.rollback()
        raise http_error(e)
    except Exception:
        uow.rollback()
        logger.exception("Error registrando salida masiva")
        raise HTTPException(status_code=500, detail="Error inesperado registrando la salida masiva; no se aplicó ningún cambio")

    completa = service.obtener(salida.id)
    log_audit(
        MODULE_SALIDAS, ACTION_CREATE, "SalidaMasiva", salida.id,
        f"Salida masiva de {len(completa.detalles)} afilados",
        metadata_={"afilado_ids": [d.afilado_id for d in completa.detalles], "fecha_salida": str(salida.fecha_salida)},
        usuario_id=ctx.usuario_id, usuario_rol=ctx.rol,
    )
    return _to_out(completa)

@router.get("", response_model=SalidaMasivaPage)
def list_salidas_masivas(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    empresa_id: int | None = Query(default=None),
    sucursal_id: int | None = Query(default=None),
    fecha_desde: date | None = Query(default=None),
    fecha_hasta: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    filtros = FiltrosMasivas(
        sucursal_id=sucursal_id,
        empresa_id=ctx.empresa_visible(empresa_id),
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
    )
    items, total = SalidaMasivaService(UnitOfWork(db)).listar(filtros, page, page_size)
    return SalidaMasivaPage(
        items=[
            SalidaMasivaResumenOut(
                id=s.id,
                sucursal_id=s.sucursal_id,
                sucursal=s.sucursal.nombre if s.sucursal else None,
                fecha_salida=s.fecha_salida,
                observaciones=s.observaciones,
                creado_en=s.creado_en,
                cantidad_afilados=len(s.detalles),
            )
            for s in items
        ],
        total=total,
    )

def _obtener_visible(db: Session, ctx: ContextoUsuario, salida_id: int) -> SalidaMasivaCompleta:
    try:
        completa = SalidaMasivaService(UnitOfWork(db)).obtener(salida_id)
    except MasivaError as e:
        raise http_error(e)
    sucursal = completa.cabecera.sucursal
    if ctx.es_cliente and (not sucursal or sucursal.empresa_id != ctx.empresa_id):
        raise HTTPException(404, detail={"codigo": "NOT_FOUND", "mensaje": "Salida masiva no encontrada"})
    return completa

@router.get("/{salida_id}", response_model=SalidaMasivaOut)
def get_salida_masiva(salida_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    return _to_out(_obtener_visible(db, ctx, salida_id))

@router.get("/{salida_id}/pdf")
def pdf_salida_masiva(salida_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    """Comprobante imprimible para entregar junto con las sierras."""
    completa = _obtener_visible(db, ctx, salida_id)
    c = completa.cabecera
    contenido = crear_comprobante_pdf(
        titulo=f"SALIDA MASIVA N° {c.id}",
        datos=[
            ("Fecha de salida", c.fecha_salida.strftime("%d/%m/%Y")),
            ("Sucursal", completa.sucursal),
            ("Observaciones", c.observaciones),
        ],
        headers=["Código sierra", "Tipo afilado", "Fecha afilado", "Fecha salida"],
        rows=[
            [
                d.codigo_barras,
                d.tipo_afilado,
                d.fecha_afilado.strftime("%d/%m/%Y") if d.fecha_afilado else None,
                d.fecha_salida.strftime("%d/%m/%Y") if d.fecha_salida else None,
            ]
            for d in completa.detalles
        ],
        footer_text="Firma de recepción: ____________________",
    )
    return Response(
        content=contenido,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="salida_masiva_{c.id}.pdf"'},
    )

@router.delete("/{salida_id}")
def delete_salida_masiva(salida_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    """Revierte la salida: los afilados vuelven a quedar pendientes."""
    uow = UnitOfWork(db)
    try:
        reabiertos = SalidaMasivaService(uow).eliminar(salida_id)
        uow.commit()
    except MasivaError as e:
        uow.rollback()
        raise http_error(e)
    except Exception:
        uow.rollback()
        logger.exception("Error eliminando salida masiva %s", salida_id)
        raise HTTPException(status_code=500, detail="Error inesperado eliminando la salida masiva; no se aplicó ningún cambio")

    log_audit(MODULE_SALIDAS, ACTION_REVERSE, "SalidaMasiva", salida_id, f"Salida masiva revertida ({reabiertos} afilados)",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return {"id": salida_id, "afilados_reabiertos": reabiertos}
