"""
Endpoints de Bajas Masivas

Mismo flujo que las salidas: escaneo sin persistencia y confirmación atómica.
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
from ...application.services_escaneo import ItemLoteBaja, ResultadoEscaneo, escanear_para_baja
from ...application.services_masivas import (
    BajaMasivaService, MasivaError, FiltrosMasivas, BajaMasivaCompleta,
)
from ...application.services_audit import log_audit, MODULE_BAJAS, ACTION_CREATE, ACTION_REVERSE
from ..errores import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bajas-masivas", tags=["bajas-masivas"])


class EscaneoBajaIn(BaseModel):
    codigo_barras: str
    lote: List[ItemLoteBaja] = []

class EscaneoBajaOut(BaseModel):
    lote: List[ItemLoteBaja]
    resultado: ResultadoEscaneo
    mensaje: str

class BajaMasivaIn(BaseModel):
    sierra_ids: List[int] = Field(default_factory=list)
    fecha_baja: date
    observaciones: Optional[str] = None

class DetalleBajaOut(BaseModel):
    sierra_id: int
    codigo_barras: Optional[str] = None
    sucursal: Optional[str] = None
    tipo_sierra: Optional[str] = None
    estado_anterior: bool
    estado_id_anterior: Optional[int] = None
    activo_actual: Optional[bool] = None

class BajaMasivaOut(BaseModel):
    id: int
    fecha_baja: date
    observaciones: Optional[str] = None
    usuario_id: Optional[int] = None
    creado_en: datetime
    cantidad_sierras: int
    detalles: List[DetalleBajaOut] = []

class BajaMasivaResumenOut(BaseModel):
    id: int
    fecha_baja: date
    observaciones: Optional[str] = None
    creado_en: datetime
    cantidad_sierras: int

class BajaMasivaPage(BaseModel):
    items: List[BajaMasivaResumenOut]
    total: int


def _to_out(completa: BajaMasivaCompleta) -> BajaMasivaOut:
    c = completa.cabecera
    return BajaMasivaOut(
        id=c.id,
        fecha_baja=c.fecha_baja,
        observaciones=c.observaciones,
        usuario_id=c.usuario_id,
        creado_en=c.creado_en,
        cantidad_sierras=len(completa.detalles),
        detalles=[DetalleBajaOut(**asdict(d)) for d in completa.detalles],
    )


@router.post("/escanear", response_model=EscaneoBajaOut)
def escanear(payload: EscaneoBajaIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    respuesta = escanear_para_baja(UnitOfWork(db), payload.codigo_barras, payload.lote)
    return EscaneoBajaOut(lote=respuesta.lote, resultado=respuesta.resultado, mensaje=respuesta.mensaje)

@router.post("", response_model=BajaMasivaOut)
def registrar_baja_masiva(payload: BajaMasivaIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    service = BajaMasivaService(uow)
    try:
        baja = service.registrar(
            sierra_ids=payload.sierra_ids,
            fecha_baja=payload.fecha_baja,
            observaciones=payload.observaciones,
            usuario_id=ctx.usuario_id,
        )
        uow.commit()
    except MasivaError as e:
        uow.rollback()
        raise http_error(e)
    except Exception:
        uow.rollback()
        logger.exception("Error registrando baja masiva")
        raise HTTPException(status_code=500, detail="Error inesperado registrando la baja masiva; no se aplicó ningún cambio")

    completa = service.obtener(baja.id)
    log_audit(
        MODULE_BAJAS, ACTION_CREATE, "BajaMasiva", baja.id,
        f"Baja masiva de {len(completa.detalles)} sierras",
        metadata_={"sierra_ids": [d.sierra_id for d in completa.detalles], "fecha_baja": str(baja.fecha_baja)},
        usuario_id=ctx.usuario_id, usuario_rol=ctx.rol,
    )
    return _to_out(completa)

@router.get("", response_model=BajaMasivaPage)
def list_bajas_masivas(
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
    items, total = BajaMasivaService(UnitOfWork(db)).listar(filtros, page, page_size)
    return BajaMasivaPage(
        items=[
            BajaMasivaResumenOut(
                id=b.id,
                fecha_baja=b.fecha_baja,
                observaciones=b.observaciones,
                creado_en=b.creado_en,
                cantidad_sierras=len(b.detalles),
            )
            for b in items
        ],
        total=total,
    )

def _obtener_visible(db: Session, ctx: ContextoUsuario, baja_id: int) -> BajaMasivaCompleta:
    """Un cliente solo ve la baja si incluye sierras de su empresa, y solo esas sierras."""
    uow = UnitOfWork(db)
    try:
        completa = BajaMasivaService(uow).obtener(baja_id)
    except MasivaError as e:
        raise http_error(e)
    if ctx.es_cliente:
        visibles = set()
        for d in completa.detalles:
            sierra = uow.sierras.get(d.sierra_id)
            if sierra and sierra.sucursal and sierra.sucursal.empresa_id == ctx.empresa_id:
                visibles.add(d.sierra_id)
        if not visibles:
            raise HTTPException(404, detail={"codigo": "NOT_FOUND", "mensaje": "Baja masiva no encontrada"})
        completa.detalles = [d for d in completa.detalles if d.sierra_id in visibles]
    return completa

@router.get("/{baja_id}", response_model=BajaMasivaOut)
def get_baja_masiva(baja_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    return _to_out(_obtener_visible(db, ctx, baja_id))

@router.get("/{baja_id}/pdf")
def pdf_baja_masiva(baja_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    completa = _obtener_visible(db, ctx, baja_id)
    c = completa.cabecera
    contenido = crear_comprobante_pdf(
        titulo=f"BAJA MASIVA N° {c.id}",
        datos=[
            ("Fecha de baja", c.fecha_baja.strftime("%d/%m/%Y")),
            ("Observaciones", c.observaciones),
        ],
        headers=["Código sierra", "Sucursal", "Tipo sierra", "Estado anterior"],
        rows=[
            [d.codigo_barras, d.sucursal, d.tipo_sierra, "Activa" if d.estado_anterior else "Inactiva"]
            for d in completa.detalles
        ],
    )
    return Response(
        content=contenido,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="baja_masiva_{c.id}.pdf"'},
    )

@router.delete("/{baja_id}")
def delete_baja_masiva(baja_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    """Revierte la baja: las sierras vuelven a quedar activas."""
    uow = UnitOfWork(db)
    try:
        restauradas = BajaMasivaService(uow).eliminar(baja_id)
        uow.commit()
    except MasivaError as e:
        uow.rollback()
        raise http_error(e)
    except Exception:
        uow.rollback()
        logger.exception("Error eliminando baja masiva %s", baja_id)
        raise HTTPException(status_code=500, detail="Error inesperado eliminando la baja masiva; no se aplicó ningún cambio")

    log_audit(MODULE_BAJAS, ACTION_REVERSE, "BajaMasiva", baja_id, f"Baja masiva revertida ({restauradas} sierras)",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return {"id": baja_id, "sierras_restauradas": restauradas}
