from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...domain.models_sierras import Afilado
from ...security.auth import ContextoUsuario, get_contexto, require_gestion
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_afilados import AfiladoService, AfiladoError, FiltrosAfilado
from ...application.services_audit import log_audit, MODULE_AFILADOS, ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE
from ..errores import http_error

router = APIRouter(prefix="/afilados", tags=["afilados"])

class AfiladoIn(BaseModel):
    sierra_id: int
    tipo_afilado_id: int
    fecha_afilado: date | None = None
    observaciones: str | None = None

class CompletarIn(BaseModel):
    fecha_salida: date | None = None
    observaciones: str | None = None

class AfiladoOut(BaseModel):
    id: int
    sierra_id: int
    codigo_barras: str | None = None
    sucursal: str | None = None
    tipo_afilado_id: int
    tipo_afilado: str | None = None
    fecha_afilado: date
    fecha_salida: date | None = None
    observaciones: str | None = None
    pendiente: bool

class AfiladoPage(BaseModel):
    items: list[AfiladoOut]
    total: int

def _to_out(a: Afilado) -> AfiladoOut:
    sierra = a.sierra
    return AfiladoOut(
        id=a.id,
        sierra_id=a.sierra_id,
        codigo_barras=sierra.codigo_barras if sierra else None,
        sucursal=sierra.sucursal.nombre if sierra and sierra.sucursal else None,
        tipo_afilado_id=a.tipo_afilado_id,
        tipo_afilado=a.tipo_afilado.nombre if a.tipo_afilado else None,
        fecha_afilado=a.fecha_afilado,
        fecha_salida=a.fecha_salida,
        observaciones=a.observaciones,
        pendiente=a.pendiente,
    )

@router.get("", response_model=AfiladoPage)
def list_afilados(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    sierra_id: int | None = Query(default=None),
    tipo_afilado_id: int | None = Query(default=None),
    empresa_id: int | None = Query(default=None),
    sucursal_id: int | None = Query(default=None),
    fecha_desde: date | None = Query(default=None),
    fecha_hasta: date | None = Query(default=None),
    pendiente: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    filtros = FiltrosAfilado(
        sierra_id=sierra_id,
        tipo_afilado_id=tipo_afilado_id,
        empresa_id=ctx.empresa_visible(empresa_id),
        sucursal_id=sucursal_id,
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        pendiente=pendiente,
    )
    items, total = AfiladoService(UnitOfWork(db)).listar(filtros, page, page_size)
    return AfiladoPage(items=[_to_out(a) for a in items], total=total)

@router.get("/{afilado_id}", response_model=AfiladoOut)
def get_afilado(afilado_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    try:
        afilado = AfiladoService(UnitOfWork(db)).obtener(afilado_id)
    except AfiladoError as e:
        raise http_error(e)
    sucursal = afilado.sierra.sucursal if afilado.sierra else None
    if ctx.es_cliente and (not sucursal or sucursal.empresa_id != ctx.empresa_id):
        raise HTTPException(404, detail={"codigo": "NOT_FOUND", "mensaje": "Afilado no encontrado"})
    return _to_out(afilado)

@router.post("", response_model=AfiladoOut)
def registrar_afilado(payload: AfiladoIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    """Ingreso de la sierra a afilado: la sierra pasa a "En proceso de afilado"."""
    uow = UnitOfWork(db)
    try:
        afilado = AfiladoService(uow).registrar(
            sierra_id=payload.sierra_id,
            tipo_afilado_id=payload.tipo_afilado_id,
            fecha_afilado=payload.fecha_afilado or date.today(),
            observaciones=payload.observaciones,
            usuario_id=ctx.usuario_id,
        )
        uow.commit()
    except AfiladoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(afilado)
    log_audit(MODULE_AFILADOS, ACTION_CREATE, "Afilado", afilado.id, f"Ingreso a afilado: sierra {afilado.sierra_id}",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return _to_out(afilado)

@router.post("/{afilado_id}/completar", response_model=AfiladoOut)
def completar_afilado(afilado_id: int, payload: CompletarIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    """Salida individual: registra fecha de salida y deja la sierra Disponible."""
    uow = UnitOfWork(db)
    try:
        afilado = AfiladoService(uow).completar(afilado_id, payload.fecha_salida or date.today(), payload.observaciones)
        uow.commit()
    except AfiladoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(afilado)
    log_audit(MODULE_AFILADOS, ACTION_UPDATE, "Afilado", afilado.id, "Afilado completado",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return _to_out(afilado)

@router.delete("/{afilado_id}", status_code=204)
def delete_afilado(afilado_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    try:
        AfiladoService(uow).eliminar(afilado_id)
        uow.commit()
    except AfiladoError as e:
        uow.rollback()
        raise http_error(e)
    log_audit(MODULE_AFILADOS, ACTION_DELETE, "Afilado", afilado_id, usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return
