from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...domain.models_sierras import Sierra
from ...security.auth import ContextoUsuario, get_contexto, require_gestion
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_sierras import SierraService, SierraError, FiltrosSierra
from ...application.services_afilados import AfiladoService
from ...application.services_audit import log_audit, MODULE_SIERRAS, ACTION_CREATE, ACTION_UPDATE
from ..errores import http_error

router = APIRouter(prefix="/sierras", tags=["sierras"])

# ===== DTOs =====

class SierraIn(BaseModel):
    codigo_barras: str
    sucursal_id: int
    tipo_sierra_id: int

class SierraUpdate(BaseModel):
    codigo_barras: str | None = None
    sucursal_id: int | None = None
    tipo_sierra_id: int | None = None
    estado_id: int | None = None
    activo: bool | None = None

class SierraOut(BaseModel):
    id: int
    codigo_barras: str
    sucursal_id: int
    sucursal: str | None = None
    empresa_id: int | None = None
    tipo_sierra_id: int
    tipo_sierra: str | None = None
    estado_id: int
    estado: str | None = None
    activo: bool
    fecha_registro: date | None = None

class SierraPage(BaseModel):
    items: list[SierraOut]
    total: int

class AfiladoPendienteOut(BaseModel):
    id: int
    tipo_afilado: str | None = None
    fecha_afilado: date
    observaciones: str | None = None


def _to_out(s: Sierra) -> SierraOut:
    return SierraOut(
        id=s.id,
        codigo_barras=s.codigo_barras,
        sucursal_id=s.sucursal_id,
        sucursal=s.sucursal.nombre if s.sucursal else None,
        empresa_id=s.sucursal.empresa_id if s.sucursal else None,
        tipo_sierra_id=s.tipo_sierra_id,
        tipo_sierra=s.tipo_sierra.nombre if s.tipo_sierra else None,
        estado_id=s.estado_id,
        estado=s.estado_sierra.nombre if s.estado_sierra else None,
        activo=s.activo,
        fecha_registro=s.fecha_registro,
    )

def _no_encontrada():
    return HTTPException(404, detail={"codigo": "NOT_FOUND", "mensaje": "Sierra no encontrada"})

def _verificar_acceso(sierra: Sierra, ctx: ContextoUsuario):
    if ctx.es_cliente and (not sierra.sucursal or sierra.sucursal.empresa_id != ctx.empresa_id):
        raise _no_encontrada()


@router.get("", response_model=SierraPage)
def list_sierras(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    codigo_barras: str | None = Query(default=None, description="Búsqueda parcial por código"),
    empresa_id: int | None = Query(default=None),
    sucursal_id: int | None = Query(default=None),
    tipo_sierra_id: int | None = Query(default=None),
    estado_id: int | None = Query(default=None, ge=1, le=4),
    activo: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    filtros = FiltrosSierra(
        codigo_barras=codigo_barras,
        sucursal_id=sucursal_id,
        empresa_id=ctx.empresa_visible(empresa_id),
        tipo_sierra_id=tipo_sierra_id,
        estado_id=estado_id,
        activo=activo,
    )
    items, total = SierraService(UnitOfWork(db)).listar(filtros, page, page_size)
    return SierraPage(items=[_to_out(s) for s in items], total=total)

@router.get("/codigo/{codigo_barras}", response_model=SierraOut)
def get_sierra_por_codigo(codigo_barras: str, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    sierra = SierraService(UnitOfWork(db)).obtener_por_codigo(codigo_barras)
    if not sierra:
        raise _no_encontrada()
    _verificar_acceso(sierra, ctx)
    return _to_out(sierra)

@router.get("/{sierra_id}", response_model=SierraOut)
def get_sierra(sierra_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    try:
        sierra = SierraService(UnitOfWork(db)).obtener(sierra_id)
    except SierraError as e:
        raise http_error(e)
    _verificar_acceso(sierra, ctx)
    return _to_out(sierra)

@router.get("/{sierra_id}/afilados-pendientes", response_model=list[AfiladoPendienteOut])
def get_afilados_pendientes(sierra_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    uow = UnitOfWork(db)
    try:
        sierra = SierraService(uow).obtener(sierra_id)
    except SierraError as e:
        raise http_error(e)
    _verificar_acceso(sierra, ctx)
    return [
        AfiladoPendienteOut(
            id=a.id,
            tipo_afilado=a.tipo_afilado.nombre if a.tipo_afilado else None,
            fecha_afilado=a.fecha_afilado,
            observaciones=a.observaciones,
        )
        for a in AfiladoService(uow).pendientes_por_sierra(sierra_id)
    ]

@router.post("", response_model=SierraOut)
def create_sierra(payload: SierraIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    try:
        sierra = SierraService(uow).registrar(payload.codigo_barras, payload.sucursal_id, payload.tipo_sierra_id)
        uow.commit()
    except SierraError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(sierra)
    log_audit(MODULE_SIERRAS, ACTION_CREATE, "Sierra", sierra.id, f"Sierra registrada: {sierra.codigo_barras}",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return _to_out(sierra)

def _cambiar(db: Session, ctx: ContextoUsuario, sierra_id: int, accion, resumen: str) -> SierraOut:
    uow = UnitOfWork(db)
    try:
        sierra = accion(SierraService(uow))
        uow.commit()
    except SierraError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(sierra)
    log_audit(MODULE_SIERRAS, ACTION_UPDATE, "Sierra", sierra_id, f"{resumen}: {sierra.codigo_barras}",
              metadata_={"estado_id": sierra.estado_id, "activo": sierra.activo},
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return _to_out(sierra)

@router.patch("/{sierra_id}", response_model=SierraOut)
def update_sierra(sierra_id: int, payload: SierraUpdate, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    cambios = payload.model_dump(exclude_unset=True)
    return _cambiar(db, ctx, sierra_id, lambda s: s.actualizar(sierra_id, cambios), "Sierra actualizada")

@router.post("/{sierra_id}/lista-para-retiro", response_model=SierraOut)
def marcar_lista_para_retiro(sierra_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    return _cambiar(db, ctx, sierra_id, lambda s: s.marcar_lista_para_retiro(sierra_id), "Sierra lista para retiro")

@router.patch("/{sierra_id}/desactivar", response_model=SierraOut)
def desactivar_sierra(sierra_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    return _cambiar(db, ctx, sierra_id, lambda s: s.desactivar(sierra_id), "Sierra desactivada")

@router.patch("/{sierra_id}/activar", response_model=SierraOut)
def activar_sierra(sierra_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    return _cambiar(db, ctx, sierra_id, lambda s: s.activar(sierra_id), "Sierra activada")
