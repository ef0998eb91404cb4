from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session, joinedload
from ...dependencies import get_db
from ...domain.models import Sucursal
from ...security.auth import ContextoUsuario, get_contexto, require_gestion
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_catalogos import (
    CatalogoError, crear_sucursal, obtener_sucursal, actualizar_sucursal, eliminar_sucursal,
)
from ...application.services_audit import log_audit, MODULE_CATALOGOS, ACTION_CREATE, ACTION_DELETE
from ..errores import http_error

router = APIRouter(prefix="/sucursales", tags=["sucursales"])

class SucursalIn(BaseModel):
    empresa_id: int
    nombre: str
    direccion: str | None = None
    telefono: str | None = None
    email: str | None = None
    activo: bool = True

class SucursalUpdate(BaseModel):
    empresa_id: int | None = None
    nombre: str | None = None
    direccion: str | None = None
    telefono: str | None = None
    email: str | None = None
    activo: bool | None = None

class SucursalOut(BaseModel):
    id: int
    empresa_id: int
    empresa: str | None = None
    nombre: str
    direccion: str | None = None
    telefono: str | None = None
    email: str | None = None
    activo: bool

class SucursalPage(BaseModel):
    items: list[SucursalOut]
    total: int

def _to_out(s: Sucursal) -> SucursalOut:
    return SucursalOut(
        id=s.id,
        empresa_id=s.empresa_id,
        empresa=s.empresa.razon_social if s.empresa else None,
        nombre=s.nombre,
        direccion=s.direccion,
        telefono=s.telefono,
        email=s.email,
        activo=s.activo,
    )

@router.get("", response_model=SucursalPage)
def list_sucursales(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    empresa_id: int | None = Query(default=None),
    q: str | None = Query(default=None, description="Buscar por nombre"),
    activo: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    query = db.query(Sucursal).options(joinedload(Sucursal.empresa))
    empresa_id = ctx.empresa_visible(empresa_id)
    if empresa_id is not None:
        query = query.filter(Sucursal.empresa_id == empresa_id)
    if q:
        query = query.filter(Sucursal.nombre.ilike(f"%{q}%"))
    if activo is not None:
        query = query.filter(Sucursal.activo == activo)
    total = query.count()
    items = query.order_by(Sucursal.nombre).offset((page-1)*page_size).limit(page_size).all()
    return SucursalPage(items=[_to_out(s) for s in items], total=total)

@router.get("/{sucursal_id}", response_model=SucursalOut)
def get_sucursal(sucursal_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    try:
        sucursal = obtener_sucursal(UnitOfWork(db), sucursal_id)
    except CatalogoError as e:
        raise http_error(e)
    if ctx.es_cliente and sucursal.empresa_id != ctx.empresa_id:
        raise HTTPException(404, detail={"codigo": "NOT_FOUND", "mensaje": "Sucursal no encontrada"})
    return _to_out(sucursal)

@router.post("", response_model=SucursalOut)
def create_sucursal(payload: SucursalIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    try:
        sucursal = crear_sucursal(uow, payload.model_dump())
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(sucursal)
    log_audit(MODULE_CATALOGOS, ACTION_CREATE, "Sucursal", sucursal.id, f"Sucursal creada: {sucursal.nombre}",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol, empresa_id=sucursal.empresa_id)
    return _to_out(sucursal)

@router.patch("/{sucursal_id}", response_model=SucursalOut)
def update_sucursal(sucursal_id: int, payload: SucursalUpdate, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    try:
        sucursal = actualizar_sucursal(uow, sucursal_id, payload.model_dump(exclude_unset=True))
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(sucursal)
    return _to_out(sucursal)

@router.delete("/{sucursal_id}")
def delete_sucursal(sucursal_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
    uow = UnitOfWork(db)
    try:
        eliminada = eliminar_sucursal(uow, sucursal_id)
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    log_audit(MODULE_CATALOGOS, ACTION_DELETE, "Sucursal", sucursal_id, usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return {"eliminada": eliminada, "desactivada": not eliminada}
