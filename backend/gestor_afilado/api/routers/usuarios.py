from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...domain.models import Usuario
from ...security.auth import ContextoUsuario, require_administrador
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_catalogos import CatalogoError, crear_usuario, actualizar_usuario
from ...application.services_audit import log_audit, MODULE_CATALOGOS, ACTION_CREATE, ACTION_UPDATE
from ..errores import http_error

router = APIRouter(prefix="/usuarios", tags=["usuarios"])

class UsuarioIn(BaseModel):
    email: str
    password: str = Field(..., min_length=6)
    nombre_completo: str | None = None
    rol: str = "ADMINISTRADOR"
    empresa_id: int | None = None
    activo: bool = True

class UsuarioUpdate(BaseModel):
    email: str | None = None
    password: str | None = Field(default=None, min_length=6)
    nombre_completo: str | None = None
    rol: str | None = None
    empresa_id: int | None = None
    activo: bool | None = None

class UsuarioOut(BaseModel):
    id: int
    email: str
    nombre_completo: str | None = None
    rol: str
    empresa_id: int | None = None
    activo: bool

    class Config:
        from_attributes = True

class UsuarioPage(BaseModel):
    items: list[UsuarioOut]
    total: int

@router.get("", response_model=UsuarioPage)
def list_usuarios(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(require_administrador),
    q: str | None = Query(default=None, description="Buscar por email o nombre"),
    rol: str | None = Query(default=None),
    empresa_id: int | None = Query(default=None),
    activo: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    query = db.query(Usuario)
    if q:
        like = f"%{q}%"
        query = query.filter((Usuario.email.ilike(like)) | (Usuario.nombre_completo.ilike(like)))
    if rol:
        query = query.filter(Usuario.rol == rol)
    if empresa_id is not None:
        query = query.filter(Usuario.empresa_id == empresa_id)
    if activo is not None:
        query = query.filter(Usuario.activo == activo)
    total = query.count()
    items = query.order_by(Usuario.email).offset((page-1)*page_size).limit(page_size).all()
    return UsuarioPage(items=items, total=total)

@router.post("", response_model=UsuarioOut)
def create_usuario(payload: UsuarioIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_administrador)):
    uow = UnitOfWork(db)
    try:
        usuario = crear_usuario(uow, payload.model_dump())
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(usuario)
    log_audit(MODULE_CATALOGOS, ACTION_CREATE, "Usuario", usuario.id, f"Usuario creado: {usuario.email} ({usuario.rol})",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return usuario

@router.patch("/{usuario_id}", response_model=UsuarioOut)
def update_usuario(usuario_id: int, payload: UsuarioUpdate, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_administrador)):
    cambios = payload.model_dump(exclude_unset=True)
    if usuario_id == ctx.usuario_id and cambios.get("activo") is False:
        raise HTTPException(400, detail={"codigo": "INVALID_OPERATION", "mensaje": "No puede desactivar su propio usuario"})
    uow = UnitOfWork(db)
    try:
        usuario = actualizar_usuario(uow, usuario_id, cambios)
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(usuario)
    log_audit(MODULE_CATALOGOS, ACTION_UPDATE, "Usuario", usuario.id, usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return usuario
