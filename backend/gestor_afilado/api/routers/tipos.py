"""
Catálogos de tipos de sierra y tipos de afilado.
Ambos comparten forma, así que se exponen con dos routers construidos igual.
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...domain.models_sierras import TipoSierra, TipoAfilado
from ...security.auth import ContextoUsuario, get_contexto, require_gestion
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_catalogos import (
    CatalogoError, crear_tipo, obtener_tipo, actualizar_tipo, eliminar_tipo,
)
from ..errores import http_error

class TipoIn(BaseModel):
    nombre: str
    descripcion: str | None = None

class TipoUpdate(BaseModel):
    nombre: str | None = None
    descripcion: str | None = None
    activo: bool | None = None

class TipoOut(BaseModel):
    id: int
    nombre: str
    descripcion: str | None = None
    activo: bool

    class Config:
        from_attributes = True

class TipoPage(BaseModel):
    items: list[TipoOut]
    total: int


def _build_router(prefix: str, clase: str, modelo) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    @router.get("", response_model=TipoPage)
    def list_tipos(
        db: Session = Depends(get_db),
        ctx: ContextoUsuario = Depends(get_contexto),
        q: str | None = Query(default=None),
        activo: bool | None = Query(default=None),
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=50, ge=1, le=100),
    ):
        query = db.query(modelo)
        if q:
            query = query.filter(modelo.nombre.ilike(f"%{q}%"))
        if activo is not None:
            query = query.filter(modelo.activo == activo)
        total = query.count()
        items = query.order_by(modelo.nombre).offset((page-1)*page_size).limit(page_size).all()
        return TipoPage(items=items, total=total)

    @router.get("/{tipo_id}", response_model=TipoOut)
    def get_tipo(tipo_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
        try:
            return obtener_tipo(UnitOfWork(db), clase, tipo_id)
        except CatalogoError as e:
            raise http_error(e)

    @router.post("", response_model=TipoOut)
    def create_tipo(payload: TipoIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
        uow = UnitOfWork(db)
        try:
            tipo = crear_tipo(uow, clase, payload.nombre, payload.descripcion)
            uow.commit()
        except CatalogoError as e:
            uow.rollback()
            raise http_error(e)
        db.refresh(tipo)
        return tipo

    @router.patch("/{tipo_id}", response_model=TipoOut)
    def update_tipo(tipo_id: int, payload: TipoUpdate, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
        uow = UnitOfWork(db)
        try:
            tipo = actualizar_tipo(uow, clase, tipo_id, payload.model_dump(exclude_unset=True))
            uow.commit()
        except CatalogoError as e:
            uow.rollback()
            raise http_error(e)
        db.refresh(tipo)
        return tipo

    @router.delete("/{tipo_id}")
    def delete_tipo(tipo_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_gestion)):
        uow = UnitOfWork(db)
        try:
            eliminado = eliminar_tipo(uow, clase, tipo_id)
            uow.commit()
        except CatalogoError as e:
            uow.rollback()
            raise http_error(e)
        return {"eliminado": eliminado, "desactivado": not eliminado}

    return router


router_tipos_sierra = _build_router("/tipos-sierra", "sierra", TipoSierra)
router_tipos_afilado = _build_router("/tipos-afilado", "afilado", TipoAfilado)
