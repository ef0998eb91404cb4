from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...domain.models import Empresa
from ...security.auth import ContextoUsuario, get_contexto, require_administrador
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_catalogos import (
    CatalogoError, crear_empresa, obtener_empresa, actualizar_empresa, eliminar_empresa,
)
from ...application.services_audit import log_audit, MODULE_CATALOGOS, ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE
from ..errores import http_error

router = APIRouter(prefix="/empresas", tags=["empresas"])

class EmpresaIn(BaseModel):
    razon_social: str
    rut: str
    direccion: str | None = None
    telefono: str | None = None
    email: str | None = None
    activo: bool = True

class EmpresaUpdate(BaseModel):
    razon_social: str | None = None
    rut: str | None = None
    direccion: str | None = None
    telefono: str | None = None
    email: str | None = None
    activo: bool | None = None

class EmpresaOut(BaseModel):
    id: int
    razon_social: str
    rut: str
    direccion: str | None = None
    telefono: str | None = None
    email: str | None = None
    activo: bool

    class Config:
        from_attributes = True

class EmpresaPage(BaseModel):
    items: list[EmpresaOut]
    total: int

def _filtrar(db: Session, ctx: ContextoUsuario, q: str | None, activo: bool | None):
    query = db.query(Empresa)
    if ctx.es_cliente:
        query = query.filter(Empresa.id == ctx.empresa_id)
    if q:
        like = f"%{q}%"
        query = query.filter((Empresa.razon_social.ilike(like)) | (Empresa.rut.ilike(like)))
    if activo is not None:
        query = query.filter(Empresa.activo == activo)
    return query

@router.get("", response_model=EmpresaPage)
def list_empresas(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    q: str | None = Query(default=None, description="Buscar por razón social o RUT"),
    activo: bool | None = Query(default=None, description="Filtrar por estado activo"),
    order_by: str = Query(default="razon_social", description="Ordenar por: id, razon_social, rut"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    query = _filtrar(db, ctx, q, activo)
    order_map = {
        "id": Empresa.id,
        "razon_social": Empresa.razon_social,
        "rut": Empresa.rut,
    }
    query = query.order_by(order_map.get(order_by, Empresa.razon_social))
    total = query.count()
    items = query.offset((page-1)*page_size).limit(page_size).all()
    return EmpresaPage(items=items, total=total)

@router.get("/export")
def export_empresas(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    q: str | None = Query(default=None),
    activo: bool | None = Query(default=None),
    format: str = Query(default="csv", description="Formato: csv o excel"),
):
    rows = _filtrar(db, ctx, q, activo).order_by(Empresa.razon_social).all()

    if format == "excel":
        import openpyxl
        from io import BytesIO
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Empresas"
        ws.append(["ID", "Razón Social", "RUT", "Dirección", "Teléfono", "Email", "Activa"])
        for r in rows:
            ws.append([r.id, r.razon_social, r.rut, r.direccion or "", r.telefono or "", r.email or "", "Sí" if r.activo else "No"])
        buffer = BytesIO()
        wb.save(buffer)
        return Response(
            content=buffer.getvalue(),
            headers={"Content-Disposition": "attachment; filename=empresas.xlsx"},
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )

    lines = ["id,razon_social,rut,activo"]
    for r in rows:
        razon = (r.razon_social or '').replace('"', '""')
        lines.append(f'{r.id},"{razon}","{r.rut}",{str(r.activo).lower()}')
    headers = {
        "Content-Type": "text/csv; charset=utf-8",
        "Content-Disposition": "attachment; filename=empresas.csv",
    }
    return Response(content="\n".join(lines), headers=headers, media_type="text/csv")

@router.get("/{empresa_id}", response_model=EmpresaOut)
def get_empresa(empresa_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(get_contexto)):
    if ctx.es_cliente and empresa_id != ctx.empresa_id:
        raise HTTPException(404, detail={"codigo": "NOT_FOUND", "mensaje": "Empresa no encontrada"})
    try:
        return obtener_empresa(UnitOfWork(db), empresa_id)
    except CatalogoError as e:
        raise http_error(e)

@router.post("", response_model=EmpresaOut)
def create_empresa(payload: EmpresaIn, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_administrador)):
    uow = UnitOfWork(db)
    try:
        empresa = crear_empresa(uow, payload.model_dump())
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(empresa)
    log_audit(MODULE_CATALOGOS, ACTION_CREATE, "Empresa", empresa.id, f"Empresa creada: {empresa.razon_social}",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return empresa

@router.patch("/{empresa_id}", response_model=EmpresaOut)
def update_empresa(empresa_id: int, payload: EmpresaUpdate, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_administrador)):
    uow = UnitOfWork(db)
    try:
        empresa = actualizar_empresa(uow, empresa_id, payload.model_dump(exclude_unset=True))
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    db.refresh(empresa)
    log_audit(MODULE_CATALOGOS, ACTION_UPDATE, "Empresa", empresa.id, usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return empresa

@router.delete("/{empresa_id}")
def delete_empresa(empresa_id: int, db: Session = Depends(get_db), ctx: ContextoUsuario = Depends(require_administrador)):
    uow = UnitOfWork(db)
    try:
        eliminada = eliminar_empresa(uow, empresa_id)
        uow.commit()
    except CatalogoError as e:
        uow.rollback()
        raise http_error(e)
    log_audit(MODULE_CATALOGOS, ACTION_DELETE, "Empresa", empresa_id,
              "Empresa eliminada" if eliminada else "Empresa desactivada (tiene dependientes)",
              usuario_id=ctx.usuario_id, usuario_rol=ctx.rol)
    return {"eliminada": eliminada, "desactivada": not eliminada}
