from datetime import date, datetime
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...domain.models import Sucursal
from ...domain.models_sierras import Sierra
from ...security.auth import ContextoUsuario, get_contexto
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_masivas import resumen_masivas

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

class UltimaOperacionOut(BaseModel):
    id: int
    fecha: date
    creado_en: datetime
    cantidad: int

class ResumenMasivasOut(BaseModel):
    total_salidas: int
    total_bajas: int
    afilados_en_salidas: int
    sierras_en_bajas: int
    sierras_por_estado: dict[int, int]
    ultimas_salidas: list[UltimaOperacionOut]
    ultimas_bajas: list[UltimaOperacionOut]

@router.get("/masivas", response_model=ResumenMasivasOut)
def dashboard_masivas(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    empresa_id: int | None = Query(default=None),
    limite: int = Query(default=5, ge=1, le=50),
):
    empresa_id = ctx.empresa_visible(empresa_id)
    resumen = resumen_masivas(UnitOfWork(db), empresa_id=empresa_id, limite=limite)

    # Conteo de sierras por estado para las tarjetas del dashboard
    query = db.query(Sierra.estado_id, func.count(Sierra.id))
    if empresa_id is not None:
        query = query.join(Sucursal, Sierra.sucursal_id == Sucursal.id).filter(Sucursal.empresa_id == empresa_id)
    por_estado = {estado_id: cantidad for estado_id, cantidad in query.group_by(Sierra.estado_id).all()}

    return ResumenMasivasOut(
        total_salidas=resumen.total_salidas,
        total_bajas=resumen.total_bajas,
        afilados_en_salidas=resumen.afilados_en_salidas,
        sierras_en_bajas=resumen.sierras_en_bajas,
        sierras_por_estado=por_estado,
        ultimas_salidas=[
            UltimaOperacionOut(id=s.id, fecha=s.fecha_salida, creado_en=s.creado_en, cantidad=len(s.detalles))
            for s in resumen.ultimas_salidas
        ],
        ultimas_bajas=[
            UltimaOperacionOut(id=b.id, fecha=b.fecha_baja, creado_en=b.creado_en, cantidad=len(b.detalles))
            for b in resumen.ultimas_bajas
        ],
    )
