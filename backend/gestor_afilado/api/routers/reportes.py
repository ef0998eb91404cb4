from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...security.auth import ContextoUsuario, get_contexto
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_reportes import ReporteAfiladosQuery, FiltrosReporte, COLUMNAS_REPORTE

router = APIRouter(prefix="/reportes", tags=["reportes"])

class FilaReporteOut(BaseModel):
    afilado_id: int
    empresa: str | None = None
    sucursal: str | None = None
    tipo_sierra: str | None = None
    codigo_sierra: str
    tipo_afilado: str | None = None
    estado_sierra: str | None = None
    fecha_afilado: date
    fecha_salida: date | None = None
    activo: bool

class ReportePage(BaseModel):
    items: list[FilaReporteOut]
    total: int

def _filtros(
    ctx: ContextoUsuario,
    empresa_id: int | None,
    sucursal_id: int | None,
    tipo_sierra_id: int | None,
    tipo_afilado_id: int | None,
    fecha_desde: date | None,
    fecha_hasta: date | None,
    activo: bool | None,
) -> FiltrosReporte:
    if fecha_desde and fecha_hasta and fecha_desde > fecha_hasta:
        raise HTTPException(400, detail={"codigo": "INVALID_RANGE", "mensaje": "fecha_desde debe ser anterior a fecha_hasta"})
    return FiltrosReporte(
        empresa_id=ctx.empresa_visible(empresa_id),
        sucursal_id=sucursal_id,
        tipo_sierra_id=tipo_sierra_id,
        tipo_afilado_id=tipo_afilado_id,
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        activo=activo,
    )

@router.get("/afilados", response_model=ReportePage)
def reporte_afilados(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    empresa_id: int | None = Query(default=None),
    sucursal_id: int | None = Query(default=None),
    tipo_sierra_id: int | None = Query(default=None),
    tipo_afilado_id: int | None = Query(default=None),
    fecha_desde: date | None = Query(default=None),
    fecha_hasta: date | None = Query(default=None),
    activo: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
):
    filtros = _filtros(ctx, empresa_id, sucursal_id, tipo_sierra_id, tipo_afilado_id, fecha_desde, fecha_hasta, activo)
    query = ReporteAfiladosQuery(UnitOfWork(db))
    filas = query.filas(filtros, page, page_size)
    return ReportePage(items=[FilaReporteOut(**f.as_dict()) for f in filas], total=query.contar(filtros))

@router.get("/afilados/export")
def export_reporte_afilados(
    db: Session = Depends(get_db),
    ctx: ContextoUsuario = Depends(get_contexto),
    empresa_id: int | None = Query(default=None),
    sucursal_id: int | None = Query(default=None),
    tipo_sierra_id: int | None = Query(default=None),
    tipo_afilado_id: int | None = Query(default=None),
    fecha_desde: date | None = Query(default=None),
    fecha_hasta: date | None = Query(default=None),
    activo: bool | None = Query(default=None),
    format: str = Query(default="excel", description="Formato: excel o csv"),
):
    filtros = _filtros(ctx, empresa_id, sucursal_id, tipo_sierra_id, tipo_afilado_id, fecha_desde, fecha_hasta, activo)
    filas = ReporteAfiladosQuery(UnitOfWork(db)).filas(filtros)
    nombre = f"reporte_afilados_{date.today().isoformat()}"

    def _valor(fila, campo):
        v = getattr(fila, campo)
        if isinstance(v, bool):
            return "Sí" if v else "No"
        if isinstance(v, date):
            return v.strftime("%d/%m/%Y")
        return v if v is not None else ""

    if format == "excel":
        try:
            import openpyxl
            from io import BytesIO
            wb = openpyxl.Workbook()
            ws = wb.active
            ws.title = "Afilados"
            ws.append([titulo for _, titulo in COLUMNAS_REPORTE])
            for f in filas:
                ws.append([_valor(f, campo) for campo, _ in COLUMNAS_REPORTE])
            buffer = BytesIO()
            wb.save(buffer)
            return Response(
                content=buffer.getvalue(),
                headers={"Content-Disposition": f"attachment; filename={nombre}.xlsx"},
                media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Error generando Excel: {str(e)}")

    # CSV
    lines = [",".join(campo for campo, _ in COLUMNAS_REPORTE)]
    for f in filas:
        celdas = []
        for campo, _ in COLUMNAS_REPORTE:
            texto = str(_valor(f, campo)).replace('"', '""')
            celdas.append(f'"{texto}"')
        lines.append(",".join(celdas))
    headers = {
        "Content-Type": "text/csv; charset=utf-8",
        "Content-Disposition": f"attachment; filename={nombre}.csv",
    }
    return Response(content="\n".join(lines), headers=headers, media_type="text/csv")
