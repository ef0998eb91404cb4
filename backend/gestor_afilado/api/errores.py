"""
Traducción de excepciones de dominio a HTTPException.

Todas las excepciones de servicio exponen `codigo` y `mensaje`; el detalle HTTP
es siempre {"codigo": ..., "mensaje": ...}.
"""
from fastapi import HTTPException

# Conflictos con el estado actual de los datos
CODIGOS_CONFLICTO = {
    "DUPLICATE",
    "DUPLICATE_BARCODE",
    "IN_BULK_EXIT",
    "NOT_PENDING",
    "ALREADY_INACTIVE",
    "INELIGIBLE_STATE",
    "INVALID_TRANSITION",
}


def status_para(codigo: str) -> int:
    if codigo == "NOT_FOUND":
        return 404
    if codigo in CODIGOS_CONFLICTO:
        return 409
    return 400


def http_error(e) -> HTTPException:
    codigo = getattr(e, "codigo", "ERROR")
    mensaje = getattr(e, "mensaje", str(e))
    detail = {"codigo": codigo, "mensaje": mensaje}
    ids = getattr(e, "ids", None)
    if ids:
        detail["ids"] = ids
    return HTTPException(status_code=status_para(codigo), detail=detail)
