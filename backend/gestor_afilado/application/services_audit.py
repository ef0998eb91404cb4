"""
Auditoría de acciones
=====================
- Try-safe: no bloquea la operación si falla la auditoría
- Solo INSERT, prohibido UPDATE/DELETE
- Usa sesión separada para no afectar la transacción principal
"""
import logging
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError

from ..domain.models_audit import AuditLog
from ..db import SessionLocal

logger = logging.getLogger(__name__)

# Módulos estándar
MODULE_SIERRAS = "SIERRAS"
MODULE_AFILADOS = "AFILADOS"
MODULE_SALIDAS = "SALIDAS_MASIVAS"
MODULE_BAJAS = "BAJAS_MASIVAS"
MODULE_CATALOGOS = "CATALOGOS"
MODULE_AUTH = "AUTH"

# Acciones estándar
ACTION_CREATE = "CREATE"
ACTION_UPDATE = "UPDATE"
ACTION_DELETE = "DELETE"
ACTION_REVERSE = "REVERSE"
ACTION_LOGIN = "LOGIN"


def log_audit(
    module: str,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    summary: Optional[str] = None,
    metadata_: Optional[Dict[str, Any]] = None,
    usuario_id: Optional[int] = None,
    usuario_rol: Optional[str] = None,
    empresa_id: Optional[int] = None,
    ip_address: Optional[str] = None,
) -> None:
    """
    Registra un evento de auditoría. Inmutable.
    Llamar después del commit principal: usa su propia sesión.
    """
    audit_db = None
    try:
        audit_db = SessionLocal()
        audit_db.add(AuditLog(
            module=module,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            summary=summary,
            metadata_=metadata_,
            usuario_id=usuario_id,
            usuario_rol=usuario_rol,
            empresa_id=empresa_id,
            ip_address=ip_address,
        ))
        audit_db.commit()
    except SQLAlchemyError as e:
        if audit_db:
            audit_db.rollback()
        logger.warning("No se pudo registrar auditoría %s/%s: %s", module, action, e)
    finally:
        if audit_db:
            audit_db.close()
