"""
Auditoría de acciones
=====================
Registro inmutable de las acciones relevantes: altas, bajas y salidas masivas,
reversiones y accesos.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship, Mapped, mapped_column
from ..db import Base


class AuditLog(Base):
    """
    Log global de auditoría. Inmutable.
    Solo INSERT permitido. Prohibido UPDATE y DELETE.
    """
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id"), nullable=True, index=True)
    usuario_rol: Mapped[str | None] = mapped_column(String(30), nullable=True)
    empresa_id: Mapped[int | None] = mapped_column(ForeignKey("empresas.id"), nullable=True, index=True)
    module: Mapped[str] = mapped_column(String(50), index=True)  # SIERRAS, AFILADOS, SALIDAS, BAJAS, CATALOGOS, AUTH
    action: Mapped[str] = mapped_column(String(50), index=True)  # CREATE, UPDATE, DELETE, REVERSE, LOGIN
    entity_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    summary: Mapped[str | None] = mapped_column(String(500), nullable=True)
    metadata_: Mapped[Dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    usuario = relationship("Usuario", foreign_keys=[usuario_id])
