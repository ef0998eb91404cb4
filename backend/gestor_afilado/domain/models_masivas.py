"""
Operaciones Masivas
===================

- SalidaMasiva: cabecera de una salida de sierras afiladas, enlazada a afilados
- BajaMasiva: cabecera de un retiro de sierras, enlazada a sierras

Las tablas de detalle guardan el estado previo de cada sierra para poder
revertir la operación al eliminar la cabecera.
"""
from sqlalchemy import Integer, String, Boolean, ForeignKey, Date, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime, date
from ..db import Base


class SalidaMasiva(Base):
    __tablename__ = "salidas_masivas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sucursal_id: Mapped[int] = mapped_column(ForeignKey("sucursales.id"), index=True)
    fecha_salida: Mapped[date] = mapped_column(Date, index=True)
    observaciones: Mapped[str | None] = mapped_column(Text, nullable=True)
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    sucursal = relationship("Sucursal")
    detalles = relationship("SalidaMasivaAfilado", back_populates="salida_masiva")


class SalidaMasivaAfilado(Base):
    __tablename__ = "salida_masiva_afilados"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    salida_masiva_id: Mapped[int] = mapped_column(ForeignKey("salidas_masivas.id"), index=True)
    afilado_id: Mapped[int] = mapped_column(ForeignKey("afilados.id"), index=True)
    estado_id_anterior: Mapped[int | None] = mapped_column(Integer, nullable=True)  # estado de la sierra al incluirla
    __table_args__ = (UniqueConstraint("salida_masiva_id", "afilado_id", name="uq_salida_masiva_afilado"),)

    salida_masiva = relationship("SalidaMasiva", back_populates="detalles")
    afilado = relationship("Afilado")


class BajaMasiva(Base):
    __tablename__ = "bajas_masivas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fecha_baja: Mapped[date] = mapped_column(Date, index=True)
    observaciones: Mapped[str | None] = mapped_column(Text, nullable=True)
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    detalles = relationship("BajaMasivaSierra", back_populates="baja_masiva")


class BajaMasivaSierra(Base):
    __tablename__ = "baja_masiva_sierras"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    baja_masiva_id: Mapped[int] = mapped_column(ForeignKey("bajas_masivas.id"), index=True)
    sierra_id: Mapped[int] = mapped_column(ForeignKey("sierras.id"), index=True)
    estado_anterior: Mapped[bool] = mapped_column(Boolean)  # valor de Sierra.activo antes de la baja
    estado_id_anterior: Mapped[int | None] = mapped_column(Integer, nullable=True)
    __table_args__ = (UniqueConstraint("baja_masiva_id", "sierra_id", name="uq_baja_masiva_sierra"),)

    baja_masiva = relationship("BajaMasiva", back_populates="detalles")
    sierra = relationship("Sierra")
