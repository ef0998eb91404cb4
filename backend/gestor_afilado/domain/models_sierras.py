"""
Modelos del Dominio de Sierras
==============================

- TipoSierra / TipoAfilado: catálogos
- EstadoSierra: lookup fijo (1=Disponible, 2=En afilado, 3=Lista para retiro, 4=Fuera de servicio)
- Sierra: activo físico identificado por código de barras
- Afilado: un evento de afilado; pendiente mientras fecha_salida es NULL
"""
from sqlalchemy import Integer, String, Boolean, ForeignKey, Date, DateTime, Text
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime, date
from ..db import Base
from .enums import EstadoSierraId


class TipoSierra(Base):
    __tablename__ = "tipos_sierra"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(100), unique=True)
    descripcion: Mapped[str | None] = mapped_column(String(500), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class TipoAfilado(Base):
    __tablename__ = "tipos_afilado"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(100), unique=True)
    descripcion: Mapped[str | None] = mapped_column(String(500), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class EstadoSierra(Base):
    """Lookup sin autoincremento: los ids son los de EstadoSierraId"""
    __tablename__ = "estados_sierra"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    nombre: Mapped[str] = mapped_column(String(100))
    descripcion: Mapped[str | None] = mapped_column(String(500), nullable=True)


class Sierra(Base):
    __tablename__ = "sierras"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    codigo_barras: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    sucursal_id: Mapped[int] = mapped_column(ForeignKey("sucursales.id"), index=True)
    tipo_sierra_id: Mapped[int] = mapped_column(ForeignKey("tipos_sierra.id"), index=True)
    estado_id: Mapped[int] = mapped_column(ForeignKey("estados_sierra.id"), default=EstadoSierraId.DISPONIBLE.value, index=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    fecha_registro: Mapped[date] = mapped_column(Date, default=date.today)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    sucursal = relationship("Sucursal", back_populates="sierras")
    tipo_sierra = relationship("TipoSierra")
    estado_sierra = relationship("EstadoSierra")
    afilados = relationship("Afilado", back_populates="sierra")


class Afilado(Base):
    __tablename__ = "afilados"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sierra_id: Mapped[int] = mapped_column(ForeignKey("sierras.id"), index=True)
    tipo_afilado_id: Mapped[int] = mapped_column(ForeignKey("tipos_afilado.id"), index=True)
    fecha_afilado: Mapped[date] = mapped_column(Date, index=True)
    fecha_salida: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)  # NULL = pendiente
    observaciones: Mapped[str | None] = mapped_column(Text, nullable=True)
    estado: Mapped[bool] = mapped_column(Boolean, default=True)  # Independiente de Sierra.activo
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    sierra = relationship("Sierra", back_populates="afilados")
    tipo_afilado = relationship("TipoAfilado")

    @property
    def pendiente(self) -> bool:
        return self.fecha_salida is None
