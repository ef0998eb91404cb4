from sqlalchemy import Integer, String, Boolean, ForeignKey, DateTime
from datetime import datetime
from sqlalchemy.orm import relationship, Mapped, mapped_column
from ..db import Base
from .enums import UsuarioRol

class Empresa(Base):
    __tablename__ = "empresas"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    razon_social: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    rut: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    direccion: Mapped[str | None] = mapped_column(String(500), nullable=True)
    telefono: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    sucursales = relationship("Sucursal", back_populates="empresa")
    usuarios = relationship("Usuario", back_populates="empresa")

class Sucursal(Base):
    __tablename__ = "sucursales"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    empresa_id: Mapped[int] = mapped_column(ForeignKey("empresas.id"), index=True)
    nombre: Mapped[str] = mapped_column(String(200))
    direccion: Mapped[str | None] = mapped_column(String(500), nullable=True)
    telefono: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    empresa = relationship("Empresa", back_populates="sucursales")
    sierras = relationship("Sierra", back_populates="sucursal")

class Usuario(Base):
    __tablename__ = "usuarios"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)  # Se usa como nombre de login
    password_hash: Mapped[str] = mapped_column(String(200))
    nombre_completo: Mapped[str | None] = mapped_column(String(200), nullable=True)
    rol: Mapped[str] = mapped_column(String(30), default=UsuarioRol.ADMINISTRADOR.value)
    empresa_id: Mapped[int | None] = mapped_column(ForeignKey("empresas.id"), nullable=True, index=True)  # Obligatorio para CLIENTE
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    creado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    modificado_en: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    empresa = relationship("Empresa", back_populates="usuarios")
