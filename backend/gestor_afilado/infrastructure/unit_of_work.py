from contextlib import contextmanager
from sqlalchemy.orm import Session
from ..db import SessionLocal
from .repositories import (
    EmpresaRepository, SucursalRepository, UsuarioRepository, CatalogoRepository,
    SierraRepository, AfiladoRepository, SalidaMasivaRepository, BajaMasivaRepository,
)

class UnitOfWork:
    def __init__(self, db: Session = None):
        self._owns_session = db is None
        self.db: Session = db if db is not None else SessionLocal()
        self.empresas = EmpresaRepository(self.db)
        self.sucursales = SucursalRepository(self.db)
        self.usuarios = UsuarioRepository(self.db)
        self.catalogos = CatalogoRepository(self.db)
        self.sierras = SierraRepository(self.db)
        self.afilados = AfiladoRepository(self.db)
        self.salidas = SalidaMasivaRepository(self.db)
        self.bajas = BajaMasivaRepository(self.db)

    def commit(self): self.db.commit()
    def rollback(self): self.db.rollback()
    def flush(self): self.db.flush()

    def close(self):
        # Una sesión prestada (p. ej. la de get_db) la cierra quien la creó
        if self._owns_session:
            self.db.close()

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise
        finally:
            self.close()
