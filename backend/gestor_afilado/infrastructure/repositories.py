from typing import Iterable
from sqlalchemy.orm import Session, joinedload
from ..domain.models import Empresa, Sucursal, Usuario
from ..domain.models_sierras import Sierra, Afilado, TipoSierra, TipoAfilado, EstadoSierra
from ..domain.models_masivas import SalidaMasiva, SalidaMasivaAfilado, BajaMasiva, BajaMasivaSierra

class EmpresaRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, e: Empresa): self.db.add(e); return e
    def get(self, id: int): return self.db.get(Empresa, id)
    def by_rut(self, rut: str):
        return self.db.query(Empresa).filter(Empresa.rut == rut).first()

class SucursalRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, s: Sucursal): self.db.add(s); return s
    def get(self, id: int): return self.db.get(Sucursal, id)
    def by_empresa(self, empresa_id: int):
        return self.db.query(Sucursal).filter(Sucursal.empresa_id == empresa_id).order_by(Sucursal.nombre).all()

class UsuarioRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, u: Usuario): self.db.add(u); return u
    def get(self, id: int): return self.db.get(Usuario, id)
    def by_email(self, email: str):
        return self.db.query(Usuario).filter(Usuario.email == email).first()

class CatalogoRepository:
    def __init__(self, db: Session): self.db = db
    def tipo_sierra(self, id: int): return self.db.get(TipoSierra, id)
    def tipo_afilado(self, id: int): return self.db.get(TipoAfilado, id)
    def estado(self, id: int): return self.db.get(EstadoSierra, id)

class SierraRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, s: Sierra): self.db.add(s); return s

    def get(self, id: int, for_update: bool = False):
        q = self.db.query(Sierra).filter(Sierra.id == id)
        if for_update:
            q = q.with_for_update()
        return q.first()

    def by_codigo(self, codigo: str):
        return (
            self.db.query(Sierra)
            .options(joinedload(Sierra.estado_sierra), joinedload(Sierra.sucursal))
            .filter(Sierra.codigo_barras == codigo)
            .first()
        )

    def by_ids(self, ids: Iterable[int], for_update: bool = False):
        q = self.db.query(Sierra).filter(Sierra.id.in_(list(ids)))
        if for_update:
            q = q.with_for_update()
        return q.order_by(Sierra.id).all()

class AfiladoRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, a: Afilado): self.db.add(a); return a
    def get(self, id: int): return self.db.get(Afilado, id)

    def query_by_ids(self, ids: Iterable[int], for_update: bool = False):
        q = (
            self.db.query(Afilado)
            .options(joinedload(Afilado.sierra))
            .filter(Afilado.id.in_(list(ids)))
        )
        if for_update:
            # PostgreSQL no bloquea el lado nullable del LEFT JOIN del joinedload
            q = q.with_for_update(of=Afilado)
        return q.order_by(Afilado.id)

    def by_ids(self, ids: Iterable[int], for_update: bool = False):
        return self.query_by_ids(ids, for_update).all()

    def pendientes_por_sierra(self, sierra_id: int):
        return (
            self.db.query(Afilado)
            .options(joinedload(Afilado.tipo_afilado))
            .filter(Afilado.sierra_id == sierra_id, Afilado.fecha_salida.is_(None))
            .order_by(Afilado.fecha_afilado.desc(), Afilado.id.desc())
            .all()
        )

    def en_salida_masiva(self, afilado_id: int) -> bool:
        return self.db.query(SalidaMasivaAfilado.id).filter(
            SalidaMasivaAfilado.afilado_id == afilado_id
        ).first() is not None

class SalidaMasivaRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, s: SalidaMasiva): self.db.add(s); return s
    def add_detalle(self, d: SalidaMasivaAfilado): self.db.add(d); return d
    def get(self, id: int): return self.db.get(SalidaMasiva, id)

    def detalles(self, salida_masiva_id: int):
        return (
            self.db.query(SalidaMasivaAfilado)
            .options(joinedload(SalidaMasivaAfilado.afilado).joinedload(Afilado.sierra))
            .filter(SalidaMasivaAfilado.salida_masiva_id == salida_masiva_id)
            .order_by(SalidaMasivaAfilado.id)
            .all()
        )

class BajaMasivaRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, b: BajaMasiva): self.db.add(b); return b
    def add_detalle(self, d: BajaMasivaSierra): self.db.add(d); return d
    def get(self, id: int): return self.db.get(BajaMasiva, id)

    def detalles(self, baja_masiva_id: int):
        return (
            self.db.query(BajaMasivaSierra)
            .options(joinedload(BajaMasivaSierra.sierra))
            .filter(BajaMasivaSierra.baja_masiva_id == baja_masiva_id)
            .order_by(BajaMasivaSierra.id)
            .all()
        )
