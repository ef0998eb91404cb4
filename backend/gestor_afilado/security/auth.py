from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ..config import settings
from ..dependencies import get_db
from ..domain.models import Usuario
from ..domain.enums import UsuarioRol

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

ROLES_GESTION = (UsuarioRol.GERENTE.value, UsuarioRol.ADMINISTRADOR.value)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_minutes: int = settings.access_token_expire_minutes):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm="HS256")
    return encoded_jwt

def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> Usuario:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido")
    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Credenciales inválidas")
    user = db.query(Usuario).filter(Usuario.email == email).first()
    if not user or not user.activo:
        raise HTTPException(status_code=401, detail="Usuario no encontrado")
    return user


@dataclass(frozen=True)
class ContextoUsuario:
    """Datos del usuario que viajan con cada petición"""
    usuario_id: int
    rol: str
    empresa_id: Optional[int] = None

    @property
    def puede_gestionar(self) -> bool:
        return self.rol in ROLES_GESTION

    @property
    def es_cliente(self) -> bool:
        return self.rol == UsuarioRol.CLIENTE.value

    def empresa_visible(self, empresa_id: Optional[int]) -> Optional[int]:
        """Un cliente solo ve su empresa, aunque pida otra."""
        if self.es_cliente:
            return self.empresa_id
        return empresa_id


def get_contexto(current_user: Usuario = Depends(get_current_user)) -> ContextoUsuario:
    return ContextoUsuario(
        usuario_id=current_user.id,
        rol=current_user.rol,
        empresa_id=current_user.empresa_id,
    )


def require_gestion(ctx: ContextoUsuario = Depends(get_contexto)) -> ContextoUsuario:
    if not ctx.puede_gestionar:
        raise HTTPException(status_code=403, detail="Acceso de solo lectura")
    return ctx


def require_administrador(ctx: ContextoUsuario = Depends(get_contexto)) -> ContextoUsuario:
    if ctx.rol != UsuarioRol.ADMINISTRADOR.value:
        raise HTTPException(status_code=403, detail="Solo administradores pueden realizar esta acción")
    return ctx
