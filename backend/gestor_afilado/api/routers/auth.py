from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...security.auth import create_access_token, get_password_hash, verify_password, get_current_user
from ...domain.models import Usuario
from ...domain.enums import UsuarioRol
from ...config import settings
from ...application.services_audit import log_audit, MODULE_AUTH, ACTION_LOGIN

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str | None:
    return (
        request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or request.headers.get("X-Real-IP")
        or (request.client.host if request.client else None)
    )


@router.post("/login")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Endpoint de autenticación. El username del formulario es el email.

    En desarrollo, permite crear el administrador automáticamente si no existe.
    En producción, requiere que el usuario ya exista.
    """
    email = form_data.username.strip().lower()
    user = db.query(Usuario).filter(Usuario.email == email).first()
    if not user:
        if settings.environment == "development" and email == settings.admin_user and form_data.password == settings.admin_pass:
            user = Usuario(
                email=settings.admin_user,
                password_hash=get_password_hash(settings.admin_pass),
                nombre_completo="Administrador",
                rol=UsuarioRol.ADMINISTRADOR.value,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
        else:
            # No dar información sobre si el usuario existe o no
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Usuario/clave inválidos"
            )

    if not user.activo or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario/clave inválidos"
        )

    token = create_access_token({"sub": user.email})
    log_audit(
        module=MODULE_AUTH,
        action=ACTION_LOGIN,
        entity_type="Usuario",
        entity_id=user.id,
        summary=f"Login exitoso: {user.email}",
        usuario_id=user.id,
        usuario_rol=user.rol,
        empresa_id=user.empresa_id,
        ip_address=_client_ip(request),
    )
    return {"access_token": token, "token_type": "bearer"}

@router.get("/me")
def me(current_user: Usuario = Depends(get_current_user)):
    empresa = current_user.empresa
    return {
        "id": current_user.id,
        "email": current_user.email,
        "nombre_completo": current_user.nombre_completo,
        "rol": current_user.rol,
        "empresa": {"id": empresa.id, "razon_social": empresa.razon_social} if empresa else None,
    }
