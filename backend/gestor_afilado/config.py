from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator, field_validator
import secrets

BASE_DIR = Path(__file__).resolve().parent.parent  # backend/

class Settings(BaseSettings):
    # ===== ENTORNO =====
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # ===== DATABASE =====
    database_url: str = Field(default="sqlite:///./data/afilado.db")

    # ===== SECURITY =====
    secret_key: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    access_token_expire_minutes: int = Field(default=120)

    # ===== ADMIN (solo desarrollo) =====
    admin_user: str = Field(default="admin@afilado.local")
    admin_pass: str = Field(default="admin")

    @field_validator("admin_user", "admin_pass", mode="after")
    @classmethod
    def empty_to_default(cls, v: str) -> str:
        return v.strip() if v and v.strip() else "admin"

    # ===== CORS =====
    allowed_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    # ===== LOGS =====
    log_dir: str = Field(default="logs")

    # ===== PAGINACIÓN =====
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)

    # ===== OPERACIONES MASIVAS =====
    # False: la reversión de una salida no toca la sierra y la de una baja la deja Disponible
    # True: se restaura el estado_id registrado al momento de incluir la sierra
    reversion_exacta: bool = Field(default=False)

    class Config:
        env_file = ".env"
        case_sensitive = False

    @model_validator(mode="after")
    def validate_secret_key(self):
        if self.environment == "production" and len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY debe tener al menos 32 caracteres en producción.")
        return self

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
