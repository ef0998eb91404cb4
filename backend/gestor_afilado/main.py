import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .db import init_db
from .api.routers import (
    health, auth, empresas, sucursales, tipos, usuarios, sierras, afilados,
    salidas_masivas, bajas_masivas, reportes, dashboard,
)
from .infrastructure.logging_config import setup_logging
from .config import settings as app_settings

# Configurar logging al iniciar la aplicación
setup_logging()
logger = logging.getLogger(__name__)

# Inicializar BD (no fallar si la conexión no está configurada - primer arranque)
try:
    init_db()
except Exception as e:
    logger.warning("No se pudo inicializar la base de datos: %s. Puede requerir configuración inicial.", e)

app = FastAPI(
    title="Gestor de Afilado - Back-office",
    version="0.1.0",
    description="Control de sierras, afilados, salidas masivas y bajas masivas",
    docs_url="/docs" if app_settings.environment == "development" else None,  # Deshabilitar docs en producción
    redoc_url="/redoc" if app_settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    # Solo agregar HSTS en producción con HTTPS
    if app_settings.environment == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(empresas.router)
app.include_router(sucursales.router)
app.include_router(tipos.router_tipos_sierra)
app.include_router(tipos.router_tipos_afilado)
app.include_router(usuarios.router)
app.include_router(sierras.router)
app.include_router(afilados.router)
app.include_router(salidas_masivas.router)
app.include_router(bajas_masivas.router)
app.include_router(reportes.router)
app.include_router(dashboard.router)
