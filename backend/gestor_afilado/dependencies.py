from typing import Generator
from sqlalchemy.orm import Session

from .db import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependencia para FastAPI.
    Crea una sesión por petición y la cierra al final.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
