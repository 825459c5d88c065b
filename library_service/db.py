"""Configuración de la conexión a la base de datos usando SQLAlchemy."""

import logging
from fastapi import HTTPException
from sqlalchemy import create_engine, exc
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import database_url

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = database_url()

# Crea el motor (Engine) de SQLAlchemy: el punto de entrada a la base de datos.
# pool_pre_ping=True ayuda a manejar conexiones inactivas en el pool.
try:
    engine = create_engine(SQLALCHEMY_DATABASE_URL, pool_pre_ping=True)
    # Intenta conectar para verificar credenciales y disponibilidad al inicio
    with engine.connect() as connection:
        logger.info("Successfully connected to the database.")
except exc.SQLAlchemyError as e:
    logger.error(f"Couldn't connect to the database: {e}", exc_info=True)
    engine = None
except ImportError as e:
    # Driver del dialecto no instalado
    logger.error(f"Database driver not available for {SQLALCHEMY_DATABASE_URL.split(':')[0]}: {e}")
    engine = None

# Cada petición web usará su propia sesión.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None

# Nuestros modelos de tabla (User, FileRecord) heredan de esta clase.
Base = declarative_base()


# --- Función de Dependencia para FastAPI ---
def get_db():
    """
    Dependency that yields one database session per request.
    The session is rolled back if the handler fails and is always closed.
    """
    if SessionLocal is None:
        logger.error("Database session factory is not initialized.")
        raise HTTPException(status_code=500, detail="Database engine is not available; check DB_CONNECT_STRING.")

    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
