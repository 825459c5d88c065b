"""Configuración del servicio leída desde variables de entorno (.env)."""

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Carga variables de entorno desde el archivo .env
load_dotenv()

PORT = int(os.getenv("PORT", 2024))

# --- Base de datos ---
DB_CONNECT_STRING = os.getenv("DB_CONNECT_STRING")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_HOST = os.getenv("DB_HOST")
DB_NAME = os.getenv("DB_NAME")


def database_url() -> str:
    """
    Returns the SQLAlchemy URL of the store.
    DB_CONNECT_STRING wins; otherwise the URL is composed from the DB_* pieces.
    """
    if DB_CONNECT_STRING:
        return DB_CONNECT_STRING

    required_db_vars = {"DB_USER", "DB_PASS", "DB_HOST", "DB_NAME"}
    missing_vars = required_db_vars - set(os.environ)
    if missing_vars:
        logger.error(f"Missing database environment variables: {', '.join(sorted(missing_vars))}")
    return f"mysql+pymysql://{DB_USER}:{DB_PASS}@{DB_HOST}/{DB_NAME}"


# --- Correo saliente (SMTP) ---
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", 465))
EMAIL_USER = os.getenv("EMAIL")
EMAIL_PASS = os.getenv("PASS")

if not EMAIL_USER or not EMAIL_PASS:
    logger.warning("EMAIL/PASS are not set. Generated passwords will not be mailed.")

# --- Almacenamiento de archivos ---
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")

# --- CORS ---
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
