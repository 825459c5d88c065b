"""Funciones de utilidad del servicio: generación y hash de contraseñas, mensajes de error."""

import logging
import secrets
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# Longitud en bytes de la contraseña generada (16 caracteres hex)
GENERATED_PASSWORD_BYTES = 8
BCRYPT_ROUNDS = 10

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


def generate_password(nbytes: int = GENERATED_PASSWORD_BYTES) -> str:
    """Genera una contraseña aleatoria criptográficamente segura, codificada en hex."""
    return secrets.token_hex(nbytes)

def get_password_hash(password: str) -> str:
    """Genera el hash de una contraseña plana usando bcrypt."""
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica una contraseña plana contra un hash almacenado."""
    return pwd_context.verify(plain_password, hashed_password)

def error_message(exc: Exception) -> str:
    """
    Returns the message of the underlying error.

    For SQLAlchemy errors this is the DBAPI driver message (``exc.orig``), so
    the SQL statement and its bound parameters are not echoed to clients.
    """
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc)
