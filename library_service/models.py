"""Define los modelos de las tablas 'users' y 'files' usando SQLAlchemy ORM."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from .db import Base


class User(Base):
    """
    Modelo SQLAlchemy que representa la tabla 'users'.
    Almacena el email (clave de login) y el hash de la contraseña generada.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Email del usuario, usado como identificador único para el login
    email = Column(String(255), unique=True, index=True, nullable=False)

    # Hash bcrypt de la contraseña; la columna se llama 'password'
    hashed_password = Column("password", String(255), nullable=False)

    created_at = Column(DateTime, server_default=func.now())


class FileRecord(Base):
    """
    Modelo SQLAlchemy que representa la tabla 'files'.
    Metadatos de un documento subido (PDF) y de su portada opcional.
    """
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)

    # Sin cascada: borrar un usuario no borra sus archivos
    user_id = Column(Integer, ForeignKey("users.id"))

    title = Column(String(255), nullable=False)
    category = Column(String(255), nullable=False)
    division = Column(String(255), nullable=False)

    # Rutas relativas dentro del almacenamiento (ej. 'uploads/1718000000000-42.pdf')
    file_path = Column(String(255), nullable=False)
    cover_image_path = Column(String(255), nullable=True)

    upload_date = Column(DateTime, server_default=func.now())
