"""Modelos Pydantic (schemas) para validación de datos de entrada/salida del Library Service."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

# --- Schemas de Usuario ---

class UserCreate(BaseModel):
    """Schema para registrar un usuario. La contraseña la genera el servidor."""
    email: str = Field(..., min_length=3, max_length=255)

class UserLogin(BaseModel):
    email: str
    password: str

class UserResponse(BaseModel):
    """Proyección pública del usuario (excluye el hash de la contraseña)."""
    id: int
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LoginResponse(BaseModel):
    message: str
    user: UserResponse

class MessageResponse(BaseModel):
    message: str


# --- Schemas de Archivos ---

class FileRecordResponse(BaseModel):
    """Schema de un registro de archivo tal como lo devuelve la API."""
    id: int
    user_id: Optional[int] = None
    title: str
    category: str
    division: str
    file_path: str
    cover_image_path: Optional[str] = None
    upload_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class FileUpdate(BaseModel):
    """Solo título y categoría son modificables; el resto del cuerpo se ignora."""
    title: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=255)

class FileUpdateResponse(BaseModel):
    message: str
    file: FileRecordResponse

class UploadResponse(BaseModel):
    message: str
    id: int
    file_path: str
    cover_image_path: Optional[str] = None
