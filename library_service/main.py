"""Library Service: registro/login de usuarios y CRUD de documentos subidos (PDF + portada)."""

import logging
import time
from typing import List, Optional, Tuple

from fastapi import FastAPI, Depends, HTTPException, status, Request, BackgroundTasks, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, JSONResponse, FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import delete, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Importaciones locales
from . import config
from . import schemas
from .db import engine, Base, get_db
from .mailer import SmtpMailer
from .models import User, FileRecord
from .storage import BlobStorage
from .utils import generate_password, get_password_hash, verify_password, error_message

# Configura logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Crea tablas si no existen al iniciar
try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified/created.")
except Exception as e:
    logger.error(f"Error initializing database: {e}", exc_info=True)

# --- Colaboradores (uno por proceso) ---
blob_storage = BlobStorage(config.UPLOAD_DIR)
mailer = SmtpMailer(config.SMTP_HOST, config.SMTP_PORT, config.EMAIL_USER, config.EMAIL_PASS)


def get_storage() -> BlobStorage:
    return blob_storage

def get_mailer() -> SmtpMailer:
    return mailer


# Inicializa FastAPI
app = FastAPI(
    title="Library Service",
    description="Handles user registration/login and uploaded documents with optional cover images.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Sirve los binarios almacenados directamente en /uploads/<nombre>
app.mount("/uploads", StaticFiles(directory=blob_storage.root), name="uploads")

# --- Métricas Prometheus ---
REQUEST_COUNT = Counter(
    "library_requests_total",
    "Total requests processed by Library Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "library_request_latency_seconds",
    "Request latency in seconds for Library Service",
    ["endpoint"]
)
FILES_UPLOADED_COUNT = Counter("library_files_uploaded_total", "Documents uploaded")
USERS_REGISTERED_COUNT = Counter("library_users_registered_total", "Users registered")


def _endpoint_template(path: str) -> str:
    """Colapsa rutas con parámetros para no explotar la cardinalidad de las etiquetas."""
    parts = path.split("/")
    if len(parts) > 2 and parts[1] == "files" and parts[2]:
        return "/files/{file_id}"
    if len(parts) > 2 and parts[1] == "download":
        return "/download/{filename}"
    if len(parts) > 2 and parts[1] == "uploads":
        return "/uploads/{path}"
    return path


# --- Middleware para Métricas ---
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    response = None
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as exc:
        logger.error(f"Unhandled exception during request processing: {exc}", exc_info=True)
        response = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
    finally:
        latency = time.time() - start_time
        endpoint = _endpoint_template(request.url.path)
        final_status_code = getattr(response, 'status_code', status_code)
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status_code=final_status_code).inc()

    return response


# --- Endpoints de Salud y Métricas ---
@app.get("/metrics", tags=["Monitoring"])
def metrics():
    """Exposes application metrics for Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

@app.get("/health", tags=["Monitoring"])
def health_check(db: Session = Depends(get_db)):
    """Reports service status and a database probe."""
    db_status = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed - database error: {e}", exc_info=True)
        db_status = "error"
    return {"status": "ok", "service": "library_service", "database": db_status}


# --- Esquema ---

@app.get("/init", response_class=PlainTextResponse, tags=["Schema"])
def init_schema(db: Session = Depends(get_db)):
    """Creates the users and files tables if they do not exist. Safe to call repeatedly."""
    logger.info("Schema initialization requested")
    try:
        Base.metadata.create_all(bind=db.get_bind())
    except SQLAlchemyError as e:
        logger.error(f"Schema initialization failed: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))
    return "Tables created successfully"


# --- Endpoints de Autenticación ---

@app.post("/register", response_model=schemas.MessageResponse, tags=["Authentication"])
def register(
    user: schemas.UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mail: SmtpMailer = Depends(get_mailer),
):
    """
    Registers a user with a server-generated password.
    The password is hashed before it is stored and mailed to the user after the
    response is sent; the response itself never contains it.
    """
    logger.info(f"Registration request received for email: {user.email}")
    password = generate_password()
    new_user = User(email=user.email, hashed_password=get_password_hash(password))

    try:
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during user creation for email {user.email}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    logger.info(f"User created with ID: {new_user.id} for email: {new_user.email}")
    USERS_REGISTERED_COUNT.inc()

    # Envío del correo desacoplado de la respuesta
    background_tasks.add_task(mail.send_password, new_user.email, password)

    return {"message": "User registered successfully. Password has been sent to your email."}


@app.post("/login", response_model=schemas.LoginResponse, tags=["Authentication"])
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Checks an email/password pair and returns the user (without the password hash).
    No token or session is issued.
    """
    logger.info(f"Login request received for email: {credentials.email}")
    try:
        user = db.query(User).filter(User.email == credentials.email).first()
    except SQLAlchemyError as e:
        logger.error(f"Database error during login for {credentials.email}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    if user is None:
        logger.warning(f"Login failed: user {credentials.email} not found.")
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="User not found")

    if not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Login failed: incorrect password for {credentials.email}.")
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Incorrect password")

    logger.info(f"Login successful for user_id: {user.id}")
    return {"message": "Login successful", "user": user}


# --- Endpoints de Archivos ---

@app.post("/upload", response_model=schemas.UploadResponse, tags=["Files"])
def upload_file(
    title: str = Form(...),
    user_id: int = Form(..., alias="userId"),
    category: str = Form(...),
    division: str = Form(...),
    pdf_files: Optional[List[UploadFile]] = File(None, alias="pdf"),
    cover_images: Optional[List[UploadFile]] = File(None, alias="coverImage"),
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    """
    Stores the PDF (mandatory) and the cover image (optional), then inserts the file record.
    Each file field accepts at most one part.
    If the insert fails the stored binaries stay on disk and are reported in the log.
    """
    logger.info(f"Upload request received: title={title!r} user_id={user_id} category={category!r}")
    pdf_files = [f for f in pdf_files or [] if f.filename]
    cover_images = [f for f in cover_images or [] if f.filename]
    if not pdf_files:
        logger.warning("Upload rejected: no PDF file in the request.")
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="PDF file is required")
    if len(pdf_files) > 1 or len(cover_images) > 1:
        logger.warning(f"Upload rejected: {len(pdf_files)} pdf and {len(cover_images)} coverImage parts.")
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Only one pdf and one coverImage file are allowed")
    pdf = pdf_files[0]
    cover_image = cover_images[0] if cover_images else None

    stored = []
    try:
        pdf_path = storage.save(pdf)
        stored.append(pdf_path)
        cover_image_path = None
        if cover_image is not None:
            cover_image_path = storage.save(cover_image)
            stored.append(cover_image_path)
    except OSError as e:
        logger.error(f"Could not store uploaded files (already stored: {stored}): {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    record = FileRecord(
        user_id=user_id,
        title=title,
        category=category,
        division=division,
        file_path=pdf_path,
        cover_image_path=cover_image_path,
    )
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while saving file record: {e}", exc_info=True)
        logger.warning(f"Orphaned blobs left in storage: {stored}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    logger.info(f"File record {record.id} created ({pdf_path}, cover={cover_image_path})")
    FILES_UPLOADED_COUNT.inc()
    return {
        "message": "File and cover image uploaded successfully" if cover_image_path else "File uploaded successfully",
        "id": record.id,
        "file_path": pdf_path,
        "cover_image_path": cover_image_path,
    }


@app.get("/files", response_model=List[schemas.FileRecordResponse], tags=["Files"])
def list_files(db: Session = Depends(get_db)):
    """Returns every file record, unfiltered."""
    try:
        return db.query(FileRecord).order_by(FileRecord.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Database error while listing files: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))


@app.get("/search", response_model=List[schemas.FileRecordResponse], tags=["Files"])
def search_files(query: Optional[str] = None, db: Session = Depends(get_db)):
    """
    Case-insensitive substring search over title or category.
    A missing or empty query matches every record.
    """
    logger.info(f"Search request received: query={query!r}")
    files = db.query(FileRecord)
    if query:
        files = files.filter(or_(
            FileRecord.title.icontains(query, autoescape=True),
            FileRecord.category.icontains(query, autoescape=True),
        ))
    try:
        return files.order_by(FileRecord.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Database error while searching files: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))


@app.put("/files/{file_id}", response_model=schemas.FileUpdateResponse, tags=["Files"])
def update_file(file_id: int, changes: schemas.FileUpdate, db: Session = Depends(get_db)):
    """Updates title and category of a file record. Every other column is left untouched."""
    logger.info(f"Update request received for file {file_id}")
    try:
        file = db.query(FileRecord).filter(FileRecord.id == file_id).first()
        if file is not None:
            file.title = changes.title
            file.category = changes.category
            db.commit()
            db.refresh(file)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Update of file {file_id} failed: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    if file is None:
        logger.warning(f"Update failed: file {file_id} not found.")
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="File not found")

    logger.info(f"File {file_id} updated successfully")
    return {"message": "File updated successfully", "file": file}


def _delete_file_record(db: Session, file_id: int) -> Optional[Tuple[str, Optional[str]]]:
    """
    Deletes the row and returns its (file_path, cover_image_path), or None if no row matched.
    Uses DELETE ... RETURNING where the dialect supports it (PostgreSQL, MariaDB, SQLite);
    otherwise (MySQL) the row is locked with SELECT ... FOR UPDATE and deleted in the same
    transaction. The caller commits.
    """
    if db.get_bind().dialect.delete_returning:
        stmt = (
            delete(FileRecord)
            .where(FileRecord.id == file_id)
            .returning(FileRecord.file_path, FileRecord.cover_image_path)
            .execution_options(synchronize_session=False)
        )
        row = db.execute(stmt).first()
        return None if row is None else (row.file_path, row.cover_image_path)

    record = db.get(FileRecord, file_id, with_for_update=True)
    if record is None:
        return None
    paths = (record.file_path, record.cover_image_path)
    db.delete(record)
    db.flush()
    return paths


@app.delete("/files/{file_id}", response_model=schemas.MessageResponse, tags=["Files"])
def delete_file(
    file_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    """
    Deletes a file record and then its stored binaries.
    The blob paths come from the delete transaction itself; a blob that is
    already missing from disk is logged and skipped.
    """
    logger.info(f"Delete request received for file {file_id}")
    try:
        deleted = _delete_file_record(db, file_id)
        if deleted is None:
            db.rollback()
        else:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Delete of file {file_id} failed: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    if deleted is None:
        logger.warning(f"Delete failed: file {file_id} not found.")
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="File not found")

    file_path, cover_image_path = deleted
    try:
        storage.remove(file_path)
        if cover_image_path:
            storage.remove(cover_image_path)
    except OSError as e:
        logger.error(f"File record {file_id} deleted but its blobs could not be removed: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_message(e))

    logger.info(f"File {file_id} deleted successfully")
    return {"message": "File deleted successfully"}


@app.get("/download/{filename}", tags=["Files"])
def download_file(filename: str, storage: BlobStorage = Depends(get_storage)):
    """Sends a stored binary as an attachment. The name is the one returned at upload time."""
    path = storage.resolve(filename)
    if not path.is_file():
        logger.error(f"File download error: {filename} not found in {storage.root}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="File not found")
    return FileResponse(path, filename=path.name)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
