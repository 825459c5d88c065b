# tests/conftest.py
import os
import tempfile

# El servicio lee su configuración al importarse: apuntamos a recursos de prueba
os.environ.setdefault("DB_CONNECT_STRING", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="library-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from library_service import main
from library_service.db import Base, get_db
from library_service.storage import BlobStorage


class FakeMailer:
    """Captura los correos en memoria en lugar de enviarlos por SMTP."""

    def __init__(self):
        self.sent = []

    def send_password(self, to_email: str, password: str) -> bool:
        self.sent.append((to_email, password))
        return True


@pytest.fixture
def engine():
    """Base de datos SQLite en memoria, compartida por todas las sesiones del test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def storage(tmp_path):
    return BlobStorage(tmp_path / "uploads")


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(engine, storage, mailer):
    """
    TestClient con los colaboradores reemplazados:
    SQLite en memoria, almacenamiento temporal y un mailer que registra los envíos.
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[main.get_storage] = lambda: storage
    main.app.dependency_overrides[main.get_mailer] = lambda: mailer
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def registered_user(client, mailer):
    """Registra un usuario y devuelve su email y la contraseña capturada del correo."""
    email = "reader@example.com"
    r = client.post("/register", json={"email": email})
    assert r.status_code == 200, r.text
    sent_to, password = mailer.sent[-1]
    assert sent_to == email
    user = client.post("/login", json={"email": email, "password": password}).json()["user"]
    return {"email": email, "password": password, "id": user["id"]}


@pytest.fixture
def upload(client, registered_user):
    """Devuelve una función que sube un documento y retorna la respuesta JSON."""

    def _upload(title="Annual Report", category="Finance", division="North",
                pdf=b"%PDF-1.4 test document", cover=None):
        files = {"pdf": ("report.pdf", pdf, "application/pdf")}
        if cover is not None:
            files["coverImage"] = ("cover.png", cover, "image/png")
        data = {
            "title": title,
            "userId": str(registered_user["id"]),
            "category": category,
            "division": division,
        }
        r = client.post("/upload", data=data, files=files)
        assert r.status_code == 200, r.text
        return r.json()

    return _upload
