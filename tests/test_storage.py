# tests/test_storage.py
"""Pruebas unitarias del almacenamiento local de binarios."""

import io
import re

from fastapi import UploadFile

from library_service.storage import BlobStorage


def make_upload(name, content):
    return UploadFile(file=io.BytesIO(content), filename=name)


def test_creates_root_directory(tmp_path):
    root = tmp_path / "nested" / "uploads"

    BlobStorage(root)

    assert root.is_dir()


def test_generated_name_keeps_extension():
    name = BlobStorage.generate_name("My Document.PDF")

    assert re.fullmatch(r"\d+-\d+\.PDF", name)


def test_generated_name_without_extension():
    assert re.fullmatch(r"\d+-\d+", BlobStorage.generate_name("README"))
    assert re.fullmatch(r"\d+-\d+", BlobStorage.generate_name(None))


def test_save_writes_identical_bytes(storage):
    payload = bytes(range(256)) * 64

    path = storage.save(make_upload("scan.pdf", payload))

    assert path.startswith("uploads/")
    assert storage.resolve(path).read_bytes() == payload


def test_saved_names_are_distinct(storage):
    paths = {storage.save(make_upload("a.pdf", b"x")) for _ in range(20)}

    assert len(paths) == 20


def test_resolve_uses_only_final_component(storage):
    assert storage.resolve("uploads/a.pdf") == storage.root / "a.pdf"
    assert storage.resolve("../../etc/passwd") == storage.root / "passwd"


def test_remove_existing_blob(storage):
    path = storage.save(make_upload("a.pdf", b"x"))

    assert storage.remove(path) is True
    assert not storage.resolve(path).exists()


def test_remove_missing_blob_is_not_fatal(storage, caplog):
    assert storage.remove("uploads/never-existed.pdf") is False
    assert "already missing" in caplog.text
