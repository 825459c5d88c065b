"""Almacenamiento local de los binarios subidos (PDFs y portadas)."""

import logging
import os
import random
import shutil
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)


class BlobStorage:
    """
    Flat directory of uploaded binaries.

    Files are stored as ``<epoch-millis>-<random>.<ext>`` and referred to by the
    relative path ``<prefix>/<name>`` (``uploads/...`` by default), which is what
    the FileRecord rows keep and what the ``/uploads`` static mount serves.
    """

    def __init__(self, root, prefix: str = "uploads"):
        self.root = Path(root)
        self.prefix = prefix
        # Crea la carpeta si no existe
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(original_filename: Optional[str]) -> str:
        """Unique-enough name: current time plus a random suffix, original extension kept."""
        _, ext = os.path.splitext(original_filename or "")
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}"
        return unique_suffix + ext

    def relative_path(self, name: str) -> str:
        return f"{self.prefix}/{name}"

    def resolve(self, path: str) -> Path:
        """Maps a stored relative path (or a bare file name) to its location on disk."""
        # Solo el último componente: evita salir de la carpeta (../)
        return self.root / Path(path).name

    def save(self, upload: UploadFile) -> str:
        """Writes an uploaded file to disk and returns its relative path."""
        name = self.generate_name(upload.filename)
        destination = self.root / name
        upload.file.seek(0)
        with open(destination, "wb") as out:
            shutil.copyfileobj(upload.file, out)
        logger.info(f"Stored upload '{upload.filename}' as {destination}")
        return self.relative_path(name)

    def remove(self, path: str) -> bool:
        """
        Deletes a stored blob. A blob that is already gone is not an error:
        a warning is logged and False is returned.
        """
        target = self.resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning(f"Blob {path} was already missing from {self.root}; nothing to delete.")
            return False
        logger.info(f"Deleted blob {target}")
        return True
