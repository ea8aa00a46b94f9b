"""
Local directory sink.

Containers are subdirectories of a root directory. Commits write to a
temporary file in the same directory and hard-link it into place, which
fails instead of replacing a file that already exists.
"""

import os
from pathlib import Path

from loguru import logger

from fhir_link.sinks.base import BlobExistsError, BlobSink, BlobWriter


def atomic_write_bytes(dest_path: Path, content: bytes) -> Path:
    """
    Write bytes to a new file atomically.

    Args:
        dest_path: Final destination path (must not exist)
        content: Bytes to write

    Returns:
        Path to written file
    """
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    if dest_path.exists():
        raise BlobExistsError(f"{dest_path} already exists")

    temp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")

    try:
        temp_path.write_bytes(content)
        try:
            os.link(temp_path, dest_path)
        except FileExistsError as e:
            raise BlobExistsError(f"{dest_path} already exists") from e
        return dest_path
    finally:
        temp_path.unlink(missing_ok=True)


class LocalBlobWriter(BlobWriter):
    def __init__(self, path: Path, container: str, blob_name: str):
        super().__init__(container, blob_name)
        self.path = path

    def _commit(self, content: bytes) -> None:
        atomic_write_bytes(self.path, content)


class LocalDirectorySink(BlobSink):
    """Blob sink writing to the local filesystem."""

    sink_name = "local"

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)

    def ensure_container(self, container: str) -> bool:
        path = self.root_dir / container
        if path.is_dir():
            return False
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created container directory {path}")
        return True

    def open_writer(self, container: str, blob_name: str) -> LocalBlobWriter:
        return LocalBlobWriter(self.root_dir / container / blob_name, container, blob_name)
