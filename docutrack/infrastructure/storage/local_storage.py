"""
Adapter: Local Filesystem Storage

Concrete IStorageService that keeps files under a root directory.
Swapping in an object store later only changes this adapter.
"""

import hashlib
import logging
from pathlib import Path

from docutrack.core.errors import NotFoundError, StorageFailure
from docutrack.core.interfaces.storage_service import IStorageService, StoredFile

logger = logging.getLogger(__name__)


class LocalFileStorage(IStorageService):
    """Files stored flat under ``root``; keys are plain file names."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if path.parent != self._root.resolve():
            raise StorageFailure(f"Invalid storage key: {key!r}")
        return path

    def save(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> StoredFile:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageFailure(f"Could not write {key}: {e}") from e
        logger.debug(f"Stored {key} ({len(data)} bytes) in {self._root}")
        return StoredFile(
            key=key,
            path=str(path),
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
        )

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"File {key} not found in storage") from None
        except OSError as e:
            raise StorageFailure(f"Could not read {key}: {e}") from e

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageFailure(f"Could not delete {key}: {e}") from e
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def size(self, key: str) -> int:
        path = self._path(key)
        return path.stat().st_size if path.is_file() else 0
