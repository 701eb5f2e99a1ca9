"""
Contract: Storage Service

Stores binary files (supporting documents, generated certificates)
on the local filesystem or an object store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class StoredFile:
    """Reference to a stored file."""
    key: str
    path: str
    size_bytes: int
    sha256: str
    content_type: str


class IStorageService(ABC):
    """
    Port: Storage Service

    Errors of the underlying medium surface as StorageFailure.
    """

    @abstractmethod
    def save(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> StoredFile:
        """
        Write a file, replacing any previous content under ``key``.

        Args:
            data: File content.
            key: Name of the file inside the storage root.
            content_type: MIME type.

        Returns:
            StoredFile with location, size and hash.
        """
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """
        Read a stored file.

        Raises:
            NotFoundError: nothing is stored under ``key``.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a file. Returns False when it did not exist."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def size(self, key: str) -> int:
        """Size in bytes, 0 when the file does not exist."""
        ...
