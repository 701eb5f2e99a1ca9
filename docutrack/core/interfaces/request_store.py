"""
Contract: Request Store

Persistence port of the workflow. Every read and write of a use case happens
inside one ``transaction()`` scope: it commits when the block exits normally
and rolls back when it raises, so a status update and its history row are
never written apart.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    Document,
    StatusHistoryEntry,
)
from docutrack.core.entities.user import User


class IRequestTransaction(ABC):
    """Operations available inside a transaction scope."""

    @abstractmethod
    def get_request(self, request_id: int, for_update: bool = False) -> CertificateRequest | None:
        """
        Read one request by id.

        Args:
            request_id: Primary key.
            for_update: Lock the row until the scope ends (where supported).
        """
        ...

    @abstractmethod
    def add_request(self, request: CertificateRequest) -> CertificateRequest:
        """Insert a request and return it with its id assigned."""
        ...

    @abstractmethod
    def update_request(self, request: CertificateRequest) -> CertificateRequest:
        """
        Write back status and timestamps of a request read in this scope.

        Raises:
            ConcurrentTransitionError: another transaction changed it first.
        """
        ...

    @abstractmethod
    def add_document(self, document: Document) -> Document:
        ...

    @abstractmethod
    def add_history(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        ...

    @abstractmethod
    def list_history(self, request_id: int) -> list[StatusHistoryEntry]:
        """History entries of a request, oldest first."""
        ...

    @abstractmethod
    def list_documents(self, request_id: int) -> list[Document]:
        ...

    @abstractmethod
    def get_user(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    def list_issued_before(self, cutoff: datetime) -> list[CertificateRequest]:
        """EMITIDO requests completed strictly before ``cutoff``."""
        ...


class IRequestStore(ABC):
    """
    Port: Request Store

    Implementation may be SQLAlchemy, an in-memory fake, etc.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[IRequestTransaction]:
        ...
