"""
Use Case: Create Request

Stores the uploaded supporting files, then inserts the request, one
document row per file and the initial history entry in one transaction.
If anything fails, the files written for this submission are removed again.
"""

import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from pathlib import PurePath

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    CertificateType,
    Document,
    RequestStatus,
    StatusHistoryEntry,
    Urgency,
    generate_request_number,
)
from docutrack.core.errors import NotFoundError, ValidationError
from docutrack.core.interfaces.request_store import IRequestStore
from docutrack.core.interfaces.storage_service import IStorageService, StoredFile

logger = logging.getLogger(__name__)

INITIAL_COMMENT = "request received"

DEFAULT_ALLOWED_MIME_TYPES = ("application/pdf", "image/jpeg", "image/jpg", "image/png")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class UploadedFile:
    """A file received with the submission, not yet stored."""
    original_name: str
    content: bytes
    content_type: str


@dataclass
class CreateRequestInput:
    user_id: int
    certificate_type: str
    reason: str
    urgency: str | None = None
    documents: list[UploadedFile] = field(default_factory=list)


@dataclass
class CreateRequestResult:
    request: CertificateRequest
    documents: list[Document]
    history: list[StatusHistoryEntry]


def storage_key_for(original_name: str) -> str:
    """<epoch ms>-<random>-<sanitized name>, unique per upload."""
    name = _UNSAFE_CHARS.sub("_", PurePath(original_name).name).strip("._") or "document"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}-{name}"


class CreateRequestUseCase:
    """
    Use Case: validate → store files → insert rows atomically.

    Dependency Injection: store and file storage come in through the
    constructor; limits default to five files of at most 5 MiB each.
    """

    def __init__(
        self,
        store: IRequestStore,
        storage: IStorageService,
        max_documents: int = 5,
        max_upload_bytes: int = 5 * 1024 * 1024,
        allowed_mime_types: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_MIME_TYPES,
        reason_min_length: int = 10,
        reason_max_length: int = 500,
    ):
        self._store = store
        self._storage = storage
        self._max_documents = max_documents
        self._max_upload_bytes = max_upload_bytes
        self._allowed_mime_types = set(allowed_mime_types)
        self._reason_min = reason_min_length
        self._reason_max = reason_max_length

    def execute(self, data: CreateRequestInput) -> CreateRequestResult:
        certificate_type, urgency, reason = self._validate(data)

        saved: list[StoredFile] = []
        try:
            with self._store.transaction() as tx:
                if tx.get_user(data.user_id) is None:
                    raise NotFoundError(f"User {data.user_id} not found")

                request = tx.add_request(CertificateRequest(
                    request_number=generate_request_number(),
                    user_id=data.user_id,
                    certificate_type=certificate_type,
                    reason=reason,
                    urgency=urgency,
                    status=RequestStatus.RECIBIDO,
                ))

                documents = []
                for upload in data.documents:
                    stored = self._storage.save(
                        upload.content,
                        storage_key_for(upload.original_name),
                        upload.content_type,
                    )
                    saved.append(stored)
                    documents.append(tx.add_document(Document(
                        request_id=request.id,
                        file_name=stored.key,
                        original_name=upload.original_name,
                        file_path=stored.path,
                        file_size=stored.size_bytes,
                        mime_type=upload.content_type,
                    )))

                entry = tx.add_history(StatusHistoryEntry(
                    request_id=request.id,
                    old_status=RequestStatus.RECIBIDO,
                    new_status=RequestStatus.RECIBIDO,
                    changed_by_id=data.user_id,
                    comment=INITIAL_COMMENT,
                    created_at=request.created_at,
                ))
        except Exception:
            self._discard(saved)
            raise

        logger.info(
            f"Created request {request.request_number} "
            f"[{certificate_type.value}/{urgency.value}] with {len(documents)} document(s)"
        )
        return CreateRequestResult(request=request, documents=documents, history=[entry])

    def _validate(self, data: CreateRequestInput) -> tuple[CertificateType, Urgency, str]:
        try:
            certificate_type = CertificateType(data.certificate_type)
        except ValueError:
            raise ValidationError(f"Invalid certificate type '{data.certificate_type}'") from None
        try:
            urgency = Urgency(data.urgency or Urgency.NORMAL)
        except ValueError:
            raise ValidationError(f"Invalid urgency '{data.urgency}'") from None

        reason = (data.reason or "").strip()
        if not self._reason_min <= len(reason) <= self._reason_max:
            raise ValidationError(
                f"Reason must be between {self._reason_min} and {self._reason_max} characters"
            )

        if not data.documents:
            raise ValidationError("at least one document required")
        if len(data.documents) > self._max_documents:
            raise ValidationError(f"At most {self._max_documents} documents are allowed")
        for upload in data.documents:
            if upload.content_type not in self._allowed_mime_types:
                raise ValidationError(
                    f"File '{upload.original_name}' has unsupported type {upload.content_type}"
                )
            if not upload.content:
                raise ValidationError(f"File '{upload.original_name}' is empty")
            if len(upload.content) > self._max_upload_bytes:
                raise ValidationError(
                    f"File '{upload.original_name}' exceeds {self._max_upload_bytes} bytes"
                )

        return certificate_type, urgency, reason

    def _discard(self, saved: list[StoredFile]) -> None:
        """Best-effort removal of files written before the failure."""
        for stored in saved:
            try:
                self._storage.delete(stored.key)
            except Exception as e:
                logger.warning(f"Could not remove orphaned upload {stored.key}: {e}")
