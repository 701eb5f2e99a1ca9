"""
Use Case: Issue Certificate

Produces the PDF of an issued (EMITIDO) request. Generation is lazy and
cached: the first download renders and stores the file, later downloads
reuse it until an admin explicitly regenerates it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    Document,
    RequestStatus,
    utcnow,
)
from docutrack.core.entities.user import Actor, User
from docutrack.core.errors import InvalidStateError, NotFoundError, StorageFailure
from docutrack.core.interfaces.certificate_renderer import ICertificateRenderer
from docutrack.core.interfaces.request_store import IRequestStore
from docutrack.core.interfaces.storage_service import IStorageService

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass
class CertificateFile:
    file_name: str
    content: bytes
    request_number: str
    reused: bool = False


@dataclass
class CertificateInfo:
    request_id: int
    request_number: str
    status: RequestStatus
    completed_at: datetime | None
    exists: bool
    file_name: str
    file_size: int
    download_url: str


@dataclass
class CleanupReport:
    cutoff: datetime
    total_old_requests: int = 0
    deleted_certificates: int = 0
    errors: list[dict] = field(default_factory=list)


def certificate_file_name(request: CertificateRequest) -> str:
    return f"certificado-{request.request_number}.pdf"


class IssueCertificateUseCase:
    """
    Use Case: download / check / preview / regenerate / cleanup certificates.

    Admin-only operations (preview, regenerate, cleanup) are guarded by the
    caller, as with status transitions.
    """

    def __init__(
        self,
        store: IRequestStore,
        renderer: ICertificateRenderer,
        certificates: IStorageService,
    ):
        self._store = store
        self._renderer = renderer
        self._certificates = certificates

    def execute(self, request_id: int, actor: Actor) -> CertificateFile:
        """Return the certificate, rendering and caching it on first use."""
        request, user, documents = self._load(request_id, actor, require_issued=True)
        file_name = certificate_file_name(request)

        if self._certificates.exists(file_name):
            logger.info(f"Reusing stored certificate {file_name}")
            return CertificateFile(
                file_name=file_name,
                content=self._certificates.read(file_name),
                request_number=request.request_number,
                reused=True,
            )

        logger.info(f"Generating certificate {file_name}")
        content = self._renderer.render(request, user, documents)
        try:
            self._certificates.save(content, file_name, PDF_CONTENT_TYPE)
        except StorageFailure as e:
            # The citizen still gets the PDF; the next download renders again.
            logger.warning(f"Could not store certificate {file_name}: {e}")

        logger.info(f"Certificate {file_name} downloaded by user {actor.id}")
        return CertificateFile(file_name=file_name, content=content, request_number=request.request_number)

    def check(self, request_id: int, actor: Actor) -> CertificateInfo:
        request, _, _ = self._load(request_id, actor, require_issued=True)
        file_name = certificate_file_name(request)
        exists = self._certificates.exists(file_name)
        return CertificateInfo(
            request_id=request.id,
            request_number=request.request_number,
            status=request.status,
            completed_at=request.completed_at,
            exists=exists,
            file_name=file_name,
            file_size=self._certificates.size(file_name) if exists else 0,
            download_url=f"/api/certificates/{request.id}/download",
        )

    def preview(self, request_id: int) -> CertificateFile:
        """Render without storing, whatever the current status."""
        request, user, documents = self._load(request_id)
        return CertificateFile(
            file_name=f"preview-{request.request_number}.pdf",
            content=self._renderer.render(request, user, documents),
            request_number=request.request_number,
        )

    def regenerate(self, request_id: int) -> CertificateFile:
        request, user, documents = self._load(request_id, require_issued=True)
        file_name = certificate_file_name(request)

        if self._certificates.delete(file_name):
            logger.info(f"Removed previous certificate {file_name}")
        content = self._renderer.render(request, user, documents)
        self._certificates.save(content, file_name, PDF_CONTENT_TYPE)

        logger.info(f"Regenerated certificate {file_name}")
        return CertificateFile(file_name=file_name, content=content, request_number=request.request_number)

    def cleanup(self, older_than_days: int = 30, now: datetime | None = None) -> CleanupReport:
        """Delete stored certificates of requests issued before the cutoff."""
        report = CleanupReport(cutoff=(now or utcnow()) - timedelta(days=older_than_days))
        with self._store.transaction() as tx:
            old_requests = tx.list_issued_before(report.cutoff)
        report.total_old_requests = len(old_requests)

        for request in old_requests:
            file_name = certificate_file_name(request)
            try:
                if self._certificates.delete(file_name):
                    report.deleted_certificates += 1
            except StorageFailure as e:
                report.errors.append({"file": file_name, "error": str(e)})

        logger.info(
            f"Certificate cleanup: {report.deleted_certificates} deleted, "
            f"{len(report.errors)} error(s), cutoff {report.cutoff.isoformat()}"
        )
        return report

    def _load(
        self,
        request_id: int,
        actor: Actor | None = None,
        require_issued: bool = False,
    ) -> tuple[CertificateRequest, User, list[Document]]:
        with self._store.transaction() as tx:
            request = tx.get_request(request_id)
            if request is None or (actor and not actor.is_admin and request.user_id != actor.id):
                raise NotFoundError(f"Request {request_id} not found")
            if require_issued and request.status != RequestStatus.EMITIDO:
                raise InvalidStateError(
                    f"Certificate not available: request {request.request_number} "
                    f"is {request.status.value}, expected {RequestStatus.EMITIDO.value}"
                )
            user = tx.get_user(request.user_id)
            if user is None:
                raise NotFoundError(f"User {request.user_id} not found")
            documents = tx.list_documents(request.id)
        return request, user, documents
