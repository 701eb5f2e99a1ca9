"""
Routes: /api/certificates — issued certificate PDFs.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from docutrack.api.deps import Services, get_current_actor, get_services, require_admin
from docutrack.api.schemas.responses import (
    CertificateCheckResponse,
    CertificateFileInfo,
    CleanupResponse,
    RegenerateResponse,
)
from docutrack.core.entities.certificate_request import utcnow
from docutrack.core.entities.user import Actor
from docutrack.core.use_cases.issue_certificate import CertificateFile

router = APIRouter(prefix="/api/certificates", tags=["Certificates"])


def content_disposition(file_name: str, inline: bool = False) -> str:
    """ASCII ``filename`` fallback plus the RFC 5987 UTF-8 ``filename*``."""
    disposition = "inline" if inline else "attachment"
    fallback = file_name.encode("ascii", "ignore").decode().replace('"', "").replace("\\", "") or "download"
    encoded = quote(file_name, safe="")
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def pdf_response(certificate: CertificateFile, inline: bool = False) -> Response:
    return Response(
        content=certificate.content,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(certificate.file_name, inline)},
    )


@router.delete("/cleanup", response_model=CleanupResponse)
async def cleanup_certificates(
    older_than_days: int = Query(30, ge=0),
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Delete stored certificates of requests issued more than N days ago."""
    report = services.issue_certificate.cleanup(older_than_days)
    return CleanupResponse(
        total_old_requests=report.total_old_requests,
        deleted_certificates=report.deleted_certificates,
        errors=report.errors,
        cutoff_date=report.cutoff,
    )


@router.get("/{request_id}/download")
async def download_certificate(
    request_id: int,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
) -> Response:
    """Owner or admin; the request must be EMITIDO."""
    return pdf_response(services.issue_certificate.execute(request_id, actor))


@router.get("/{request_id}/check", response_model=CertificateCheckResponse)
async def check_certificate(
    request_id: int,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    info = services.issue_certificate.check(request_id, actor)
    return CertificateCheckResponse(
        request_id=info.request_id,
        request_number=info.request_number,
        status=info.status,
        completed_at=info.completed_at,
        certificate=CertificateFileInfo(
            exists=info.exists,
            file_name=info.file_name,
            file_size=info.file_size,
            download_url=info.download_url,
        ),
    )


@router.get("/{request_id}/preview")
async def preview_certificate(
    request_id: int,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Response:
    return pdf_response(services.issue_certificate.preview(request_id), inline=True)


@router.post("/{request_id}/regenerate", response_model=RegenerateResponse)
async def regenerate_certificate(
    request_id: int,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    certificate = services.issue_certificate.regenerate(request_id)
    return RegenerateResponse(
        message="Certificate regenerated",
        request_number=certificate.request_number,
        file_name=certificate.file_name,
        regenerated_at=utcnow(),
    )
