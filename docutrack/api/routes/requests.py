"""
Routes: /api/requests — a citizen's own certificate requests.
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response

from docutrack.api.deps import Services, get_current_actor, get_services
from docutrack.api.routes.certificates import pdf_response
from docutrack.api.schemas.responses import (
    RequestEnvelope,
    RequestListResponse,
    RequestResponse,
    page_response,
    request_response,
    view_response,
)
from docutrack.core.entities.certificate_request import RequestStatus
from docutrack.core.entities.user import Actor
from docutrack.core.errors import NotFoundError
from docutrack.core.use_cases.create_request import CreateRequestInput, UploadedFile

router = APIRouter(prefix="/api/requests", tags=["Requests"])


@router.get("", response_model=RequestListResponse)
async def list_my_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: RequestStatus | None = None,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    """List the caller's requests, newest first."""
    result = services.repository.list_requests(page=page, limit=limit, user_id=actor.id, status=status)
    return page_response(result)


@router.post("", response_model=RequestEnvelope, status_code=201)
async def create_request(
    certificate_type: str = Form(...),
    reason: str = Form(...),
    urgency: str | None = Form(None),
    documents: list[UploadFile] | None = File(None),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    """
    Submit a certificate request.

    Multipart form with the certificate type, reason, optional urgency and
    one to five supporting documents (PDF, JPG, PNG).
    """
    uploads = [
        UploadedFile(
            original_name=f.filename or "document",
            content=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in documents or []
    ]
    result = services.create_request.execute(CreateRequestInput(
        user_id=actor.id,
        certificate_type=certificate_type,
        reason=reason,
        urgency=urgency,
        documents=uploads,
    ))
    return RequestEnvelope(
        message="Request created",
        request=request_response(result.request, documents=result.documents, history=result.history),
    )


@router.get("/{request_id}", response_model=RequestResponse)
async def get_my_request(
    request_id: int,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    view = services.repository.get_request_view(request_id, user_id=actor.id)
    if view is None:
        raise NotFoundError(f"Request {request_id} not found")
    return view_response(view)


@router.delete("/{request_id}", response_model=RequestEnvelope)
async def cancel_request(
    request_id: int,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    """Cancel a request that is still RECIBIDO."""
    request = services.cancel_request.execute(request_id, actor.id)
    return RequestEnvelope(message="Request cancelled", request=request_response(request))


@router.get("/{request_id}/download")
async def download_my_certificate(
    request_id: int,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
) -> Response:
    certificate = services.issue_certificate.execute(request_id, actor)
    return pdf_response(certificate)
