"""
Routes: /api/admin — request review for administrators.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from docutrack.api.deps import Services, get_services, require_admin
from docutrack.api.routes.certificates import content_disposition
from docutrack.api.schemas.responses import (
    DashboardCounters,
    DashboardStatsResponse,
    RequestEnvelope,
    RequestListResponse,
    RequestResponse,
    StatusUpdateRequest,
    page_response,
    view_response,
)
from docutrack.core.entities.certificate_request import CertificateType, RequestStatus, Urgency
from docutrack.core.entities.user import Actor
from docutrack.core.errors import NotFoundError

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/requests", response_model=RequestListResponse)
async def list_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: RequestStatus | None = None,
    certificate_type: CertificateType | None = None,
    urgency: Urgency | None = None,
    search: str | None = None,
    services: Services = Depends(get_services),
):
    """All requests, urgent first then newest, with per-status counts."""
    result = services.repository.list_requests(
        page=page,
        limit=limit,
        status=status,
        certificate_type=certificate_type,
        urgency=urgency,
        search=search,
        urgent_first=True,
        with_stats=True,
    )
    return page_response(result)


@router.get("/requests/{request_id}", response_model=RequestResponse)
async def get_request(request_id: int, services: Services = Depends(get_services)):
    view = services.repository.get_request_view(request_id)
    if view is None:
        raise NotFoundError(f"Request {request_id} not found")
    return view_response(view)


@router.patch("/requests/{request_id}/status", response_model=RequestEnvelope)
async def update_status(
    request_id: int,
    body: StatusUpdateRequest,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Move a request along the workflow; illegal transitions answer 400."""
    services.transition_status.execute(request_id, actor.id, body.status, body.comment)
    view = services.repository.get_request_view(request_id)
    return RequestEnvelope(
        message=f"Status updated to {view.request.status.value}",
        request=view_response(view),
    )


@router.get("/requests/{request_id}/documents/{document_id}")
async def download_document(
    request_id: int,
    document_id: int,
    services: Services = Depends(get_services),
) -> Response:
    document = services.repository.get_document(request_id, document_id)
    if document is None:
        raise NotFoundError(f"Document {document_id} not found")
    content = services.document_storage.read(document.file_name)
    return Response(
        content=content,
        media_type=document.mime_type,
        headers={"Content-Disposition": content_disposition(document.original_name)},
    )


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(services: Services = Depends(get_services)):
    data = services.repository.get_dashboard_stats()
    return DashboardStatsResponse(
        stats=DashboardCounters(**data["stats"]),
        by_type=data["by_type"],
        by_status=data["by_status"],
        recent_requests=[view_response(v) for v in data["recent"]],
    )
