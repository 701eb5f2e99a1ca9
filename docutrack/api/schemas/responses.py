"""
Pydantic schemas — request/response models for the API.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    CertificateType,
    Document,
    RequestStatus,
    StatusHistoryEntry,
    Urgency,
)
from docutrack.core.entities.user import User, UserRole
from docutrack.infrastructure.db.repository import RequestPage, RequestView, UserPage, UserView


class _FromEntity(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DocumentResponse(_FromEntity):
    id: int
    file_name: str
    original_name: str
    file_size: int
    mime_type: str
    uploaded_at: datetime


class StatusHistoryResponse(_FromEntity):
    id: int
    old_status: RequestStatus
    new_status: RequestStatus
    comment: str | None = None
    changed_by_id: int
    created_at: datetime


class UserSummaryResponse(_FromEntity):
    id: int
    first_name: str
    last_name: str
    email: str
    national_id: str
    phone: str | None = None


class RequestResponse(_FromEntity):
    id: int
    request_number: str
    user_id: int
    certificate_type: CertificateType
    reason: str
    urgency: Urgency
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    processed_at: datetime | None = None
    completed_at: datetime | None = None
    user: UserSummaryResponse | None = None
    documents: list[DocumentResponse] = []
    status_history: list[StatusHistoryResponse] = []
    status_history_count: int = 0


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class RequestListResponse(BaseModel):
    requests: list[RequestResponse]
    pagination: PaginationResponse
    stats: dict[str, int] = {}


class RequestEnvelope(BaseModel):
    success: bool = True
    message: str = ""
    request: RequestResponse


class StatusUpdateRequest(BaseModel):
    status: str
    comment: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)] | None = None


class DashboardCounters(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    today: int


class DashboardStatsResponse(BaseModel):
    stats: DashboardCounters
    by_type: dict[str, int]
    by_status: dict[str, int]
    recent_requests: list[RequestResponse]


class CertificateFileInfo(BaseModel):
    exists: bool
    file_name: str
    file_size: int
    download_url: str


class CertificateCheckResponse(BaseModel):
    request_id: int
    request_number: str
    status: RequestStatus
    completed_at: datetime | None = None
    certificate: CertificateFileInfo


class RegenerateResponse(BaseModel):
    success: bool = True
    message: str
    request_number: str
    file_name: str
    regenerated_at: datetime


class CleanupResponse(BaseModel):
    success: bool = True
    total_old_requests: int
    deleted_certificates: int
    errors: list[dict] = []
    cutoff_date: datetime



class UserResponse(_FromEntity):
    id: int
    email: str
    first_name: str
    last_name: str
    national_id: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    request_count: int = 0


class RequestSummaryResponse(_FromEntity):
    id: int
    request_number: str
    certificate_type: CertificateType
    status: RequestStatus
    created_at: datetime


class UserDetailResponse(UserResponse):
    recent_requests: list[RequestSummaryResponse] = []


class UserListResponse(BaseModel):
    users: list[UserResponse]
    pagination: PaginationResponse


class UserEnvelope(BaseModel):
    success: bool = True
    message: str = ""
    user: UserResponse


Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\+?[0-9][0-9 ()-]{6,19}$")]


class ProfileUpdateRequest(BaseModel):
    first_name: Name | None = None
    last_name: Name | None = None
    phone: Phone | None = None


# ── Mapping helpers ──

def request_response(
    request: CertificateRequest,
    user: User | None = None,
    documents: list[Document] | None = None,
    history: list[StatusHistoryEntry] | None = None,
    history_count: int | None = None,
) -> RequestResponse:
    history = history or []
    return RequestResponse(
        id=request.id,
        request_number=request.request_number,
        user_id=request.user_id,
        certificate_type=request.certificate_type,
        reason=request.reason,
        urgency=request.urgency,
        status=request.status,
        created_at=request.created_at,
        updated_at=request.updated_at,
        processed_at=request.processed_at,
        completed_at=request.completed_at,
        user=UserSummaryResponse.model_validate(user) if user else None,
        documents=[DocumentResponse.model_validate(d) for d in documents or []],
        status_history=[StatusHistoryResponse.model_validate(h) for h in history],
        status_history_count=len(history) if history_count is None else history_count,
    )


def view_response(view: RequestView) -> RequestResponse:
    return request_response(
        view.request,
        user=view.user,
        documents=view.documents,
        history=view.history,
        history_count=view.history_count,
    )


def page_response(page: RequestPage) -> RequestListResponse:
    return RequestListResponse(
        requests=[view_response(v) for v in page.items],
        pagination=PaginationResponse(page=page.page, limit=page.limit, total=page.total, pages=page.pages),
        stats=page.stats,
    )


def _user_fields(view: UserView) -> dict:
    user = view.user
    return dict(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        national_id=user.national_id,
        phone=user.phone,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
        updated_at=user.updated_at,
        request_count=view.request_count,
    )


def user_response(view: UserView) -> UserResponse:
    return UserResponse(**_user_fields(view))


def user_detail_response(view: UserView) -> UserDetailResponse:
    return UserDetailResponse(
        **_user_fields(view),
        recent_requests=[RequestSummaryResponse.model_validate(r) for r in view.recent_requests],
    )


def user_page_response(page: UserPage) -> UserListResponse:
    return UserListResponse(
        users=[user_response(v) for v in page.items],
        pagination=PaginationResponse(page=page.page, limit=page.limit, total=page.total, pages=page.pages),
    )
