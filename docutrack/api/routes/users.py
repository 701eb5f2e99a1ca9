"""
Routes: /api/users — own profile, and account administration.

Accounts are never deleted; administrators deactivate them and the
X-Actor-Id lookup then refuses them.
"""

from fastapi import APIRouter, Depends, Query

from docutrack.api.deps import Services, get_current_actor, get_services, require_admin
from docutrack.api.schemas.responses import (
    ProfileUpdateRequest,
    UserDetailResponse,
    UserEnvelope,
    UserListResponse,
    UserResponse,
    user_detail_response,
    user_page_response,
    user_response,
)
from docutrack.core.entities.user import Actor
from docutrack.core.errors import NotFoundError, ValidationError
from docutrack.infrastructure.db.repository import UserView

router = APIRouter(prefix="/api/users", tags=["Users"])

RECENT_REQUESTS = 5


def _view(services: Services, user_id: int, recent: int = 0) -> UserView:
    view = services.repository.get_user_view(user_id, recent=recent)
    if view is None:
        raise NotFoundError(f"User {user_id} not found")
    return view


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    """The caller's account with the number of requests it has filed."""
    return user_response(_view(services, actor.id))


@router.put("/profile", response_model=UserEnvelope)
async def update_profile(
    body: ProfileUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    services.repository.update_profile(
        actor.id,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    return UserEnvelope(message="Profile updated", user=user_response(_view(services, actor.id)))


@router.get("", response_model=UserListResponse, dependencies=[Depends(require_admin)])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    services: Services = Depends(get_services),
):
    return user_page_response(services.repository.list_users(page=page, limit=limit, search=search))


@router.get("/{user_id}", response_model=UserDetailResponse, dependencies=[Depends(require_admin)])
async def get_user(user_id: int, services: Services = Depends(get_services)):
    """One account with its five most recent requests."""
    return user_detail_response(_view(services, user_id, recent=RECENT_REQUESTS))


@router.delete("/{user_id}", response_model=UserEnvelope)
async def deactivate_user(
    user_id: int,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    if user_id == actor.id:
        raise ValidationError("You cannot deactivate your own account")
    services.repository.set_user_active(user_id, False)
    return UserEnvelope(message="User deactivated", user=user_response(_view(services, user_id)))


@router.post("/{user_id}/activate", response_model=UserEnvelope)
async def activate_user(
    user_id: int,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.repository.set_user_active(user_id, True)
    return UserEnvelope(message="User activated", user=user_response(_view(services, user_id)))
