"""
Dependency wiring for the API.

``build_services`` assembles the adapters and use cases once per
application; route dependencies read them back from ``app.state``.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.engine import Engine

from docutrack.config.settings import Settings
from docutrack.core.entities.user import Actor
from docutrack.core.errors import ForbiddenError, UnauthorizedError
from docutrack.core.use_cases.cancel_request import CancelRequestUseCase
from docutrack.core.use_cases.create_request import CreateRequestUseCase
from docutrack.core.use_cases.issue_certificate import IssueCertificateUseCase
from docutrack.core.use_cases.transition_status import TransitionStatusUseCase
from docutrack.infrastructure.db.database import create_db_engine, create_session_factory
from docutrack.infrastructure.db.repository import RequestRepository, SqlRequestStore
from docutrack.infrastructure.pdf.certificate_renderer import ReportLabCertificateRenderer
from docutrack.infrastructure.storage.local_storage import LocalFileStorage


@dataclass
class Services:
    engine: Engine
    store: SqlRequestStore
    repository: RequestRepository
    document_storage: LocalFileStorage
    certificate_storage: LocalFileStorage
    create_request: CreateRequestUseCase
    transition_status: TransitionStatusUseCase
    cancel_request: CancelRequestUseCase
    issue_certificate: IssueCertificateUseCase


def build_services(settings: Settings) -> Services:
    """Factory — build use cases with concrete adapters."""
    engine = create_db_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    store = SqlRequestStore(session_factory)
    document_storage = LocalFileStorage(settings.upload_dir)
    certificate_storage = LocalFileStorage(settings.certificates_dir)
    transition = TransitionStatusUseCase(store)

    return Services(
        engine=engine,
        store=store,
        repository=RequestRepository(session_factory),
        document_storage=document_storage,
        certificate_storage=certificate_storage,
        create_request=CreateRequestUseCase(
            store=store,
            storage=document_storage,
            max_documents=settings.max_documents,
            max_upload_bytes=settings.max_upload_bytes,
            allowed_mime_types=settings.allowed_mime_types,
            reason_min_length=settings.reason_min_length,
            reason_max_length=settings.reason_max_length,
        ),
        transition_status=transition,
        cancel_request=CancelRequestUseCase(store, transition),
        issue_certificate=IssueCertificateUseCase(
            store=store,
            renderer=ReportLabCertificateRenderer(
                issuer=settings.certificate_issuer,
                authority=settings.certificate_authority,
                verification_salt=settings.verification_salt,
                verification_url=settings.verification_url,
            ),
            certificates=certificate_storage,
        ),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_actor(
    x_actor_id: int | None = Header(default=None),
    services: Services = Depends(get_services),
) -> Actor:
    """
    Resolve the actor forwarded by the authentication layer.

    Authentication itself happens upstream; this only checks that the
    account exists and is active.
    """
    if x_actor_id is None:
        raise UnauthorizedError("Missing X-Actor-Id header")
    user = services.repository.get_user(x_actor_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Unknown or inactive user")
    return Actor(id=user.id, role=user.role)


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Administrator role required")
    return actor
