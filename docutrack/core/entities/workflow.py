"""
Request status workflow.

The transition table below is the only place that decides whether a status
change is legal. Admin updates and user cancellations both go through
``apply_transition`` so the status history stays a gapless record.
"""

from datetime import datetime

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    RequestStatus,
    StatusHistoryEntry,
    utcnow,
)
from docutrack.core.errors import InvalidTransitionError

ALLOWED_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.RECIBIDO: frozenset({
        RequestStatus.EN_VALIDACION,
        RequestStatus.RECHAZADO,
    }),
    RequestStatus.EN_VALIDACION: frozenset({
        RequestStatus.OBSERVADO,
        RequestStatus.APROBADO,
        RequestStatus.RECHAZADO,
    }),
    RequestStatus.OBSERVADO: frozenset({
        RequestStatus.EN_VALIDACION,
        RequestStatus.APROBADO,
        RequestStatus.RECHAZADO,
    }),
    RequestStatus.APROBADO: frozenset({RequestStatus.EMITIDO}),
    RequestStatus.EMITIDO: frozenset(),
    RequestStatus.RECHAZADO: frozenset(),
}

PENDING_STATUSES = (
    RequestStatus.RECIBIDO,
    RequestStatus.EN_VALIDACION,
    RequestStatus.OBSERVADO,
)
APPROVED_STATUSES = (RequestStatus.APROBADO, RequestStatus.EMITIDO)


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def is_terminal(status: RequestStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def ensure_transition(current: RequestStatus, target: RequestStatus) -> None:
    """Raise InvalidTransitionError unless current → target is an edge."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def apply_transition(
    request: CertificateRequest,
    target: RequestStatus,
    actor_id: int,
    comment: str | None = None,
    now: datetime | None = None,
) -> StatusHistoryEntry:
    """
    Move ``request`` to ``target`` and return the history entry to append.

    The request is only touched after the edge is validated, so a rejected
    transition leaves it exactly as it was.
    """
    ensure_transition(request.status, target)
    now = now or utcnow()

    old_status = request.status
    request.status = target
    request.updated_at = now
    if target == RequestStatus.APROBADO and request.processed_at is None:
        request.processed_at = now
    if target == RequestStatus.EMITIDO:
        request.completed_at = now

    return StatusHistoryEntry(
        request_id=request.id,
        old_status=old_status,
        new_status=target,
        changed_by_id=actor_id,
        comment=comment,
        created_at=now,
    )
