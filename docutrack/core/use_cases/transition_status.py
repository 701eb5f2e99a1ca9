"""
Use Case: Transition Status

Moves a request along the status workflow and records the change in its
history inside a single transaction. Admin-only at the API boundary; the
cancellation use case reuses ``apply_in`` for the user path.
"""

import logging

from docutrack.core.entities.certificate_request import CertificateRequest, RequestStatus
from docutrack.core.entities.workflow import apply_transition
from docutrack.core.errors import NotFoundError, ValidationError
from docutrack.core.interfaces.request_store import IRequestStore, IRequestTransaction

logger = logging.getLogger(__name__)


def parse_status(value: str | RequestStatus) -> RequestStatus:
    try:
        return RequestStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in RequestStatus)
        raise ValidationError(f"Unknown status '{value}'. Expected one of: {valid}") from None


class TransitionStatusUseCase:
    """
    Use Case: validate the edge, update the request, append the history row.

    The request is re-read (and locked where the backend allows it) inside
    the transaction, so legality is never judged against a stale status.
    """

    def __init__(self, store: IRequestStore):
        self._store = store

    def execute(
        self,
        request_id: int,
        actor_id: int,
        target_status: str | RequestStatus,
        comment: str | None = None,
    ) -> CertificateRequest:
        target = parse_status(target_status)
        with self._store.transaction() as tx:
            request = tx.get_request(request_id, for_update=True)
            if request is None:
                raise NotFoundError(f"Request {request_id} not found")
            self.apply_in(tx, request, actor_id, target, comment)
        return request

    def apply_in(
        self,
        tx: IRequestTransaction,
        request: CertificateRequest,
        actor_id: int,
        target: RequestStatus,
        comment: str | None = None,
    ) -> CertificateRequest:
        """Apply a transition to a request already read through ``tx``."""
        entry = apply_transition(request, target, actor_id, comment)
        tx.update_request(request)
        tx.add_history(entry)
        logger.info(
            f"Request {request.request_number}: {entry.old_status.value} → "
            f"{entry.new_status.value} by user {actor_id}"
        )
        return request
