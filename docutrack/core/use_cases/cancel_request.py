"""
Use Case: Cancel Request

A citizen withdraws a request that nobody has started reviewing yet.
Cancellation is a transition to RECHAZADO; nothing is deleted.
"""

import logging

from docutrack.core.entities.certificate_request import CertificateRequest, RequestStatus
from docutrack.core.errors import InvalidStateError, NotFoundError
from docutrack.core.interfaces.request_store import IRequestStore
from docutrack.core.use_cases.transition_status import TransitionStatusUseCase

logger = logging.getLogger(__name__)

CANCEL_COMMENT = "cancelled by user"


class CancelRequestUseCase:

    def __init__(self, store: IRequestStore, transition: TransitionStatusUseCase | None = None):
        self._store = store
        self._transition = transition or TransitionStatusUseCase(store)

    def execute(self, request_id: int, user_id: int) -> CertificateRequest:
        with self._store.transaction() as tx:
            request = tx.get_request(request_id, for_update=True)
            # Other users' requests are indistinguishable from missing ones.
            if request is None or request.user_id != user_id:
                raise NotFoundError(f"Request {request_id} not found")
            if request.status != RequestStatus.RECIBIDO:
                raise InvalidStateError(
                    f"Only requests in {RequestStatus.RECIBIDO.value} can be cancelled "
                    f"(current status: {request.status.value})"
                )
            self._transition.apply_in(tx, request, user_id, RequestStatus.RECHAZADO, CANCEL_COMMENT)

        logger.info(f"Request {request.request_number} cancelled by user {user_id}")
        return request
