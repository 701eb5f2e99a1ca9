import dataclasses
import itertools

import pytest

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    CertificateType,
    RequestStatus,
)
from docutrack.core.entities.workflow import (
    ALLOWED_TRANSITIONS,
    apply_transition,
    can_transition,
    ensure_transition,
    is_terminal,
)
from docutrack.core.errors import InvalidTransitionError

LEGAL_EDGES = {
    (RequestStatus.RECIBIDO, RequestStatus.EN_VALIDACION),
    (RequestStatus.RECIBIDO, RequestStatus.RECHAZADO),
    (RequestStatus.EN_VALIDACION, RequestStatus.OBSERVADO),
    (RequestStatus.EN_VALIDACION, RequestStatus.APROBADO),
    (RequestStatus.EN_VALIDACION, RequestStatus.RECHAZADO),
    (RequestStatus.OBSERVADO, RequestStatus.EN_VALIDACION),
    (RequestStatus.OBSERVADO, RequestStatus.APROBADO),
    (RequestStatus.OBSERVADO, RequestStatus.RECHAZADO),
    (RequestStatus.APROBADO, RequestStatus.EMITIDO),
}


def _request(status=RequestStatus.RECIBIDO) -> CertificateRequest:
    return CertificateRequest(
        id=1,
        request_number="DOC-1-ABCDEF12",
        user_id=1,
        certificate_type=CertificateType.RESIDENCIA,
        reason="Cambio de domicilio",
        status=status,
    )


def test_transition_table_covers_every_status():
    assert set(ALLOWED_TRANSITIONS) == set(RequestStatus)


@pytest.mark.parametrize("current,target", list(itertools.product(RequestStatus, RequestStatus)))
def test_only_listed_edges_are_legal(current, target):
    assert can_transition(current, target) == ((current, target) in LEGAL_EDGES)


def test_terminal_states():
    assert is_terminal(RequestStatus.EMITIDO)
    assert is_terminal(RequestStatus.RECHAZADO)
    assert not any(is_terminal(s) for s in RequestStatus if s not in (RequestStatus.EMITIDO, RequestStatus.RECHAZADO))


def test_ensure_transition_reports_both_states():
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition(RequestStatus.RECIBIDO, RequestStatus.EMITIDO)

    assert "RECIBIDO → EMITIDO" in str(exc.value)
    assert exc.value.from_status == RequestStatus.RECIBIDO
    assert exc.value.to_status == RequestStatus.EMITIDO


def test_rejected_transition_leaves_request_untouched():
    request = _request()
    before = dataclasses.replace(request)

    with pytest.raises(InvalidTransitionError):
        apply_transition(request, RequestStatus.APROBADO, actor_id=9)

    assert request == before


def test_apply_transition_stamps_timestamps_and_builds_history():
    request = _request(RequestStatus.EN_VALIDACION)

    entry = apply_transition(request, RequestStatus.APROBADO, actor_id=9, comment="ok")

    assert request.status == RequestStatus.APROBADO
    assert request.processed_at is not None
    assert request.completed_at is None
    assert request.updated_at == request.processed_at
    assert (entry.old_status, entry.new_status) == (RequestStatus.EN_VALIDACION, RequestStatus.APROBADO)
    assert entry.changed_by_id == 9
    assert entry.comment == "ok"
    assert entry.request_id == 1

    first_processed = request.processed_at
    apply_transition(request, RequestStatus.EMITIDO, actor_id=9)
    assert request.completed_at is not None
    assert request.processed_at == first_processed


def test_observed_and_back_does_not_set_processed_at():
    request = _request(RequestStatus.EN_VALIDACION)

    apply_transition(request, RequestStatus.OBSERVADO, actor_id=9)
    apply_transition(request, RequestStatus.EN_VALIDACION, actor_id=9)

    assert request.processed_at is None
    assert request.completed_at is None
