import pytest

from docutrack.core.entities.certificate_request import RequestStatus
from docutrack.core.entities.user import UserRole
from docutrack.core.errors import ConcurrentTransitionError
from docutrack.core.use_cases.create_request import CreateRequestInput, CreateRequestUseCase
from docutrack.core.use_cases.transition_status import TransitionStatusUseCase
from docutrack.infrastructure.db.database import create_db_engine, create_session_factory, init_db
from docutrack.infrastructure.db.repository import RequestRepository, SqlRequestStore
from docutrack.infrastructure.storage.local_storage import LocalFileStorage


@pytest.fixture
def file_store(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(engine)
    factory = create_session_factory(engine)
    yield SqlRequestStore(factory), RequestRepository(factory), LocalFileStorage(tmp_path / "docs")
    engine.dispose()


def test_racing_transitions_only_one_commits(file_store, make_upload, make_user):
    store, repository, storage = file_store
    admin = repository.add_user(make_user(1, UserRole.ADMIN))
    citizen = repository.add_user(make_user(2))
    request = CreateRequestUseCase(store, storage).execute(CreateRequestInput(
        user_id=citizen.id,
        certificate_type="NACIMIENTO",
        reason="Trámite de pasaporte",
        documents=[make_upload()],
    )).request
    transition = TransitionStatusUseCase(store)

    with pytest.raises(ConcurrentTransitionError):
        with store.transaction() as tx:
            stale = tx.get_request(request.id)
            # a second admin commits first
            transition.execute(request.id, admin.id, "EN_VALIDACION")
            transition.apply_in(tx, stale, admin.id, RequestStatus.RECHAZADO, "duplicate")

    with store.transaction() as tx:
        assert tx.get_request(request.id).status == RequestStatus.EN_VALIDACION
        history = tx.list_history(request.id)
    assert [h.new_status for h in history] == [RequestStatus.RECIBIDO, RequestStatus.EN_VALIDACION]


def test_stale_copy_is_refused(new_request, store, transition_use_case, admin, history_of):
    request = new_request()
    with store.transaction() as tx:
        stale = tx.get_request(request.id)
    transition_use_case.execute(request.id, admin.id, "EN_VALIDACION")

    with pytest.raises(ConcurrentTransitionError) as exc:
        with store.transaction() as tx:
            transition_use_case.apply_in(tx, stale, admin.id, RequestStatus.RECHAZADO)

    assert exc.value.http_status == 409
    assert [h.new_status for h in history_of(request.id)] == [
        RequestStatus.RECIBIDO,
        RequestStatus.EN_VALIDACION,
    ]
