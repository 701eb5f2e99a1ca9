import pytest
from fastapi.testclient import TestClient

from docutrack.api.main import create_app
from docutrack.config.settings import Settings
from docutrack.core.entities.user import User, UserRole
from docutrack.core.use_cases.cancel_request import CancelRequestUseCase
from docutrack.core.use_cases.create_request import (
    CreateRequestInput,
    CreateRequestUseCase,
    UploadedFile,
)
from docutrack.core.use_cases.transition_status import TransitionStatusUseCase
from docutrack.infrastructure.db.database import create_db_engine, create_session_factory, init_db
from docutrack.infrastructure.db.repository import RequestRepository, SqlRequestStore
from docutrack.infrastructure.storage.local_storage import LocalFileStorage


def build_user(n: int, role: UserRole = UserRole.USER) -> User:
    return User(
        email=f"user{n}@example.com",
        first_name=f"Nombre{n}",
        last_name=f"Apellido{n}",
        national_id=f"8-{n:03d}-{n:04d}",
        phone="+507 6000-0000",
        role=role,
    )


@pytest.fixture
def make_user():
    return build_user


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SqlRequestStore(session_factory)


@pytest.fixture
def repository(session_factory):
    return RequestRepository(session_factory)


@pytest.fixture
def document_storage(tmp_path):
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture
def admin(repository):
    return repository.add_user(build_user(1, UserRole.ADMIN))


@pytest.fixture
def citizen(repository):
    return repository.add_user(build_user(2))


@pytest.fixture
def other_citizen(repository):
    return repository.add_user(build_user(3))


@pytest.fixture
def make_upload():
    def _make(name="cedula.pdf", content=b"%PDF-1.4 supporting document", content_type="application/pdf"):
        return UploadedFile(original_name=name, content=content, content_type=content_type)
    return _make


@pytest.fixture
def create_use_case(store, document_storage):
    return CreateRequestUseCase(store, document_storage)


@pytest.fixture
def transition_use_case(store):
    return TransitionStatusUseCase(store)


@pytest.fixture
def cancel_use_case(store, transition_use_case):
    return CancelRequestUseCase(store, transition_use_case)


@pytest.fixture
def new_request(create_use_case, citizen, make_upload):
    """Create a RECIBIDO request owned by ``citizen``."""
    def _create(**overrides):
        data = CreateRequestInput(
            user_id=overrides.pop("user_id", citizen.id),
            certificate_type=overrides.pop("certificate_type", "NACIMIENTO"),
            reason=overrides.pop("reason", "Trámite de pasaporte en el extranjero"),
            urgency=overrides.pop("urgency", None),
            documents=overrides.pop("documents", None) or [make_upload()],
        )
        return create_use_case.execute(data).request
    return _create


@pytest.fixture
def load(store):
    def _load(request_id):
        with store.transaction() as tx:
            return tx.get_request(request_id)
    return _load


@pytest.fixture
def history_of(store):
    def _history(request_id):
        with store.transaction() as tx:
            return tx.list_history(request_id)
    return _history


# ── API ──

@pytest.fixture
def app_settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        upload_dir=str(tmp_path / "api_uploads"),
        certificates_dir=str(tmp_path / "api_certificates"),
        seed_demo_users=False,
        debug=False,
    )


@pytest.fixture
def client(app_settings):
    app = create_app(app_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_users(client):
    repository = client.app.state.services.repository
    admin = repository.add_user(build_user(10, UserRole.ADMIN))
    citizen = repository.add_user(build_user(11))
    other = repository.add_user(build_user(12))
    return {
        "admin": {"X-Actor-Id": str(admin.id)},
        "citizen": {"X-Actor-Id": str(citizen.id)},
        "other": {"X-Actor-Id": str(other.id)},
    }
