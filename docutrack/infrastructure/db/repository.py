"""
Request Repository — SQLAlchemy adapter of the request store.

Handles:
  - Transactional reads/writes used by the workflow use cases
  - Listing/filtering requests for citizens and administrators
  - Dashboard statistics
  - Account listing, profiles and activation
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Iterator

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    CertificateType,
    Document,
    RequestStatus,
    StatusHistoryEntry,
    Urgency,
    utcnow,
)
from docutrack.core.entities.user import User, UserRole
from docutrack.core.entities.workflow import APPROVED_STATUSES, PENDING_STATUSES
from docutrack.core.errors import ConcurrentTransitionError, NotFoundError, StorageFailure
from docutrack.core.interfaces.request_store import IRequestStore, IRequestTransaction
from docutrack.infrastructure.db.database import session_scope
from docutrack.infrastructure.db.models import (
    CertificateRequestRecord,
    DocumentRecord,
    StatusHistoryRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Surface database failures as StorageFailure, races as ConcurrentTransitionError."""
    try:
        yield
    except StaleDataError as e:
        raise ConcurrentTransitionError(
            "The request was modified by another operation, reload and retry"
        ) from e
    except SQLAlchemyError as e:
        raise StorageFailure(f"Database operation failed: {e.__class__.__name__}") from e


USER_SEARCH_COLUMNS = (
    UserRecord.first_name,
    UserRecord.last_name,
    UserRecord.email,
    UserRecord.national_id,
)


def _contains(text: str, *columns):
    """Case-insensitive substring match; LIKE wildcards in ``text`` match literally."""
    escaped = text.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(*(column.ilike(pattern, escape="\\") for column in columns))


class SqlRequestTransaction(IRequestTransaction):
    """Store operations bound to one open session."""

    def __init__(self, session: Session):
        self._session = session

    def get_request(self, request_id: int, for_update: bool = False) -> CertificateRequest | None:
        stmt = select(CertificateRequestRecord).where(CertificateRequestRecord.id == request_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        record = self._session.execute(stmt).scalar_one_or_none()
        return record.to_entity() if record else None

    def add_request(self, request: CertificateRequest) -> CertificateRequest:
        record = CertificateRequestRecord.from_entity(request)
        self._session.add(record)
        self._session.flush()
        return record.to_entity()

    def update_request(self, request: CertificateRequest) -> CertificateRequest:
        record = self._session.get(CertificateRequestRecord, request.id)
        if record is None:
            raise NotFoundError(f"Request {request.id} not found")
        if record.version != request.version:
            raise ConcurrentTransitionError(
                f"Request {request.request_number} changed since it was read "
                f"(version {request.version} → {record.version})"
            )
        record.status = request.status
        record.updated_at = request.updated_at
        record.processed_at = request.processed_at
        record.completed_at = request.completed_at
        self._session.flush()
        request.version = record.version
        return request

    def add_document(self, document: Document) -> Document:
        record = DocumentRecord.from_entity(document)
        self._session.add(record)
        self._session.flush()
        return record.to_entity()

    def add_history(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        record = StatusHistoryRecord.from_entity(entry)
        self._session.add(record)
        self._session.flush()
        return record.to_entity()

    def list_history(self, request_id: int) -> list[StatusHistoryEntry]:
        stmt = (
            select(StatusHistoryRecord)
            .where(StatusHistoryRecord.request_id == request_id)
            .order_by(StatusHistoryRecord.created_at, StatusHistoryRecord.id)
        )
        return [r.to_entity() for r in self._session.execute(stmt).scalars()]

    def list_documents(self, request_id: int) -> list[Document]:
        stmt = (
            select(DocumentRecord)
            .where(DocumentRecord.request_id == request_id)
            .order_by(DocumentRecord.id)
        )
        return [r.to_entity() for r in self._session.execute(stmt).scalars()]

    def get_user(self, user_id: int) -> User | None:
        record = self._session.get(UserRecord, user_id)
        return record.to_entity() if record else None

    def list_issued_before(self, cutoff: datetime) -> list[CertificateRequest]:
        stmt = select(CertificateRequestRecord).where(
            CertificateRequestRecord.status == RequestStatus.EMITIDO,
            CertificateRequestRecord.completed_at < cutoff,
        )
        return [r.to_entity() for r in self._session.execute(stmt).scalars()]


class SqlRequestStore(IRequestStore):
    """Request store over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[SqlRequestTransaction]:
        with translate_errors():
            with session_scope(self._session_factory) as session:
                yield SqlRequestTransaction(session)


# ── Read side ──

@dataclass
class RequestView:
    """A request with the related rows a screen needs."""
    request: CertificateRequest
    user: User | None = None
    documents: list[Document] = field(default_factory=list)
    history: list[StatusHistoryEntry] = field(default_factory=list)
    history_count: int = 0


@dataclass
class RequestPage:
    items: list[RequestView]
    page: int
    limit: int
    total: int
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class UserView:
    """An account with its request count and, on detail, latest requests."""
    user: User
    request_count: int = 0
    recent_requests: list[CertificateRequest] = field(default_factory=list)


@dataclass
class UserPage:
    items: list[UserView]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class RequestRepository:
    """Read queries and account bookkeeping outside the workflow."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with translate_errors():
            with session_scope(self._session_factory) as session:
                yield session

    # ── Users ──

    def add_user(self, user: User) -> User:
        with self._session() as db:
            record = UserRecord.from_entity(user)
            db.add(record)
            db.flush()
            logger.info(f"Saved user {record.id} <{record.email}> [{record.role.value}]")
            return record.to_entity()

    def get_user(self, user_id: int) -> User | None:
        with self._session() as db:
            record = db.get(UserRecord, user_id)
            return record.to_entity() if record else None

    def count_users(self, role: UserRole | None = None) -> int:
        with self._session() as db:
            stmt = select(func.count(UserRecord.id))
            if role:
                stmt = stmt.where(UserRecord.role == role)
            return db.execute(stmt).scalar_one()

    def get_user_view(self, user_id: int, recent: int = 0) -> UserView | None:
        """Account with its request count and up to ``recent`` newest requests."""
        with self._session() as db:
            record = db.get(UserRecord, user_id)
            if record is None:
                return None
            count = db.execute(
                select(func.count(CertificateRequestRecord.id))
                .where(CertificateRequestRecord.user_id == user_id)
            ).scalar_one()
            latest = []
            if recent:
                latest = db.execute(
                    select(CertificateRequestRecord)
                    .where(CertificateRequestRecord.user_id == user_id)
                    .order_by(CertificateRequestRecord.created_at.desc(), CertificateRequestRecord.id.desc())
                    .limit(recent)
                ).scalars().all()
            return UserView(
                user=record.to_entity(),
                request_count=count,
                recent_requests=[r.to_entity() for r in latest],
            )

    def list_users(self, page: int = 1, limit: int = 10, search: str | None = None) -> UserPage:
        """All accounts, newest first, searchable by name, email and national ID."""
        page = max(page, 1)
        with self._session() as db:
            filters = [_contains(search, *USER_SEARCH_COLUMNS)] if search else []
            total = db.execute(select(func.count(UserRecord.id)).where(*filters)).scalar_one()

            counts = (
                select(
                    CertificateRequestRecord.user_id,
                    func.count(CertificateRequestRecord.id).label("n"),
                )
                .group_by(CertificateRequestRecord.user_id)
                .subquery()
            )
            stmt = (
                select(UserRecord, func.coalesce(counts.c.n, 0))
                .outerjoin(counts, counts.c.user_id == UserRecord.id)
                .where(*filters)
                .order_by(UserRecord.created_at.desc(), UserRecord.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = [
                UserView(user=record.to_entity(), request_count=n)
                for record, n in db.execute(stmt).all()
            ]
            return UserPage(items=items, page=page, limit=limit, total=total)

    def update_profile(
        self,
        user_id: int,
        first_name: str | None = None,
        last_name: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Change the editable profile fields; ``None`` leaves a field as it is."""
        with self._session() as db:
            record = db.get(UserRecord, user_id)
            if record is None:
                raise NotFoundError(f"User {user_id} not found")
            if first_name is not None:
                record.first_name = first_name
            if last_name is not None:
                record.last_name = last_name
            if phone is not None:
                record.phone = phone
            record.updated_at = utcnow()
            db.flush()
            logger.info(f"Updated profile of user {user_id}")
            return record.to_entity()

    def set_user_active(self, user_id: int, active: bool) -> User:
        with self._session() as db:
            record = db.get(UserRecord, user_id)
            if record is None:
                raise NotFoundError(f"User {user_id} not found")
            record.is_active = active
            record.updated_at = utcnow()
            db.flush()
            logger.info(f"User {user_id} {'activated' if active else 'deactivated'}")
            return record.to_entity()

    # ── Requests ──

    def count_requests(self) -> int:
        with self._session() as db:
            return db.execute(select(func.count(CertificateRequestRecord.id))).scalar_one()

    def list_requests(
        self,
        page: int = 1,
        limit: int = 10,
        user_id: int | None = None,
        status: RequestStatus | None = None,
        certificate_type: CertificateType | None = None,
        urgency: Urgency | None = None,
        search: str | None = None,
        urgent_first: bool = False,
        with_stats: bool = False,
    ) -> RequestPage:
        """List requests, newest first, with optional filters and free-text search."""
        page = max(page, 1)
        with self._session() as db:
            filters = []
            if user_id is not None:
                filters.append(CertificateRequestRecord.user_id == user_id)
            if status:
                filters.append(CertificateRequestRecord.status == status)
            if certificate_type:
                filters.append(CertificateRequestRecord.certificate_type == certificate_type)
            if urgency:
                filters.append(CertificateRequestRecord.urgency == urgency)
            if search:
                filters.append(or_(
                    _contains(search, CertificateRequestRecord.request_number),
                    CertificateRequestRecord.user.has(_contains(search, *USER_SEARCH_COLUMNS)),
                ))

            total = db.execute(
                select(func.count(CertificateRequestRecord.id)).where(*filters)
            ).scalar_one()

            order_by = [CertificateRequestRecord.created_at.desc(), CertificateRequestRecord.id.desc()]
            if urgent_first:
                order_by.insert(0, case((CertificateRequestRecord.urgency == Urgency.URGENTE, 0), else_=1))

            stmt = (
                select(CertificateRequestRecord)
                .where(*filters)
                .options(
                    selectinload(CertificateRequestRecord.user),
                    selectinload(CertificateRequestRecord.documents),
                    selectinload(CertificateRequestRecord.history),
                )
                .order_by(*order_by)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = []
            for record in db.execute(stmt).scalars():
                history = [h.to_entity() for h in record.history]
                items.append(RequestView(
                    request=record.to_entity(),
                    user=record.user.to_entity() if record.user else None,
                    documents=[d.to_entity() for d in record.documents],
                    history=history[-1:],
                    history_count=len(history),
                ))

            stats = self._count_by(db, CertificateRequestRecord.status) if with_stats else {}
            return RequestPage(items=items, page=page, limit=limit, total=total, stats=stats)

    def get_request_view(self, request_id: int, user_id: int | None = None) -> RequestView | None:
        """
        One request with user, documents and full history (newest first).
        With ``user_id``, requests owned by someone else are not returned.
        """
        with self._session() as db:
            record = db.get(CertificateRequestRecord, request_id)
            if record is None or (user_id is not None and record.user_id != user_id):
                return None
            history = sorted(
                (h.to_entity() for h in record.history),
                key=lambda h: (h.created_at, h.id),
                reverse=True,
            )
            return RequestView(
                request=record.to_entity(),
                user=record.user.to_entity(),
                documents=[d.to_entity() for d in record.documents],
                history=history,
                history_count=len(history),
            )

    def get_document(self, request_id: int, document_id: int) -> Document | None:
        with self._session() as db:
            record = db.execute(
                select(DocumentRecord).where(
                    DocumentRecord.id == document_id,
                    DocumentRecord.request_id == request_id,
                )
            ).scalar_one_or_none()
            return record.to_entity() if record else None

    def get_dashboard_stats(self, now: datetime | None = None) -> dict:
        """Aggregated counters for the admin dashboard."""
        today_start = datetime.combine((now or utcnow()).date(), time.min)
        with self._session() as db:
            def count(*criteria) -> int:
                return db.execute(
                    select(func.count(CertificateRequestRecord.id)).where(*criteria)
                ).scalar_one()

            recent = db.execute(
                select(CertificateRequestRecord)
                .options(selectinload(CertificateRequestRecord.user))
                .order_by(CertificateRequestRecord.created_at.desc(), CertificateRequestRecord.id.desc())
                .limit(5)
            ).scalars().all()

            return {
                "stats": {
                    "total": count(),
                    "pending": count(CertificateRequestRecord.status.in_(PENDING_STATUSES)),
                    "approved": count(CertificateRequestRecord.status.in_(APPROVED_STATUSES)),
                    "rejected": count(CertificateRequestRecord.status == RequestStatus.RECHAZADO),
                    "today": count(CertificateRequestRecord.created_at >= today_start),
                },
                "by_type": self._count_by(db, CertificateRequestRecord.certificate_type),
                "by_status": self._count_by(db, CertificateRequestRecord.status),
                "recent": [
                    RequestView(request=r.to_entity(), user=r.user.to_entity()) for r in recent
                ],
            }

    @staticmethod
    def _count_by(db: Session, column) -> dict[str, int]:
        rows = db.execute(select(column, func.count()).group_by(column)).all()
        return {key.value: n for key, n in rows}
