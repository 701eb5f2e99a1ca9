"""
Database Models — SQLAlchemy.

Tables:
  - users: citizens and administrators
  - certificate_requests: one row per request, optimistic version counter
  - documents: supporting files of a request
  - status_history: append-only audit trail of status changes
"""

from sqlalchemy import (
    Column, String, Integer, BigInteger, Boolean, DateTime, Text, Enum,
    ForeignKey, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship

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


class Base(DeclarativeBase):
    pass


def _enum(enum_cls):
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


class UserRecord(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    national_id = Column(String(30), unique=True, nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(_enum(UserRole), nullable=False, default=UserRole.USER)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    requests = relationship("CertificateRequestRecord", back_populates="user")

    def __repr__(self):
        return f"<User {self.id} {self.email} [{self.role}]>"

    @classmethod
    def from_entity(cls, user: User) -> "UserRecord":
        return cls(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            first_name=user.first_name,
            last_name=user.last_name,
            national_id=user.national_id,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_entity(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            password_hash=self.password_hash,
            first_name=self.first_name,
            last_name=self.last_name,
            national_id=self.national_id,
            phone=self.phone,
            role=self.role,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CertificateRequestRecord(Base):
    __tablename__ = "certificate_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_number = Column(String(40), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    certificate_type = Column(_enum(CertificateType), nullable=False)
    reason = Column(Text, nullable=False)
    urgency = Column(_enum(Urgency), nullable=False, default=Urgency.NORMAL)
    status = Column(_enum(RequestStatus), nullable=False, default=RequestStatus.RECIBIDO, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)

    user = relationship("UserRecord", back_populates="requests")
    documents = relationship("DocumentRecord", back_populates="request", order_by="DocumentRecord.id")
    history = relationship("StatusHistoryRecord", back_populates="request", order_by="StatusHistoryRecord.id")

    # UPDATE ... WHERE version = <read version>; zero rows means a lost race
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<CertificateRequest {self.request_number} [{self.status}]>"

    @classmethod
    def from_entity(cls, request: CertificateRequest) -> "CertificateRequestRecord":
        return cls(
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
        )

    def to_entity(self) -> CertificateRequest:
        return CertificateRequest(
            id=self.id,
            request_number=self.request_number,
            user_id=self.user_id,
            certificate_type=self.certificate_type,
            reason=self.reason,
            urgency=self.urgency,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            processed_at=self.processed_at,
            completed_at=self.completed_at,
            version=self.version,
        )


class DocumentRecord(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("certificate_requests.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(100), nullable=False)
    uploaded_at = Column(DateTime, default=utcnow, nullable=False)

    request = relationship("CertificateRequestRecord", back_populates="documents")

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentRecord":
        return cls(
            request_id=document.request_id,
            file_name=document.file_name,
            original_name=document.original_name,
            file_path=document.file_path,
            file_size=document.file_size,
            mime_type=document.mime_type,
            uploaded_at=document.uploaded_at,
        )

    def to_entity(self) -> Document:
        return Document(
            id=self.id,
            request_id=self.request_id,
            file_name=self.file_name,
            original_name=self.original_name,
            file_path=self.file_path,
            file_size=self.file_size,
            mime_type=self.mime_type,
            uploaded_at=self.uploaded_at,
        )


class StatusHistoryRecord(Base):
    """Written once, never updated."""
    __tablename__ = "status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("certificate_requests.id"), nullable=False)
    old_status = Column(_enum(RequestStatus), nullable=False)
    new_status = Column(_enum(RequestStatus), nullable=False)
    comment = Column(Text, nullable=True)
    changed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    request = relationship("CertificateRequestRecord", back_populates="history")
    changed_by = relationship("UserRecord")

    __table_args__ = (
        Index("ix_status_history_request_created", "request_id", "created_at"),
    )

    @classmethod
    def from_entity(cls, entry: StatusHistoryEntry) -> "StatusHistoryRecord":
        return cls(
            request_id=entry.request_id,
            old_status=entry.old_status,
            new_status=entry.new_status,
            comment=entry.comment,
            changed_by_id=entry.changed_by_id,
            created_at=entry.created_at,
        )

    def to_entity(self) -> StatusHistoryEntry:
        return StatusHistoryEntry(
            id=self.id,
            request_id=self.request_id,
            old_status=self.old_status,
            new_status=self.new_status,
            comment=self.comment,
            changed_by_id=self.changed_by_id,
            created_at=self.created_at,
        )
