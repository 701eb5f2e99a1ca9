"""
Entity: Certificate Request

A citizen's request for an official certificate, its supporting documents
and the append-only audit trail of its status changes.
Pure model — no framework or database dependency.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class RequestStatus(str, Enum):
    RECIBIDO = "RECIBIDO"
    EN_VALIDACION = "EN_VALIDACION"
    OBSERVADO = "OBSERVADO"
    APROBADO = "APROBADO"
    EMITIDO = "EMITIDO"
    RECHAZADO = "RECHAZADO"


class CertificateType(str, Enum):
    NACIMIENTO = "NACIMIENTO"
    ESTUDIOS = "ESTUDIOS"
    RESIDENCIA = "RESIDENCIA"
    ANTECEDENTES = "ANTECEDENTES"


class Urgency(str, Enum):
    NORMAL = "NORMAL"
    URGENTE = "URGENTE"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every stored datetime uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_request_number() -> str:
    """DOC-<epoch ms>-<8 random hex chars>, e.g. DOC-1718900000000-9F2A61C4."""
    return f"DOC-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


@dataclass
class Document:
    """A supporting file uploaded with a request."""
    file_name: str                      # key in the file storage
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    request_id: int | None = None
    id: int | None = None
    uploaded_at: datetime = field(default_factory=utcnow)


@dataclass
class StatusHistoryEntry:
    """One status change. Never updated or deleted once written."""
    request_id: int | None
    old_status: RequestStatus
    new_status: RequestStatus
    changed_by_id: int
    comment: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class CertificateRequest:
    """Domain entity: certificate request."""
    request_number: str
    user_id: int
    certificate_type: CertificateType
    reason: str
    urgency: Urgency = Urgency.NORMAL
    status: RequestStatus = RequestStatus.RECIBIDO
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None   # first time APROBADO was reached
    completed_at: datetime | None = None   # set iff status is EMITIDO
    version: int = 1
