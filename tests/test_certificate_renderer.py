import re
from datetime import datetime

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    CertificateType,
    Document,
    RequestStatus,
)
from docutrack.core.entities.user import User
from docutrack.infrastructure.pdf.certificate_renderer import (
    ReportLabCertificateRenderer,
    verification_code,
)


def _issued_request() -> CertificateRequest:
    return CertificateRequest(
        id=7,
        request_number="DOC-1718900000000-9F2A61C4",
        user_id=3,
        certificate_type=CertificateType.ANTECEDENTES,
        reason="Requisito para contratación en el sector público",
        status=RequestStatus.EMITIDO,
        created_at=datetime(2024, 6, 1, 9, 0),
        processed_at=datetime(2024, 6, 2, 10, 0),
        completed_at=datetime(2024, 6, 3, 11, 30),
    )


def _user() -> User:
    return User(
        id=3,
        email="maria@example.com",
        first_name="María",
        last_name="González",
        national_id="8-123-4567",
    )


def test_render_produces_pdf():
    renderer = ReportLabCertificateRenderer()
    documents = [Document(file_name="k", original_name="cedula.pdf", file_path="/x", file_size=10, mime_type="application/pdf")]

    content = renderer.render(_issued_request(), _user(), documents)

    assert content.startswith(b"%PDF")
    assert len(content) > 1000


def test_verification_code_format_and_stability():
    request = _issued_request()

    code = verification_code(request, "salt")

    assert re.fullmatch(r"[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}", code)
    assert verification_code(request, "salt") == code
    assert verification_code(request, "other") != code


def test_render_draws_footer_and_watermark():
    renderer = ReportLabCertificateRenderer(verification_url="verify.example.org/check", compress=False)

    content = renderer.render(_issued_request(), _user())

    assert b"(DOCUTRACK)" in content
    assert b"verify.example.org/check" in content
    assert b"(ID: 7)" in content
