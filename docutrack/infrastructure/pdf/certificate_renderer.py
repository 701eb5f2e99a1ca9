"""
Adapter: ReportLab Certificate Renderer

Draws the official certificate of an issued request on one A4 page:
  1. Issuer header band
  2. Title by certificate type
  3. Certificate information (number, dates, status)
  4. Applicant data
  5. Request details (reason, urgency, attached document)
  6. Validation block with verification code
  7. Footer with the verification address, behind everything a faint watermark
"""

import hashlib
import io
import logging
from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from docutrack.core.entities.certificate_request import (
    CertificateRequest,
    CertificateType,
    Document,
    Urgency,
    utcnow,
)
from docutrack.core.entities.user import User
from docutrack.core.interfaces.certificate_renderer import ICertificateRenderer

logger = logging.getLogger(__name__)

TITLES = {
    CertificateType.NACIMIENTO: "CERTIFICADO DE NACIMIENTO",
    CertificateType.ESTUDIOS: "CERTIFICADO DE ESTUDIOS",
    CertificateType.RESIDENCIA: "CERTIFICADO DE RESIDENCIA",
    CertificateType.ANTECEDENTES: "CERTIFICADO DE ANTECEDENTES PENALES",
}

PRIMARY = colors.HexColor("#1e3a8a")
MUTED = colors.HexColor("#6b7280")
SUCCESS = colors.HexColor("#059669")
DANGER = colors.HexColor("#dc2626")
LIGHT = colors.HexColor("#f3f4f6")

MARGIN = 40


def emission_date(request: CertificateRequest) -> datetime:
    return request.completed_at or request.updated_at or utcnow()


def verification_code(request: CertificateRequest, salt: str = "DOCUTRACK") -> str:
    """
    XXXX-XXXX-XXXX from the first 12 hex chars of
    sha256("<id>-<number>-<emission epoch ms>-<salt>").
    """
    issued = emission_date(request)
    # stored datetimes are naive UTC
    epoch_ms = int((issued - datetime(1970, 1, 1)).total_seconds() * 1000)
    digest = hashlib.sha256(
        f"{request.id}-{request.request_number}-{epoch_ms}-{salt}".encode("utf-8")
    ).hexdigest()[:12].upper()
    return f"{digest[0:4]}-{digest[4:8]}-{digest[8:12]}"


def _date(value: datetime | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


class ReportLabCertificateRenderer(ICertificateRenderer):

    def __init__(
        self,
        issuer: str = "REPÚBLICA DE PANAMÁ",
        authority: str = "MINISTERIO DE GOBIERNO",
        verification_salt: str = "DOCUTRACK",
        verification_url: str = "www.docutrack.gob.pa/verificar",
        compress: bool = True,
    ):
        self._issuer = issuer
        self._authority = authority
        self._salt = verification_salt
        self._verification_url = verification_url
        self._compress = compress

    def render(
        self,
        request: CertificateRequest,
        user: User,
        documents: list[Document] | None = None,
    ) -> bytes:
        buffer = io.BytesIO()
        page_width, page_height = A4
        content_width = page_width - 2 * MARGIN

        pdf = canvas.Canvas(buffer, pagesize=A4, pageCompression=int(self._compress))
        pdf.setTitle(f"Certificado {request.certificate_type.value}")
        pdf.setSubject(f"Certificado {request.certificate_type.value} - {request.request_number}")
        pdf.setAuthor(self._authority)

        self._draw_watermark(pdf, page_width, page_height)
        y = page_height - MARGIN
        y = self._draw_header(pdf, y, content_width)
        y = self._draw_title(pdf, request, y, content_width)
        y = self._draw_certificate_info(pdf, request, y, content_width)
        y = self._draw_applicant(pdf, user, y, content_width)
        y = self._draw_details(pdf, request, documents or [], y, content_width)
        self._draw_validation(pdf, request, y, content_width)
        self._draw_footer(pdf, request, content_width)

        pdf.showPage()
        pdf.save()
        data = buffer.getvalue()
        logger.debug(f"Rendered certificate for {request.request_number} ({len(data)} bytes)")
        return data

    # ── Sections ─────────────────────────────────────────────

    def _draw_header(self, pdf: canvas.Canvas, y: float, width: float) -> float:
        height = 80
        pdf.setFillColor(PRIMARY)
        pdf.rect(MARGIN, y - height, width, height, stroke=0, fill=1)

        pdf.setFillColor(colors.white)
        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawString(MARGIN + 20, y - 28, self._issuer)
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(MARGIN + 20, y - 46, self._authority)
        pdf.setFont("Helvetica", 9)
        pdf.drawString(MARGIN + 20, y - 64, "Sistema DocuTrack - Gestión Digital de Trámites")
        pdf.drawRightString(MARGIN + width - 15, y - 20, f"Generado: {utcnow():%d/%m/%Y %H:%M} UTC")
        return y - height - 25

    def _draw_title(self, pdf: canvas.Canvas, request: CertificateRequest, y: float, width: float) -> float:
        title = TITLES.get(request.certificate_type, "CERTIFICADO OFICIAL")
        pdf.setFillColor(PRIMARY)
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawCentredString(MARGIN + width / 2, y - 20, title)
        pdf.setFillColor(MUTED)
        pdf.setFont("Helvetica-Oblique", 10)
        pdf.drawCentredString(MARGIN + width / 2, y - 38, "Documento Oficial con Validez Legal")
        return y - 65

    def _section(self, pdf: canvas.Canvas, label: str, y: float, width: float) -> float:
        pdf.setFillColor(PRIMARY)
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(MARGIN, y, label)
        pdf.setStrokeColor(PRIMARY)
        pdf.line(MARGIN, y - 4, MARGIN + width, y - 4)
        return y - 20

    def _field(self, pdf: canvas.Canvas, label: str, value: str, x: float, y: float, color=colors.black) -> None:
        pdf.setFillColor(MUTED)
        pdf.setFont("Helvetica", 8)
        pdf.drawString(x, y, label)
        pdf.setFillColor(color)
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(x, y - 12, value)

    def _draw_certificate_info(self, pdf, request: CertificateRequest, y: float, width: float) -> float:
        y = self._section(pdf, "INFORMACIÓN DEL CERTIFICADO", y, width)
        left, right = MARGIN + 20, MARGIN + width / 2 + 20
        self._field(pdf, "Número de Certificado:", request.request_number, left, y)
        self._field(pdf, "Fecha de Emisión:", _date(emission_date(request)), right, y)
        self._field(pdf, "Fecha de Solicitud:", _date(request.created_at), left, y - 35)
        self._field(pdf, "Estado:", request.status.value, right, y - 35, color=SUCCESS)
        return y - 75

    def _draw_applicant(self, pdf, user: User, y: float, width: float) -> float:
        y = self._section(pdf, "DATOS DEL SOLICITANTE", y, width)
        left, right = MARGIN + 20, MARGIN + width / 2 + 20
        self._field(pdf, "Nombre Completo:", user.full_name, left, y)
        self._field(pdf, "Cédula de Identidad:", user.national_id, right, y)
        self._field(pdf, "Correo Electrónico:", user.email, left, y - 35)
        self._field(pdf, "Teléfono:", user.phone or "No proporcionado", right, y - 35)
        return y - 75

    def _draw_details(self, pdf, request: CertificateRequest, documents: list[Document], y: float, width: float) -> float:
        y = self._section(pdf, "DETALLES DE LA SOLICITUD", y, width)
        pdf.setFillColor(MUTED)
        pdf.setFont("Helvetica", 8)
        pdf.drawString(MARGIN, y, "Motivo de la solicitud:")
        y -= 14

        pdf.setFillColor(colors.black)
        pdf.setFont("Helvetica", 10)
        for line in simpleSplit(request.reason, "Helvetica", 10, width - 20)[:6]:
            pdf.drawString(MARGIN + 10, y, line)
            y -= 13
        y -= 10

        urgent = request.urgency == Urgency.URGENTE
        self._field(
            pdf,
            "Tipo de procesamiento:",
            "PROCESAMIENTO URGENTE" if urgent else "PROCESAMIENTO NORMAL",
            MARGIN,
            y,
            color=DANGER if urgent else SUCCESS,
        )
        if documents:
            self._field(pdf, "Documento adjunto:", documents[0].original_name[:60], MARGIN + width / 2, y)
        return y - 45

    def _draw_validation(self, pdf, request: CertificateRequest, y: float, width: float) -> float:
        height = 80
        pdf.setFillColor(LIGHT)
        pdf.setStrokeColor(PRIMARY)
        pdf.rect(MARGIN, y - height, width, height, stroke=1, fill=1)

        pdf.setFillColor(PRIMARY)
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(MARGIN + 15, y - 18, "VALIDACIÓN OFICIAL Y SEGURIDAD")
        pdf.setFillColor(colors.black)
        pdf.setFont("Helvetica", 8)
        lines = (
            "Este certificado ha sido emitido digitalmente por el sistema DocuTrack y tiene validez",
            "legal según las normativas vigentes. Su autenticidad puede ser verificada.",
        )
        for i, line in enumerate(lines):
            pdf.drawString(MARGIN + 15, y - 34 - i * 10, line)

        pdf.setFont("Courier-Bold", 10)
        pdf.drawString(
            MARGIN + 15,
            y - 68,
            f"Código de Verificación: {verification_code(request, self._salt)}",
        )
        return y - height

    def _draw_footer(self, pdf, request: CertificateRequest, width: float) -> None:
        y = 80
        pdf.setStrokeColor(MUTED)
        pdf.setLineWidth(1)
        pdf.line(MARGIN, y, MARGIN + width, y)

        # QR placeholder
        size = 50
        x = MARGIN + width - size - 10
        pdf.setStrokeColor(PRIMARY)
        pdf.setFillColor(colors.white)
        pdf.rect(x, y - 5 - size, size, size, stroke=1, fill=1)
        pdf.setFillColor(PRIMARY)
        pdf.setFont("Helvetica-Bold", 8)
        pdf.drawCentredString(x + size / 2, y - 28, "QR")
        pdf.setFillColor(MUTED)
        pdf.setFont("Helvetica", 6)
        pdf.drawCentredString(x + size / 2, y - 38, "Verificar")

        text_center = MARGIN + (width - size - 20) / 2
        lines = (
            "Este documento fue generado automáticamente por el Sistema DocuTrack",
            f"{self._authority} - {self._issuer}",
            f"Para verificar autenticidad: {self._verification_url}",
        )
        pdf.setFont("Helvetica", 7)
        for i, line in enumerate(lines):
            pdf.drawCentredString(text_center, y - 16 - i * 10, line)

        pdf.setFillColor(colors.HexColor("#d1d5db"))
        pdf.setFont("Helvetica", 6)
        pdf.drawString(MARGIN, y - 52, f"ID: {request.id}")

    def _draw_watermark(self, pdf, page_width: float, page_height: float) -> None:
        pdf.saveState()
        pdf.setFillColor(PRIMARY)
        pdf.setFillAlpha(0.05)
        pdf.setFont("Helvetica-Bold", 60)
        pdf.translate(page_width / 2, page_height / 2)
        pdf.rotate(45)
        pdf.drawCentredString(0, -20, "DOCUTRACK")
        pdf.restoreState()
