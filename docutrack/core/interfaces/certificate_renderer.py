"""
Contract: Certificate Renderer

Turns an issued request into the PDF handed to the citizen.
Pure function of its inputs: it writes nothing anywhere.
"""

from abc import ABC, abstractmethod

from docutrack.core.entities.certificate_request import CertificateRequest, Document
from docutrack.core.entities.user import User


class ICertificateRenderer(ABC):

    @abstractmethod
    def render(
        self,
        request: CertificateRequest,
        user: User,
        documents: list[Document] | None = None,
    ) -> bytes:
        """Return the certificate as PDF bytes."""
        ...
