"""
Application Settings.

Centralizes all configuration via .env / environment variables.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # --- App ---
    env: str = "development"
    debug: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    frontend_origins: list[str] = ["http://localhost:5173"]
    seed_demo_users: bool = True

    # --- Database ---
    database_url: str = "sqlite:///docutrack.db"

    # --- Uploads ---
    upload_dir: str = "uploads/documents"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_documents: int = 5
    allowed_mime_types: list[str] = [
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
    ]
    reason_min_length: int = 10
    reason_max_length: int = 500

    # --- Certificates ---
    certificates_dir: str = "certificates"
    certificate_issuer: str = "REPÚBLICA DE PANAMÁ"
    certificate_authority: str = "MINISTERIO DE GOBIERNO"
    verification_salt: str = "DOCUTRACK"
    verification_url: str = "www.docutrack.gob.pa/verificar"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
