"""
FastAPI Application — DocuTrack.

Architecture:
  - Request workflow use cases (core) behind store/storage/renderer ports
  - SQLAlchemy store: SQLite (dev) / PostgreSQL (prod)
  - Local filesystem for uploads and generated certificates
  - ReportLab certificate renderer
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docutrack import __version__
from docutrack.api.deps import build_services
from docutrack.api.routes.admin import router as admin_router
from docutrack.api.routes.certificates import router as certificates_router
from docutrack.api.routes.requests import router as requests_router
from docutrack.api.routes.users import router as users_router
from docutrack.config.settings import Settings, get_settings
from docutrack.core.entities.user import User, UserRole
from docutrack.core.errors import DocuTrackError
from docutrack.infrastructure.db.database import init_db
from docutrack.infrastructure.db.repository import RequestRepository

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings)

    # ── Startup / shutdown ──
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(services.engine)
        if settings.seed_demo_users:
            _load_demo_users(services.repository)
        logger.info(f"DocuTrack API started [{settings.env}]")
        yield
        services.engine.dispose()
        logger.info("DocuTrack API stopped")

    app = FastAPI(
        title="DocuTrack",
        description="Certificate request tracking: submission, review workflow and certificate issuing.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Error handlers ──
    @app.exception_handler(DocuTrackError)
    async def docutrack_error_handler(request: Request, exc: DocuTrackError):
        if exc.http_status >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        message = exc.message if exc.http_status < 500 or settings.debug else "Internal server error"
        return JSONResponse(
            status_code=exc.http_status,
            content={"success": False, "error": exc.code, "message": message},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "VALIDATION_ERROR",
                "message": "Invalid data",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})

    # ── Routes ──
    app.include_router(requests_router)
    app.include_router(admin_router)
    app.include_router(certificates_router)
    app.include_router(users_router)

    @app.get("/health", tags=["Health"])
    async def health():
        db_type = "PostgreSQL" if "postgres" in settings.database_url else "SQLite"
        return {
            "status": "ok",
            "version": __version__,
            "environment": settings.env,
            "database": db_type,
            "requests_stored": services.repository.count_requests(),
        }

    return app


# ── Demo users ──
def _load_demo_users(repository: RequestRepository) -> None:
    """Create an admin and a citizen account on an empty database."""
    if repository.count_users() > 0:
        logger.info("Users already present, skipping demo users")
        return

    admin = repository.add_user(User(
        email="admin@docutrack.gob.pa",
        first_name="Administrador",
        last_name="DocuTrack",
        national_id="8-000-0001",
        role=UserRole.ADMIN,
    ))
    citizen = repository.add_user(User(
        email="ciudadano@example.com",
        first_name="María",
        last_name="González",
        national_id="8-123-4567",
        phone="+507 6000-0000",
    ))
    logger.info(f"Demo users created: admin id={admin.id}, citizen id={citizen.id}")


def run() -> None:
    """Entry point: serve the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("docutrack.api.main:app", host=settings.api_host, port=settings.api_port)


app = create_app()
