"""
msdata - Users microservice

FastAPI application exposing users CRUD over separate command and query
data paths, protected by OAuth2 bearer JWTs.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from msdata.api.router import api_router
from msdata.api.routes import health
from msdata.auth.jwt import JwtVerifier
from msdata.config import Settings, get_settings
from msdata.errors import ConflictError, DuplicateEmailError, NotFoundError, ValidationError
from msdata.infra.db.session import Database
from msdata.middleware.auth import JwtAuthMiddleware
from msdata.middleware.timeout import RequestTimeoutMiddleware
from msdata.services.user_service import UserService
from msdata.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    database: Database = app.state.database
    logger.info(f"Starting {settings.app_name} {settings.app_version}...")

    if settings.create_schema:
        await database.create_schema()

    yield

    await database.dispose()
    logger.info(f"Shutting down {settings.app_name}...")


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse({"detail": detail}, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors to HTTP status codes."""

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(request: Request, exc: DuplicateEmailError):
        return _error(409, str(exc))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return _error(409, str(exc))

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Data store failure on {request.method} {request.url.path}", exc_info=exc)
        return _error(503, "Data store unavailable")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    verifier = JwtVerifier.from_settings(settings)
    database = Database.from_settings(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Users CRUD with separate command and query data paths",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.user_service = UserService(database, max_page_size=settings.max_page_size)

    # Innermost first: auth, then the time limit, then CORS outermost
    app.add_middleware(
        JwtAuthMiddleware,
        verifier=verifier,
        public_paths=settings.public_paths,
        public_prefixes=settings.public_prefixes,
    )
    app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(api_router)

    logger.info(
        f"Command DB: {_safe_url(database.command_url)} | Query DB: {_safe_url(database.query_url)}"
    )
    return app


def _safe_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("msdata.main:create_app", factory=True, host="0.0.0.0", port=8080)
