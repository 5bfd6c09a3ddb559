import os
import time
import uuid

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from socialapp.core.config import get_settings
from socialapp.core.errors import AppError
from socialapp.core.logging import configure_logging
from socialapp.repositories.avatar_storage import AvatarStorage, ensure_default_avatar
from socialapp.repositories.sql_repository import SQLRepository
from socialapp.routers import avatars as avatars_router
from socialapp.routers import users as users_router
from socialapp.routers.users import envelope
from socialapp.services.avatar_service import AvatarService
from socialapp.services.session_service import SessionService
from socialapp.services.user_service import UserService

logger = structlog.get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers on every JSON response."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One structured log line per request; the correlation id is added by the log processors."""

    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http.request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("http.app_error", path=request.url.path, error=str(exc), exc_info=exc)
    else:
        logger.info("http.client_error", path=request.url.path, status=exc.status_code, error=str(exc))
    return envelope(exc.message, status_code=exc.status_code, status="Error")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("http.unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
    return envelope("Internal server error", status_code=500, status="Error")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        messages.append(
            {
                "field": ".".join(loc),
                "validation": err.get("type", "invalid"),
                "message": err.get("msg", "Invalid value"),
            }
        )
    return envelope(messages, status_code=400, status="Error")


def create_app(
    *,
    repository: SQLRepository | None = None,
    storage: AvatarStorage | None = None,
) -> FastAPI:
    """Build the API with its services wired explicitly; usable by uvicorn's --factory."""
    settings = get_settings()
    configure_logging()

    os.makedirs(settings.user_store_dir, exist_ok=True)
    os.makedirs(settings.tmp_upload_dir, exist_ok=True)
    ensure_default_avatar(settings.default_avatar_path)

    repository = repository or SQLRepository()
    storage = storage or AvatarStorage(settings)
    avatar_service = AvatarService(repository=repository, storage=storage)
    session_service = SessionService(repository)

    app = FastAPI(title="socialapp API")
    app.state.avatar_service = avatar_service
    app.state.user_service = UserService(repository=repository, avatars=avatar_service, sessions=session_service)

    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        update_request_header=True,
    )
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(users_router.router)
    app.include_router(avatars_router.router)
    return app
