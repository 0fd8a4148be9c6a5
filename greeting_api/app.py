"""FastAPI application factory for the Greeting API."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from greeting_api.core.config import Settings, get_settings
from greeting_api.core.logging import logger, setup_logging
from greeting_api.db.create_tables import create_all
from greeting_api.routers import auth as auth_router
from greeting_api.services.auth_service import INVALID_TOKEN_MSG, AuthError, AuthService


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline headers; responses may carry bearer tokens so they are never cached."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Cache-Control", "no-store")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def create_app(settings: Settings | None = None, auth_service: AuthService | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Greeting API")
    if auth_service is None:
        create_all()
        auth_service = AuthService(settings=settings)
    app.state.auth_service = auth_service
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError):
        logger.warning(f"Unauthorized {request.method} {request.url.path}")
        return JSONResponse(
            {"success": False, "message": INVALID_TOKEN_MSG, "data": None},
            status_code=401,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled exception on {request.method} {request.url.path}")
        return JSONResponse(
            {"success": False, "message": "An unexpected error occurred. Please try again later.", "data": None},
            status_code=500,
        )

    app.include_router(auth_router.router)
    logger.info(f"Greeting API ready (env={settings.app_env})")
    return app
