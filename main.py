"""
main.py
-------
Builds the ClientDesk FastAPI application.

Request path, outermost first:
  CORS → signed cookie session → request context (logging) →
  selected-client re-validation → router.

Application errors are turned into responses by the handlers registered in
create_application(): authentication and authorization failures become
303 redirects (with a flash message for denials), validation problems a
422 body keyed by field, missing records a 404.

Run with:
    uvicorn main:app --reload

The selected client of each session is kept in process memory, keyed by
the session id in the cookie, so run a single worker.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from app.api.routes import auth, clients, dashboard, personnel, users
from app.api.web import INTENDED_KEY, flash, redirect_back, redirect_to
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationRequired,
    AuthorizationDenied,
    NotFoundError,
    ValidationError,
)
from app.core.logging import configure_logging, get_logger
from app.db.session import AsyncSessionLocal, engine
from app.middleware.request_context import RequestContextMiddleware
from app.middleware.selected_client import SelectedClientMiddleware
from app.services.selection import SelectionStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    configure_logging()
    logger.info("ClientDesk starting", env=settings.APP_ENV, debug=settings.DEBUG)
    yield
    await engine.dispose()
    logger.info("ClientDesk stopped")


def _field_name(loc: tuple) -> str:
    # ("body", "email") → "email"; ("body", "clients", 0, "client_id") → "clients.0.client_id"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts) or "__all__"


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant client administration with role and grant based "
            "access control and a session-scoped selected client."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Used by middleware that runs outside FastAPI's dependency system
    app.state.session_factory = AsyncSessionLocal
    app.state.selection_store = SelectionStore(max_age=settings.SESSION_MAX_AGE)

    # ── Middleware (last added runs first) ───────────────────────────────────
    app.add_middleware(SelectedClientMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        session_cookie=settings.SESSION_COOKIE,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(clients.router)
    app.include_router(users.router)
    app.include_router(personnel.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(AuthenticationRequired)
    async def authentication_required_handler(
        request: Request, exc: AuthenticationRequired
    ):
        if exc.intended_path and request.method == "GET":
            request.session[INTENDED_KEY] = exc.intended_path
        return redirect_to("/login")

    @app.exception_handler(AuthorizationDenied)
    async def authorization_denied_handler(request: Request, exc: AuthorizationDenied):
        logger.info(
            "Action denied",
            path=request.url.path,
            method=request.method,
            error=exc.error_code,
            reason=exc.message,
        )
        flash(request.session, "error", exc.message)
        return redirect_back(request)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message, **exc.details},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("Validation failed", error=exc.error_code, field=exc.field)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"errors": {exc.field: exc.message}},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors: dict[str, str] = {}
        for error in exc.errors():
            errors.setdefault(_field_name(tuple(error["loc"])), error["msg"])
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"errors": errors},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
