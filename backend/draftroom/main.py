"""FastAPI application entry point and lifespan management.

Configures CORS, registers API routers and error handlers, and manages
the application lifespan (storage directory, table creation, bootstrap
admin). ``create_app`` takes explicit settings and database objects so
tests and alternative deployments can inject their own.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from draftroom.api.v1.router import router as v1_router
from draftroom.config import Settings, get_settings
from draftroom.database import Database
from draftroom.errors import DraftroomError, InternalError, ValidationFailedError
from draftroom.schemas.common import HealthResponse
from draftroom.utils.startup import ensure_admin_user

logger = logging.getLogger(__name__)

JSON_UTF8 = "application/json; charset=utf-8"


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy third-party HTTP loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _validation_details(exc: RequestValidationError) -> dict[str, list[str]]:
    details: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.setdefault(".".join(loc) or "body", []).append(err.get("msg", "Invalid value"))
    return details


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs on startup: create the storage directory, tables and admin account."""
    settings: Settings = app.state.settings
    database: Database = app.state.database
    _setup_logging(settings.LOG_LEVEL)

    database.ensure_storage_dir()
    database.create_tables()
    logger.info("Database tables ready")

    ensure_admin_user(settings, database)

    yield  # Application runs here

    database.dispose()
    logger.info("Shutting down")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        serialize_writes=settings.SQLITE_SERIALIZE_WRITES,
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # UTF-8 Content-Type enforcement for JSON and text responses
    @app.middleware("http")
    async def enforce_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        ct = response.headers.get("content-type", "")
        if ("charset" not in ct) and any(
            t in ct for t in ("application/json", "text/html", "text/plain")
        ):
            response.headers["content-type"] = ct + "; charset=utf-8"
        return response

    @app.exception_handler(DraftroomError)
    async def domain_error_handler(request: Request, exc: DraftroomError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), media_type=JSON_UTF8)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationFailedError(details=_validation_details(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict(), media_type=JSON_UTF8)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error: {exc}")
        error = InternalError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict(), media_type=JSON_UTF8)

    # Health check
    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="healthy",
            version=settings.APP_VERSION,
            timestamp=datetime.now(timezone.utc),
        )

    # Mount API routes
    app.include_router(v1_router)

    return app


app = create_app()
