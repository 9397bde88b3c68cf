## src/service/service.py

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth.middleware import AuthMiddleware
from core import LoggingMiddleware, Settings, get_settings, load_registry, setup_logging
from core.errors import FileServerError, RangeNotSatisfiable
from schema import HealthResponse
from service.auth import router as auth_router
from service.files_router import router as files_router
from service.permissions import AllowAllDeletePolicy, DeletePolicy
from service.storage import ensure_upload_root

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    try:
        root = ensure_upload_root(settings)
    except OSError as e:
        logger.error(f"Could not prepare upload directory {settings.UPLOAD_DIR}: {e}")
        raise
    logger.info(
        "File server ready: root=%s clients=%s mode=%s",
        root,
        ",".join(sorted(app.state.registry.list_all())),
        settings.MODE,
    )
    yield


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": message, "code": status_code},
        status_code=status_code,
    )


async def file_server_error_handler(request: Request, exc: FileServerError) -> Response:
    if isinstance(exc, RangeNotSatisfiable):
        return Response(status_code=416, headers={"Content-Range": f"bytes */{exc.file_size}"})
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {field}: {first.get('msg')}" if field else f"Invalid request: {first.get('msg')}"
    else:
        message = "Invalid request"
    return _error_response(400, message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error")


def create_app(settings: Settings | None = None, *, delete_policy: DeletePolicy | None = None) -> FastAPI:
    """
    Build the file server. Settings, the tenant registry and the delete policy
    are created once here and shared with handlers through ``app.state``.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)
    registry = load_registry(settings)

    app = FastAPI(
        title="File Server",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev() else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.delete_policy = delete_policy or AllowAllDeletePolicy()
    app.state.started_at = time.monotonic()

    app.add_exception_handler(FileServerError, file_server_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # add_middleware prepends: the last one added is the outermost
    app.add_middleware(AuthMiddleware, settings=settings, registry=registry)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Client-Id", "Range"],
        expose_headers=["X-Total-Count", "Content-Range", "Content-Disposition"],
    )

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check(request: Request) -> HealthResponse:
        """Health check endpoint."""
        uptime = timedelta(seconds=int(time.monotonic() - request.app.state.started_at))
        return HealthResponse(version=VERSION, uptime=str(uptime))

    app.include_router(auth_router)
    app.include_router(files_router, prefix="/api/files")
    return app


app = create_app()
