"""
Storyloom API Service

Book and chapter authoring API with AI-assisted writing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from storyloom.api.v1.router import api_router
from storyloom.core.config import settings
from storyloom.core.exceptions import AppError, RateLimitExceededError, ServiceUnavailableError
from storyloom.core.logging import configure_logging
from storyloom.db.base import engine, init_db
from storyloom.schemas.common import error_envelope
from storyloom.services.generation_client import GenerationClient

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; style-src 'self' 'unsafe-inline'; "
    "script-src 'self'; img-src 'self' data: https:"
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware adding the standard browser hardening headers to every response"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    configure_logging(settings.LOG_LEVEL)
    logger.info(
        "Starting %s (%s), generation API %s",
        settings.PROJECT_NAME,
        settings.ENVIRONMENT,
        "configured" if settings.GROK_API_KEY else "not configured",
    )
    init_db()
    app.state.generation_client = GenerationClient.from_settings(settings)
    yield
    await app.state.generation_client.aclose()
    engine.dispose()
    logger.info("Shut down %s", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)


def _diagnostic(value):
    """Internal details are only exposed outside production."""
    if settings.is_production or value is None:
        return None
    return value


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    extra = {}
    headers = None
    if isinstance(exc, RateLimitExceededError):
        extra["retryAfter"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    if isinstance(exc, ServiceUnavailableError):
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(
            exc.message, errors=exc.errors, error=_diagnostic(exc.detail), **extra
        ),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content=error_envelope("Validation error", errors=errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message = "API endpoint not found"
    elif isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content=error_envelope("Resource already exists", error=_diagnostic(str(exc.orig))),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with the standard error envelope."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_envelope("Internal server error", error=_diagnostic(str(exc))),
    )


# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "Storyloom API - Healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "features": {
            "authentication": True,
            "books": True,
            "chapters": True,
            "grokAI": bool(settings.GROK_API_KEY),
            "textToSpeech": False,
            "voiceCommands": False,
        },
        "environment": settings.ENVIRONMENT,
    }


def _frontend_file(path: str) -> Path | None:
    """Resolve ``path`` inside the built client, falling back to ``index.html``."""
    dist = Path(settings.FRONTEND_DIST_PATH).resolve()
    if not dist.is_dir():
        return None

    candidate = (dist / path).resolve()
    if path and candidate.is_file() and candidate.is_relative_to(dist):
        return candidate
    index = dist / "index.html"
    return index if index.is_file() else None


@app.api_route(
    "/{full_path:path}",
    methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    include_in_schema=False,
)
async def spa_fallback(full_path: str, request: Request):
    """Serve the single-page client; unknown API paths get a 404 envelope."""
    api_prefix = settings.API_PREFIX.strip("/")
    if request.method != "GET" or full_path == api_prefix or full_path.startswith(f"{api_prefix}/"):
        return JSONResponse(
            status_code=404,
            content=error_envelope("API endpoint not found", endpoint=request.url.path),
        )

    target = _frontend_file(full_path)
    if target is None:
        return JSONResponse(
            status_code=404,
            content=error_envelope(
                "Frontend not built", hint="Build the client into FRONTEND_DIST_PATH"
            ),
        )
    return FileResponse(target)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storyloom.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
