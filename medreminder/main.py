"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from secure import Secure
from asgi_correlation_id import CorrelationIdMiddleware
from sqlalchemy.exc import SQLAlchemyError

from medreminder.api import api_router
from medreminder.core.config import get_settings
from medreminder.core.logging import configure_logging
from medreminder.db.session import create_schema, get_sessionmaker
from medreminder.security.logging_filters import SensitiveFilter
from medreminder.services.reminder_service import build_runtime, converge_all

logger = logging.getLogger(__name__)

settings = get_settings()

_ALLOWED_ORIGINS = [origin for origin in settings.cors_allow_origins if origin]
if not _ALLOWED_ORIGINS:
    _ALLOWED_ORIGINS = ["http://localhost:5173"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    current = get_settings()
    configure_logging(current.log_level)
    if current.auto_create_schema:
        await create_schema(current.database_url)

    runtime = await build_runtime(current)
    app.state.runtime = runtime
    try:
        async with get_sessionmaker(current.database_url)() as session:
            scheduled = await converge_all(session, dispatcher=runtime.dispatcher)
        logger.info("Startup convergence scheduled %s alerts", len(scheduled))
    except Exception:  # pragma: no cover - best effort convergence
        logger.exception("Failed to converge reminders at startup")
    try:
        yield
    finally:
        try:
            await runtime.close()
        except Exception:  # pragma: no cover - transport shutdown
            logger.exception("Failed to close alert transport")
        app.state.runtime = None


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Owner-ID", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

_secure_headers = Secure()


@app.middleware("http")
async def _apply_security_headers(request, call_next):
    response = await call_next(request)
    _secure_headers.set_headers(response)
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        response.headers.setdefault("X-Request-ID", str(correlation_id))
    return response


@app.exception_handler(SQLAlchemyError)
async def _storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable"},
    )


for _logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error", ""):
    _logger = logging.getLogger(_logger_name)
    if not any(isinstance(flt, SensitiveFilter) for flt in _logger.filters):
        _logger.addFilter(SensitiveFilter())

app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": settings.app_name}
