import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .admin.router import router as admin_router
from .config import settings
from .database import dispose_engine, get_engine
from .errors import (
    AppError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
    error_payload,
    public_message,
    resolve_error_code,
)
from .infrastructure.redis import close_redis, get_redis, init_redis
from .routers import auth

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging() -> int:
    """Apply LOG_LEVEL (default INFO) unless the host already configured logging."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("storefront_admin").setLevel(level)
    return level


configure_logging()
logger = logging.getLogger("storefront_admin")


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    *,
    log_message: str | None = None,
    exc: Exception | None = None,
) -> JSONResponse:
    request_id = request.headers.get("x-request-id") or "n/a"
    line = f"[{code}] {request.method} {request.url.path} request_id={request_id} message={log_message or message}"
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(line, exc_info=exc)
    else:
        logger.warning(line)
    return JSONResponse(status_code=status_code, content=error_payload(code, message, details))


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.code, exc.message, exc.details, exc=exc)


async def handle_http_exception(
    request: Request, exc: HTTPException | StarletteHTTPException
) -> JSONResponse:
    detail_text = exc.detail.strip() if isinstance(exc.detail, str) else ""
    return _error_response(
        request,
        exc.status_code,
        resolve_error_code(exc.status_code),
        public_message(exc.status_code),
        exc.detail,
        log_message=detail_text or None,
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ValidationError.code,
        "Request validation failed",
        exc.errors(),
    )


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    reason = str(exc).strip() or "Invalid request"
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        ValidationError.code,
        "Invalid request",
        reason,
        log_message=reason,
    )


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    # Unique uid/email races surface here rather than in the pre-insert lookups
    return _error_response(
        request,
        status.HTTP_409_CONFLICT,
        ConflictError.code,
        "Request could not be completed due to a conflict",
        exc=exc,
    )


async def handle_no_result_found(request: Request, exc: NoResultFound) -> JSONResponse:
    return _error_response(
        request,
        status.HTTP_404_NOT_FOUND,
        NotFoundError.code,
        "Requested resource was not found",
    )


async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        InternalError.code,
        InternalError.message,
        exc=exc,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(ValueError, handle_value_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(NoResultFound, handle_no_result_found)
    app.add_exception_handler(Exception, handle_unhandled_exception)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (env=%s)", settings.app_name, settings.app_env)
    if settings.debug:
        logger.warning("DEBUG is enabled; never run production this way")

    await init_redis(settings.redis_url)
    try:
        yield
    finally:
        await close_redis()
        await dispose_engine()
        logger.info("Shutdown complete")


def _health(status_text: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_text})


async def healthcheck() -> Response:
    """Readiness probe: the database answers SELECT 1 and Redis answers PING."""
    try:
        async with get_engine().connect() as connection:
            await connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health probe: database unavailable: %s", exc)
        return _health("error", status.HTTP_503_SERVICE_UNAVAILABLE)

    try:
        await get_redis().ping()
    except (RedisError, RuntimeError) as exc:
        logger.error("Health probe: redis unavailable: %s", exc)
        return _health("error", status.HTTP_503_SERVICE_UNAVAILABLE)

    return _health("ok", status.HTTP_200_OK)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    # Cookies carry the admin session, so credentials must be allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["content-type", "x-request-id"],
    )

    app.include_router(auth.router)
    app.include_router(admin_router)
    app.add_api_route("/health", healthcheck, methods=["GET"], tags=["health"])

    register_exception_handlers(app)
    return app


app = create_app()
