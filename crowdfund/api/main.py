"""
Crowdfunding API application.

Routes live under /api/v1; health checks and /metrics stay at the root.
Every JSON body uses the ``{status, data}`` envelope, errors included, except
auth rejections which are a bare 401.
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crowdfund import __version__
from crowdfund.auth.policy import TokenRejected
from crowdfund.config import get_settings
from crowdfund.core.errors import CrowdfundError
from crowdfund.database.connection import close_db, init_db
from crowdfund.monitoring.logging import setup_logging
from crowdfund.monitoring.metrics import metrics

from .dependencies import get_gateway
from .responses import error_response
from .routes import (
    auth_router,
    campaign_router,
    monitoring_router,
    transaction_router,
    user_router,
)

API_PREFIX = "/api/v1"
REQUEST_ID_HEADER = "X-Request-ID"

setup_logging()
logger = structlog.get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        env=settings.app_env,
        midtrans_environment=settings.midtrans_environment,
    )
    try:
        await init_db()
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        raise

    yield

    logger.info("application_shutdown")
    # only close a gateway client that was actually created
    if get_gateway.cache_info().currsize:
        await get_gateway().aclose()
    await close_db()


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    Bind request id, method and path to the log context, echo the request id
    and record request count and latency per route template.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    start_time = time.time()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    logger.info(
        "request_started",
        client_host=request.client.host if request.client else None,
    )

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "request_failed",
            error=str(e),
            duration_seconds=time.time() - start_time,
        )
        raise
    else:
        duration = time.time() - start_time
        route = request.scope.get("route")
        metrics.record_http_request(
            request.method,
            getattr(route, "path", "unmatched"),
            response.status_code,
            duration,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=duration,
        )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


async def handle_crowdfund_error(request: Request, exc: CrowdfundError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_error",
        error=exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
    )
    return error_response(exc.status_code, exc.message)


async def handle_token_rejected(request: Request, exc: TokenRejected) -> Response:
    logger.info("request_unauthorized", reason=exc.reason)
    return Response(status_code=status.HTTP_401_UNAUTHORIZED)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body, path and query validation failures become a 400 envelope."""
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in errors
    )
    logger.info("request_validation_failed", errors=len(errors))
    return error_response(status.HTTP_400_BAD_REQUEST, message or "Invalid request")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
    )


def create_app() -> FastAPI:
    application = FastAPI(
        title="Crowdfunding API",
        description=(
            "Crowdfunding backend: user registration and bearer-token auth, campaign "
            "management with image uploads, and campaign backing through Midtrans Snap."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.middleware("http")(request_context_middleware)

    application.add_exception_handler(CrowdfundError, handle_crowdfund_error)
    application.add_exception_handler(TokenRejected, handle_token_rejected)
    application.add_exception_handler(RequestValidationError, handle_validation_error)
    application.add_exception_handler(Exception, handle_unexpected_error)

    for router in (auth_router, user_router, campaign_router, transaction_router):
        application.include_router(router, prefix=API_PREFIX)
    application.include_router(monitoring_router)

    @application.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        return {
            "service": settings.app_name,
            "version": __version__,
            "environment": settings.app_env,
            "midtrans_environment": settings.midtrans_environment,
            "api": API_PREFIX,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        }

    return application


app = create_app()


def run() -> None:
    """Console entry point (``crowdfund-api``)."""
    import uvicorn

    uvicorn.run(
        "crowdfund.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=settings.api_workers if not settings.debug else 1,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
