"""FastAPI application entry point for the multi-tenant store backend."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from merchant.api.v1.router import api_router
from merchant.core.config import settings
from merchant.core.errors import MerchantError
from merchant.core.logging_config import (
    client_id_var,
    generate_request_id,
    request_id_var,
    setup_logging,
)
from merchant.core.rate_limit import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(debug=settings.debug)
    logger.info(
        "Starting %s v%s (%s)", settings.project_name, settings.version, settings.environment
    )
    if not settings.payment_webhook_secret:
        logger.warning("PAYMENT_WEBHOOK_SECRET is empty, payment callbacks are not signed")
    yield
    logger.info("Shutting down...")


def _init_sentry() -> None:
    """Error reporting is optional and needs the ``sentry`` extra."""
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"merchant-api@{settings.version}",
        traces_sample_rate=0.1,
        send_default_pii=False,
    )


def _add_middleware(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_middleware(SlowAPIMiddleware)

    # Storefront origins only; the payment provider calls server to server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Webhook-Signature"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next: Any) -> Response:
        """Tag logs with a request id and log one line per request.

        The tenant id is unknown until the bearer token is verified, so it is
        cleared here and set by the auth dependency.
        """
        rid = request.headers.get("X-Request-ID") or generate_request_id()
        request_id_var.set(rid)
        client_id_var.set("")
        started = time.perf_counter()

        response: Response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={"duration_ms": round((time.perf_counter() - started) * 1000, 1)},
        )
        return response


def _add_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(MerchantError)
    async def merchant_error_handler(_request: Request, exc: MerchantError) -> JSONResponse:
        """Service-layer errors carry their own HTTP status."""
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # Keeps unexpected failures JSON-shaped (and CORS headers intact)
    @app.exception_handler(Exception)
    async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings.sentry_dsn:
        _init_sentry()

    prefix = settings.api_v1_prefix
    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        description="Orders, customers and catalog for many storefronts behind one API.",
        openapi_url=f"{prefix}/openapi.json",
        docs_url=f"{prefix}/docs",
        redoc_url=f"{prefix}/redoc",
        lifespan=lifespan,
    )

    _add_middleware(app)
    _add_error_handlers(app)
    app.include_router(api_router, prefix=prefix)

    @app.get("/docs", include_in_schema=False)
    async def docs_redirect() -> RedirectResponse:
        return RedirectResponse(url=f"{prefix}/docs")

    @app.get("/")
    async def root() -> dict[str, Any]:
        """API information."""
        return {
            "name": settings.project_name,
            "version": settings.version,
            "environment": settings.environment,
            "docs": f"{prefix}/docs",
            "health": f"{prefix}/health",
        }

    return app


app = create_app()
