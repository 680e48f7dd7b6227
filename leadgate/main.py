"""
LeadGate - guarded lead intake for quiz and form builders.
Main FastAPI application entry point.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from leadgate.config import get_settings
from leadgate.api.router import api_router
from leadgate.errors import IntakeError, RateLimitExceeded
from leadgate.utils.logging import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("leadgate")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info("LeadGate starting up (env=%s)", settings.app_env)

    # Security warnings
    if not settings.jwt_secret:
        logger.warning(
            "JWT_SECRET not set - falling back to APP_SECRET_KEY. "
            "Set a dedicated JWT secret for production."
        )
    if not settings.encryption_key:
        logger.warning(
            "ENCRYPTION_KEY not set - lead contacts will be stored unencrypted. "
            "Generate a Fernet key for production."
        )

    # Initialize Sentry if configured
    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.app_env,
            )
            logger.info("Sentry initialized")
        except Exception as e:
            logger.warning("Sentry initialization failed: %s", str(e))

    worker_tasks: list[asyncio.Task] = []

    if settings.lead_cleanup_enabled:
        from leadgate.workers.lead_cleanup import run_lead_cleanup
        worker_tasks.append(asyncio.create_task(run_lead_cleanup()))
        logger.info("Lead cleanup worker started")
    else:
        logger.info("Lead cleanup worker disabled (LEAD_CLEANUP_ENABLED=false)")

    yield

    # Graceful shutdown - give workers time to finish current work
    logger.info("LeadGate shutting down - stopping %d workers...", len(worker_tasks))
    for task in worker_tasks:
        task.cancel()
    if worker_tasks:
        done, pending = await asyncio.wait(worker_tasks, timeout=10.0)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    from leadgate.database import dispose_engine
    await dispose_engine()
    logger.info("LeadGate shutdown complete")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    # Configure structured JSON logging with correlation IDs
    configure_structured_logging(settings.log_level)

    application = FastAPI(
        title="LeadGate",
        description="Guarded lead intake for quiz and form builders",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Quiz widgets post from arbitrary customer sites
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization", "Content-Type", "X-Correlation-ID",
            settings.fingerprint_header, "Accept", "Origin", "X-Requested-With",
        ],
    )

    # Correlation ID middleware (must be added AFTER CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    application.add_exception_handler(IntakeError, intake_error_handler)

    # Include all routes
    application.include_router(api_router)

    return application


app = create_app()
