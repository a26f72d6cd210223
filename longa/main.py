"""
Longa - home-services marketplace backend.
Main FastAPI application entry point.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from longa.config import get_settings
from longa.api.router import api_router
from longa.utils.logging import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("longa")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info("Longa starting up (env=%s)", settings.app_env)

    if not settings.jwt_secret:
        logger.warning(
            "JWT_SECRET not set - falling back to APP_SECRET_KEY. "
            "Set the identity provider's signing secret for production."
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

    if settings.auto_assign_enabled:
        from longa.workers.auto_assigner import run_auto_assigner
        worker_tasks.append(asyncio.create_task(run_auto_assigner()))
        logger.info("Auto-assign worker started")
    else:
        logger.info("Auto-assign worker disabled (AUTO_ASSIGN_ENABLED=false)")

    yield

    logger.info("Longa shutting down - stopping %d workers...", len(worker_tasks))
    for task in worker_tasks:
        task.cancel()
    if worker_tasks:
        await asyncio.gather(*worker_tasks, return_exceptions=True)
    logger.info("Longa shutdown complete")


def _allowed_origins(settings) -> list[str]:
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.app_env == "development":
        origins += ["http://localhost:3000", "http://localhost:5173"]
    origins.append(settings.app_base_url)
    return list(dict.fromkeys(origins))


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    # Configure structured JSON logging with correlation IDs
    configure_structured_logging(settings.log_level)

    application = FastAPI(
        title="Longa",
        description="Home-services marketplace: bookings, providers, payouts",
        version="1.0.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization", "Content-Type", "X-Correlation-ID",
            "Accept", "Origin", "X-Requested-With",
        ],
        expose_headers=[
            "Content-Disposition", "X-Payouts-Exported",
            "X-Payouts-Marked", "X-Payouts-Marking-Error",
        ],
    )

    # Correlation ID middleware (added after CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    application.include_router(api_router)

    return application


app = create_app()
