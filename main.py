"""
Zoho Payments Gateway - Main Application Entry Point

This module initializes the FastAPI application, wires the token manager and
its background renewal timer into the app lifespan, and mounts the checkout,
confirmation and admin routes.
"""

import structlog
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from api import routes
from api.dependencies import clear_token_manager, get_token_manager, init_token_manager
from api.middleware import log_api_entry
from core.dependencies import clear_settings, get_settings, init_settings
from core.logging import configure_logging
from core.metrics import add_metrics_auth_middleware, init_metrics
from core.scheduler import AsyncioTimer
from core.settings import Settings
from core.tracing import init_tracer
from db.session import init_db
from payments.token_manager import TokenManager

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    settings = get_settings()

    init_tracer(settings.OTEL_SERVICE_NAME, settings.OTEL_EXPORTER_OTLP_ENDPOINT)
    init_db(settings)

    token_manager = init_token_manager(settings)
    if settings.TOKEN_SCHEDULER_ENABLED:
        token_manager.start(AsyncioTimer())

    yield
    # Shutdown: cancel the periodic refresh before dropping singletons
    clear_token_manager()
    clear_settings()


app = FastAPI(
    title="Zoho Payments Gateway",
    description="""
    ## Zoho Payments checkout integration

    Creates Zoho payment sessions for storefront orders and confirms payments
    server-side against the Zoho Payments API.

    ### Key Features:
    - **OAuth token lifecycle**: lazy refresh plus scheduled renewal every 55 minutes
    - **Payment sessions**: one session per checkout attempt
    - **Server-side confirmation**: orders are only marked paid on Zoho's word
    - **Observability**: structured logging, Prometheus metrics, OpenTelemetry tracing
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

FastAPIInstrumentor.instrument_app(app)

init_metrics(app)

add_metrics_auth_middleware(app)

app.middleware("http")(log_api_entry)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error("api.unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "name": "Zoho Payments Gateway",
        "version": "1.0.0",
        "api_documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_spec": "/openapi.json",
        },
        "endpoints": {
            "payment_session": "POST /api/v1/orders/{id}/payment-session",
            "checkout": "GET /api/v1/orders/{id}/checkout",
            "confirm": "POST /api/v1/payments/confirm",
            "token": "GET /api/v1/admin/token",
            "health": "/health - Health check endpoint",
            "metrics": "/metrics - Prometheus metrics (requires auth)",
        },
    }


@app.get("/health")
def health(
    settings: Settings = Depends(get_settings),
    token_manager: TokenManager = Depends(get_token_manager),
):
    """Health check endpoint alias."""
    return health_check(settings, token_manager)


@app.get("/healthz")
def health_check(
    settings: Settings = Depends(get_settings),
    token_manager: TokenManager = Depends(get_token_manager),
):
    """Health check endpoint to verify API status."""
    db_type = (
        "PostgreSQL" if settings.DATABASE_URL.startswith("postgresql") else "SQLite"
    )
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "database": db_type,
        "environment": settings.ENVIRONMENT,
        "gateway_enabled": settings.ZOHO_GATEWAY_ENABLED,
        "gateway_title": settings.ZOHO_GATEWAY_TITLE,
        "token": token_manager.status(),
    }


API_PREFIX = "/api/v1"

app.include_router(routes.router, prefix=API_PREFIX)


def main():
    configure_logging()
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
