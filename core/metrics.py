"""
Prometheus metrics instrumentation for the Zoho Payments gateway.

Exposes request metrics plus token/session/confirmation counters at /metrics,
with optional authentication outside development.
"""

import os

from fastapi import Request, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

token_refresh_total = Counter(
    "zohogw_token_refresh_total",
    "Access token refresh attempts",
    ["trigger", "result"],  # trigger: lazy|scheduled|manual, result: success|failure
)

payment_sessions_total = Counter(
    "zohogw_payment_sessions_total",
    "Payment session creation attempts",
    ["result"],
)

payment_confirmations_total = Counter(
    "zohogw_payment_confirmations_total",
    "Payment confirmation outcomes",
    ["outcome"],  # confirmed|rejected|duplicate|denied
)


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )
    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst


def _is_private_address(client_ip: str | None) -> bool:
    return bool(
        client_ip
        and (
            client_ip.startswith("10.")
            or client_ip.startswith("192.168.")
            or client_ip.startswith("172.")
            or client_ip == "127.0.0.1"
        )
    )


def add_metrics_auth_middleware(app):
    """
    Protect the /metrics endpoint outside development.
    Set METRICS_AUTH_TOKEN and send it as X-Metrics-Auth, or scrape from a
    private network.
    """

    @app.middleware("http")
    async def metrics_auth_middleware(request: Request, call_next):
        if request.url.path != "/metrics":
            return await call_next(request)

        if os.getenv("ENVIRONMENT", "development") == "development":
            return await call_next(request)

        expected_token = os.getenv("METRICS_AUTH_TOKEN")
        if expected_token and request.headers.get("X-Metrics-Auth") == expected_token:
            return await call_next(request)

        if _is_private_address(request.client.host if request.client else None):
            return await call_next(request)

        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Metrics endpoint access denied"},
        )
