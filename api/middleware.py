import os
import structlog
from fastapi import Request

from core.logging import BusinessEvents

# Body and query fields that may carry credentials
REDACTED_PARAMS = {"integrity_token", "api_key", "access_token"}


async def log_api_entry(request: Request, call_next):
    """Middleware to log API entries with request details"""
    # Fresh logger each time so test configurations are respected
    log = structlog.get_logger(__name__)

    omit_query = os.getenv("LOG_OMIT_QUERY", "").lower() in {"1", "true", "yes"}
    query_params = {
        key: ("***" if key in REDACTED_PARAMS else value)
        for key, value in request.query_params.items()
    }
    log.info(
        BusinessEvents.API_ENTRY,
        method=request.method,
        url=str(request.url.path),
        client_host=request.client.host if request.client else None,
        query_params=None if omit_query else query_params,
    )
    response = await call_next(request)
    return response
