#!/usr/bin/env python3
"""
One-shot access token refresh.

For deployments that schedule renewal from host cron instead of the in-process
timer (TOKEN_SCHEDULER_ENABLED=false), e.g. every 30 minutes:

    */30 * * * * cd /app && python scripts/refresh_token.py
"""

import sys
import os

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog  # noqa: E402
from api.dependencies import build_token_manager  # noqa: E402
from core.dependencies import get_settings, init_settings  # noqa: E402
from db.session import init_db  # noqa: E402
from payments.errors import TokenUnavailable  # noqa: E402

log = structlog.get_logger(__name__)


def refresh_access_token() -> int:
    init_settings()
    settings = get_settings()
    init_db(settings)
    token_manager = build_token_manager(settings)
    try:
        token_manager.refresh(trigger="scheduled")
    except TokenUnavailable as e:
        log.error("token.cron_refresh_failed", reason=e.reason)
        return 1
    log.info("token.cron_refresh_done", **token_manager.status())
    return 0


if __name__ == "__main__":
    sys.exit(refresh_access_token())
