"""
Access token lifecycle.

Two refresh paths keep the cached token usable:

- lazy: ``get_valid_token()`` refreshes synchronously when the cached token is
  missing or older than the refresh threshold (59 minutes);
- scheduled: a periodic timer calls ``refresh()`` every 55 minutes regardless
  of demand, so request-path callers rarely pay the refresh latency.

A failed refresh never touches the store. Both paths may run redundantly;
the store is last-write-wins.
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from core.logging import BusinessEvents
from core.metrics import token_refresh_total
from core.settings import Credentials
from payments.errors import TokenUnavailable
from payments.types import AccessToken

log = structlog.get_logger(__name__)

REFRESH_THRESHOLD = timedelta(minutes=59)
REFRESH_INTERVAL = timedelta(minutes=55)


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenManager:
    def __init__(
        self,
        credentials: Credentials,
        oauth_client,
        token_store,
        clock: Callable[[], datetime] = utcnow,
        threshold: timedelta = REFRESH_THRESHOLD,
        interval: timedelta = REFRESH_INTERVAL,
    ):
        self.credentials = credentials
        self.oauth_client = oauth_client
        self.token_store = token_store
        self.clock = clock
        self.threshold = threshold
        self.interval = interval
        self._refresh_lock = threading.Lock()
        self._timer = None

    def is_stale(self, token: AccessToken | None) -> bool:
        return token is None or token.age(self.clock()) > self.threshold

    def get_valid_token(self) -> AccessToken:
        """Return a token no older than the threshold, refreshing if needed.

        Raises:
            TokenUnavailable: a refresh was needed and failed.
        """
        token = self.token_store.load()
        if not self.is_stale(token):
            return token

        with self._refresh_lock:
            # Another caller may have refreshed while we waited
            token = self.token_store.load()
            if not self.is_stale(token):
                return token
            return self._refresh_locked("lazy")

    def refresh(self, trigger: str = "manual") -> AccessToken:
        """Fetch and persist a new token unconditionally."""
        with self._refresh_lock:
            return self._refresh_locked(trigger)

    def _refresh_locked(self, trigger: str) -> AccessToken:
        try:
            value = self.oauth_client.exchange_refresh_token(self.credentials)
        except TokenUnavailable as exc:
            token_refresh_total.labels(trigger=trigger, result="failure").inc()
            log.error(BusinessEvents.TOKEN_REFRESH_FAILED, trigger=trigger, error=str(exc))
            raise

        token = AccessToken(value=value, issued_at=self.clock())
        self.token_store.save(token)
        token_refresh_total.labels(trigger=trigger, result="success").inc()
        log.info(
            BusinessEvents.TOKEN_REFRESHED,
            trigger=trigger,
            issued_at=token.issued_at.isoformat(),
        )
        return token

    def scheduled_refresh(self) -> None:
        """Timer callback. Failures are logged and counted, never raised."""
        try:
            self.refresh(trigger="scheduled")
        except TokenUnavailable:
            # Previous token stays in the store; the lazy path retries on demand
            pass

    def start(self, timer) -> None:
        """Register the periodic renewal with ``timer``."""
        self._timer = timer
        timer.schedule_periodic(self.interval, self.scheduled_refresh)
        log.info("token.scheduler_started", interval_seconds=self.interval.total_seconds())

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            log.info("token.scheduler_stopped")

    def status(self) -> dict:
        """Token age summary for health/admin endpoints. Never exposes the value."""
        token = self.token_store.load()
        if token is None:
            return {"cached": False, "stale": True}
        return {
            "cached": True,
            "issued_at": token.issued_at.isoformat(),
            "age_seconds": int(token.age(self.clock()).total_seconds()),
            "stale": self.is_stale(token),
        }
