"""
Outbound HTTP for the Zoho endpoints.

Every call carries a bounded timeout. Connection-level failures are retried
with exponential backoff; anything that still fails is surfaced as
TransportError.
"""

from typing import Any

import requests
import structlog
import tenacity

from core.settings import Settings
from payments.errors import TransportError

log = structlog.get_logger(__name__)

RETRYABLE = (requests.ConnectionError, requests.Timeout)


class ZohoTransport:
    def __init__(
        self,
        timeout: float = 10.0,
        attempts: int = 3,
        wait_seconds: float = 0.5,
        session: requests.Session | None = None,
    ):
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self.wait_seconds = wait_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZohoTransport":
        return cls(
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            attempts=settings.HTTP_RETRY_ATTEMPTS,
            wait_seconds=settings.HTTP_RETRY_WAIT_SECONDS,
        )

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.attempts),
            wait=tenacity.wait_exponential(multiplier=self.wait_seconds, max=8),
            retry=tenacity.retry_if_exception_type(RETRYABLE),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    return self.session.request(
                        method, url, timeout=self.timeout, **kwargs
                    )
        except requests.Timeout as exc:
            raise TransportError(
                f"{method} {url} timed out after {self.timeout}s",
                reason="Payment provider timed out",
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(
                f"{method} {url} failed: {exc}",
                reason="Could not reach payment provider",
            ) from exc

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    @staticmethod
    def _log_retry(retry_state: tenacity.RetryCallState) -> None:
        log.warning(
            "http.retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()),
        )
