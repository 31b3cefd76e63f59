from typing import Any

import structlog

from core.settings import Credentials
from payments.errors import ProviderError, TokenUnavailable, TransportError
from payments.transport import ZohoTransport

log = structlog.get_logger(__name__)


class ZohoOAuthClient:
    """Exchanges the long-lived refresh token for a short-lived access token."""

    def __init__(self, accounts_base: str, transport: ZohoTransport):
        self.token_url = f"{accounts_base.rstrip('/')}/oauth/v2/token"
        self.transport = transport

    def exchange_refresh_token(self, credentials: Credentials) -> str:
        """
        POST the refresh grant and return the new access token value.

        Raises:
            TokenUnavailable: on transport failure, non-2xx status, undecodable
                body or a response without ``access_token``.
        """
        body = {
            "refresh_token": credentials.refresh_token,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "grant_type": "refresh_token",
        }
        try:
            response = self.transport.post(self.token_url, data=body)
        except TransportError as exc:
            raise TokenUnavailable(str(exc), reason=exc.reason) from exc

        if not 200 <= response.status_code < 300:
            raise TokenUnavailable(
                f"token endpoint returned {response.status_code}",
                reason="Payment provider rejected the token refresh",
            ) from ProviderError(response.text[:200], status_code=response.status_code)

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise TokenUnavailable(
                "token endpoint returned a non-JSON body",
                reason="Payment provider returned an invalid token response",
            ) from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            # Zoho reports bad grants as 200 {"error": "invalid_code"}
            error = data.get("error") if isinstance(data, dict) else None
            raise TokenUnavailable(
                f"token response missing access_token (error={error})",
                reason="Payment provider did not issue an access token",
            )
        return token
