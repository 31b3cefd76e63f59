"""
Gateway error taxonomy.

Upstream failures are converted to one of these at the component boundary;
raw ``requests`` exceptions never reach callers.
"""


class GatewayError(Exception):
    """Base class for all gateway errors."""

    def __init__(self, message: str = "", reason: str | None = None):
        super().__init__(message)
        self.reason = reason or message


class TokenUnavailable(GatewayError):
    """No valid access token could be obtained. Payment cannot proceed now."""


class TransportError(GatewayError):
    """Network failure or timeout talking to an upstream endpoint."""


class ProviderError(GatewayError):
    """Upstream answered with a non-success status or a malformed body."""

    def __init__(self, message: str = "", reason: str | None = None, status_code=None):
        super().__init__(message, reason)
        self.status_code = status_code


class SessionCreationFailed(ProviderError):
    """The provider did not return a usable payment session identifier."""


class ValidationError(GatewayError):
    """Missing/invalid inbound parameters or integrity-token mismatch."""


class OrderNotFound(GatewayError):
    """The referenced order does not exist in the store."""


class IntegrityMismatch(ValidationError):
    """Integrity token or session ownership check failed (possible forgery)."""
