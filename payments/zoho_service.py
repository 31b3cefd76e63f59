"""
Zoho Payments session client.

Creates a payment session per checkout attempt and reads back the
authoritative session status during confirmation.
"""

from decimal import Decimal
from typing import Any

import structlog
from opentelemetry import trace

from core.logging import BusinessEvents
from core.metrics import payment_sessions_total
from core.settings import Credentials
from db.models import Order
from payments.errors import (
    GatewayError,
    ProviderError,
    SessionCreationFailed,
)
from payments.token_manager import TokenManager
from payments.transport import ZohoTransport
from payments.types import SessionState, SessionStatus

log = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

AUTH_SCHEME = "Zoho-oauthtoken"

_SUCCEEDED = {"succeeded", "success", "paid"}
_FAILED = {"failed", "failure", "canceled", "cancelled", "expired", "blocked"}


class ZohoPaymentSessionClient:
    def __init__(
        self,
        credentials: Credentials,
        token_manager: TokenManager,
        transport: ZohoTransport,
        payments_base: str,
    ):
        self.credentials = credentials
        self.token_manager = token_manager
        self.transport = transport
        self.sessions_url = f"{payments_base.rstrip('/')}/api/v1/paymentsessions"

    @staticmethod
    def map_status(zoho_status: str | None) -> SessionState:
        """Map a Zoho session status to our SessionState."""
        value = (zoho_status or "").lower()
        if value in _SUCCEEDED:
            return SessionState.succeeded
        if value in _FAILED:
            return SessionState.failed
        return SessionState.pending

    def _headers(self) -> dict[str, str]:
        token = self.token_manager.get_valid_token()
        return {
            "Authorization": f"{AUTH_SCHEME} {token.value}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def session_body(order: Order) -> dict[str, Any]:
        return {
            "amount": float(Decimal(order.total)),
            "currency": order.currency,
            "meta_data": [{"key": "order_id", "value": str(order.id)}],
            "description": f"Payment for Order #{order.id}",
            "invoice_number": f"INV-{order.id}",
        }

    def create_session(self, order: Order) -> str:
        """
        Create a Zoho payment session for ``order``.

        Returns:
            The non-empty ``payments_session_id``.

        Raises:
            TokenUnavailable, TransportError, SessionCreationFailed
        """
        log.info(
            "payment.session_attempt",
            order_id=order.id,
            amount=str(order.total),
            currency=order.currency,
        )
        with tracer.start_as_current_span("zoho.create_session") as span:
            span.set_attribute("order.id", order.id)
            try:
                response = self.transport.post(
                    self.sessions_url,
                    params={"account_id": self.credentials.account_id},
                    headers=self._headers(),
                    json=self.session_body(order),
                )
                data = self._decode(response, SessionCreationFailed)
                session = data.get("payments_session") or {}
                session_id = (
                    session.get("payments_session_id") if isinstance(session, dict) else None
                )
                if not session_id:
                    raise SessionCreationFailed(
                        f"no payments_session_id in response: {data.get('message')}",
                        reason="Could not generate payment session.",
                    )
            except GatewayError as exc:
                payment_sessions_total.labels(result="failure").inc()
                log.error(
                    BusinessEvents.SESSION_FAILED,
                    order_id=order.id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                raise

        payment_sessions_total.labels(result="success").inc()
        log.info(BusinessEvents.SESSION_CREATED, order_id=order.id, session_id=session_id)
        return str(session_id)

    def get_session_status(self, session_id: str, account_id: str) -> SessionStatus:
        """
        Read the authoritative status of a payment session.

        Raises:
            TokenUnavailable, TransportError, ProviderError
        """
        with tracer.start_as_current_span("zoho.get_session_status"):
            response = self.transport.get(
                f"{self.sessions_url}/{session_id}",
                params={"account_id": account_id},
                headers=self._headers(),
            )
            data = self._decode(response, ProviderError)

        session = data.get("payments_session")
        if not isinstance(session, dict) or not isinstance(session.get("status"), str):
            raise ProviderError(
                "session status response missing payments_session.status",
                reason="Payment provider returned an invalid session",
            )

        payments = session.get("payments") or []
        if not isinstance(payments, list) or (payments and not isinstance(payments[0], dict)):
            raise ProviderError(
                f"unexpected payments_session.payments shape: {type(payments).__name__}",
                reason="Payment provider returned an invalid session",
            )
        first = payments[0] if payments else {}
        reason = (
            first.get("failure_reason")
            or session.get("failure_reason")
            or first.get("status_message")
        )
        payment_id = first.get("payment_id")
        return SessionStatus(
            status=self.map_status(session["status"]),
            payment_id=str(payment_id) if payment_id else None,
            reason=str(reason) if reason else None,
        )

    @staticmethod
    def _decode(response, error_cls: type[ProviderError]) -> dict[str, Any]:
        if not 200 <= response.status_code < 300:
            raise error_cls(
                f"provider returned {response.status_code}: {response.text[:200]}",
                reason="Payment provider returned an error",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls(
                "provider returned a non-JSON body",
                reason="Payment provider returned an invalid response",
                status_code=response.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise error_cls(
                "provider returned an unexpected body",
                reason="Payment provider returned an invalid response",
                status_code=response.status_code,
            )
        return data
