"""
Server-side payment confirmation.

The client-side widget reports a payment attempt; this handler re-queries the
provider and only the provider's answer can mark an order paid.

    Pending --succeeded--> Confirmed (order paid)
    Pending --anything else / error--> Rejected (order failed)
"""

from dataclasses import dataclass

import structlog

from core.logging import BusinessEvents
from core.metrics import payment_confirmations_total
from db.models import OrderStatus
from payments.errors import (
    GatewayError,
    IntegrityMismatch,
    OrderNotFound,
    ValidationError,
)
from payments.integrity import IntegritySigner
from payments.types import SessionState

log = structlog.get_logger(__name__)

GENERIC_FAILURE = "Payment was not completed."


@dataclass(frozen=True)
class ConfirmationRequest:
    order_id: int
    session_id: str
    account_id: str
    integrity_token: str


@dataclass(frozen=True)
class ConfirmationResult:
    success: bool
    order_id: int
    status: OrderStatus
    payment_id: str | None
    message: str


class ConfirmationHandler:
    def __init__(
        self,
        account_id: str,
        session_client,
        order_store,
        signer: IntegritySigner,
    ):
        self.account_id = account_id
        self.session_client = session_client
        self.order_store = order_store
        self.signer = signer

    def confirm(self, request: ConfirmationRequest) -> ConfirmationResult:
        """
        Run the confirmation protocol for one inbound request.

        Raises:
            ValidationError: forged/mismatched token, bad parameters, or a
                session id that is not the order's current session.
            OrderNotFound: unknown order.
        """
        try:
            self.signer.verify(request.integrity_token, request.order_id, request.session_id)
            if not request.session_id:
                raise ValidationError("session_id is required", reason="Missing session")
            if request.account_id != self.account_id:
                raise ValidationError("account_id mismatch", reason="Invalid account")

            order = self.order_store.get_order(request.order_id)
            if order is None:
                raise OrderNotFound(f"order {request.order_id} not found", reason="Order not found")
            if order.payment_session_id != request.session_id:
                raise IntegrityMismatch(
                    "session_id does not belong to order", reason="Session mismatch"
                )
        except GatewayError as exc:
            payment_confirmations_total.labels(outcome="denied").inc()
            log.warning(
                BusinessEvents.CONFIRMATION_DENIED,
                order_id=request.order_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        if order.status == OrderStatus.paid:
            payment_confirmations_total.labels(outcome="duplicate").inc()
            return ConfirmationResult(
                success=True,
                order_id=order.id,
                status=order.status,
                payment_id=order.payment_id,
                message="Payment already confirmed.",
            )

        try:
            status = self.session_client.get_session_status(
                request.session_id, self.account_id
            )
        except GatewayError as exc:
            # Fail closed: an unverifiable payment is never treated as paid
            return self._reject(order.id, exc.reason or GENERIC_FAILURE, error=str(exc))

        if status.status == SessionState.succeeded and status.payment_id:
            return self._accept(order.id, status.payment_id)

        if status.status == SessionState.succeeded:
            reason = "Provider reported success without a payment id."
        elif status.status == SessionState.pending:
            reason = status.reason or "Payment is still pending at the provider."
        else:
            reason = status.reason or GENERIC_FAILURE
        return self._reject(order.id, reason, provider_status=status.status.value)

    def _accept(self, order_id: int, payment_id: str) -> ConfirmationResult:
        finalized = self.order_store.mark_paid(order_id, payment_id)
        order = self.order_store.get_order(order_id)
        if finalized:
            payment_confirmations_total.labels(outcome="confirmed").inc()
            log.info(BusinessEvents.PAYMENT_CONFIRMED, order_id=order_id, payment_id=payment_id)
        else:
            # Lost a race with a concurrent confirmation; report its result
            payment_confirmations_total.labels(outcome="duplicate").inc()
        return ConfirmationResult(
            success=True,
            order_id=order_id,
            status=OrderStatus.paid,
            payment_id=order.payment_id,
            message="Payment confirmed.",
        )

    def _reject(self, order_id: int, reason: str, **context) -> ConfirmationResult:
        updated = self.order_store.set_status(
            order_id, OrderStatus.failed, note=f"Zoho payment failed: {reason}"
        )
        if not updated:
            # A concurrent confirmation already finalized the order
            order = self.order_store.get_order(order_id)
            payment_confirmations_total.labels(outcome="duplicate").inc()
            return ConfirmationResult(
                success=True,
                order_id=order_id,
                status=order.status,
                payment_id=order.payment_id,
                message="Payment already confirmed.",
            )
        payment_confirmations_total.labels(outcome="rejected").inc()
        log.warning(BusinessEvents.PAYMENT_REJECTED, order_id=order_id, reason=reason, **context)
        return ConfirmationResult(
            success=False,
            order_id=order_id,
            status=OrderStatus.failed,
            payment_id=None,
            message=reason,
        )
