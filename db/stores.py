"""
SQL-backed implementations of the Token Store and the Order Store.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from db.models import KeyValue, NoteAction, Order, OrderNote, OrderStatus
from payments.types import AccessToken

log = structlog.get_logger(__name__)

ACCESS_TOKEN_KEY = "access_token"
LAST_REFRESHED_KEY = "last_refreshed_at"


class SqlTokenStore:
    """Persists ``access_token`` and ``last_refreshed_at`` as two kv rows.

    Each call opens its own short-lived session so the store can be shared by
    request handlers and the background timer.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self) -> AccessToken | None:
        with self.session_factory() as db:
            token = db.get(KeyValue, ACCESS_TOKEN_KEY)
            refreshed = db.get(KeyValue, LAST_REFRESHED_KEY)
            if token is None or refreshed is None or not token.value:
                return None
            try:
                issued_at = datetime.fromisoformat(refreshed.value)
            except ValueError:
                log.warning("token_store.bad_timestamp", value=refreshed.value)
                return None
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=UTC)
        return AccessToken(value=token.value, issued_at=issued_at)

    def save(self, token: AccessToken) -> None:
        """Write both fields in one transaction; last write wins."""
        with self.session_factory() as db:
            db.merge(KeyValue(key=ACCESS_TOKEN_KEY, value=token.value))
            db.merge(KeyValue(key=LAST_REFRESHED_KEY, value=token.issued_at.isoformat()))
            db.commit()


class SqlOrderStore:
    """Order Store over the request's database session."""

    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> Order | None:
        return self.db.get(Order, order_id)

    def attach_session(self, order_id: int, session_id: str) -> None:
        """Record the session for the latest checkout attempt, replacing any older one."""
        order = self.db.get(Order, order_id)
        order.payment_session_id = session_id
        if order.status == OrderStatus.failed:
            order.status = OrderStatus.pending
        self._add_note(
            order_id,
            NoteAction.session_created,
            f"Zoho payment session {session_id} created.",
            {"session_id": session_id},
        )
        self.db.commit()

    def set_status(
        self, order_id: int, status: OrderStatus, note: str | None = None
    ) -> bool:
        """Set the order status. A paid order is never moved back out of paid.

        Returns False when the order is unknown or already paid.
        """
        stmt = update(Order).where(Order.id == order_id)
        if status != OrderStatus.paid:
            # Guard and write in one statement; a concurrent mark_paid wins
            stmt = stmt.where(Order.status != OrderStatus.paid)
        result = self.db.execute(
            stmt.values(status=status, updated_at=datetime.now(UTC))
        )
        if result.rowcount != 1:
            self.db.rollback()
            log.warning("order.status_refused", order_id=order_id, status=status.value)
            return False
        if note:
            action = (
                NoteAction.payment_failed
                if status == OrderStatus.failed
                else NoteAction.payment_confirmed
            )
            self._add_note(order_id, action, note, {"status": status.value})
        self.db.commit()
        self._reload(order_id)
        return True

    def mark_paid(self, order_id: int, payment_id: str) -> bool:
        """Finalize the order once. Returns False if it was already paid."""
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status != OrderStatus.paid)
            .values(
                status=OrderStatus.paid,
                payment_id=payment_id,
                updated_at=datetime.now(UTC),
            )
        )
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self._add_note(
            order_id,
            NoteAction.payment_confirmed,
            f"Payment confirmed via Zoho. Payment ID: {payment_id}",
            {"payment_id": payment_id},
        )
        self.db.commit()
        self._reload(order_id)
        return True

    def _reload(self, order_id: int) -> None:
        # Bulk UPDATEs bypass the identity map
        order = self.db.get(Order, order_id)
        if order is not None:
            self.db.refresh(order)

    def _add_note(self, order_id: int, action: NoteAction, note: str, payload: dict):
        self.db.add(OrderNote(order_id=order_id, action=action, note=note, payload=payload))
