"""
Server-side payment confirmation tests.
"""

import pytest
import requests

from conftest import ACCOUNT_ID, MockResponse, session_status_response
from db.models import NoteAction, OrderNote, OrderStatus
from db.stores import SqlOrderStore
from payments.confirmation import ConfirmationHandler, ConfirmationRequest
from payments.errors import IntegrityMismatch, OrderNotFound, ValidationError


@pytest.fixture
def order_store(test_db_session):
    return SqlOrderStore(test_db_session)


@pytest.fixture
def handler(session_client, order_store, signer):
    return ConfirmationHandler(
        account_id=ACCOUNT_ID,
        session_client=session_client,
        order_store=order_store,
        signer=signer,
    )


@pytest.fixture
def checked_out_order(order, order_store):
    """Order whose current checkout attempt is session sess_123."""
    order_store.attach_session(order.id, "sess_123")
    return order


def make_request(signer, order_id, session_id="sess_123", **overrides):
    fields = {
        "order_id": order_id,
        "session_id": session_id,
        "account_id": ACCOUNT_ID,
        "integrity_token": signer.issue(order_id, session_id),
    }
    fields.update(overrides)
    return ConfirmationRequest(**fields)


def notes(db, order_id, action=None):
    query = db.query(OrderNote).filter(OrderNote.order_id == order_id)
    if action is not None:
        query = query.filter(OrderNote.action == action)
    return query.all()


def test_end_to_end_paid(session_client, handler, order, order_store, signer, test_db_session):
    """500.00 INR → sess_123 → succeeded/pay_789 → order paid."""
    session_id = session_client.create_session(order)
    assert session_id == "sess_123"
    order_store.attach_session(order.id, session_id)

    result = handler.confirm(make_request(signer, order.id))

    assert result.success is True
    assert result.status == OrderStatus.paid
    assert result.payment_id == "pay_789"
    test_db_session.refresh(order)
    assert order.status == OrderStatus.paid
    assert order.payment_id == "pay_789"
    confirmed = notes(test_db_session, order.id, NoteAction.payment_confirmed)
    assert len(confirmed) == 1
    assert "pay_789" in confirmed[0].note


def test_end_to_end_insufficient_funds(
    handler, checked_out_order, signer, fake_zoho, test_db_session
):
    fake_zoho.status_response = session_status_response(
        "failed", payment_id="pay_x", failure_reason="insufficient_funds"
    )

    result = handler.confirm(make_request(signer, checked_out_order.id))

    assert result.success is False
    assert result.message == "insufficient_funds"
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.failed
    assert checked_out_order.payment_id is None
    failed = notes(test_db_session, checked_out_order.id, NoteAction.payment_failed)
    assert "insufficient_funds" in failed[-1].note


def test_pending_session_is_never_marked_paid(
    handler, checked_out_order, signer, fake_zoho, test_db_session
):
    """A well-formed call claiming success while Zoho says pending."""
    fake_zoho.status_response = session_status_response("created")

    result = handler.confirm(make_request(signer, checked_out_order.id))

    assert result.success is False
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.failed
    assert checked_out_order.payment_id is None


def test_succeeded_without_payment_id_is_rejected(
    handler, checked_out_order, signer, fake_zoho, test_db_session
):
    fake_zoho.status_response = session_status_response("succeeded")

    result = handler.confirm(make_request(signer, checked_out_order.id))

    assert result.success is False
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status != OrderStatus.paid


def test_duplicate_confirmation_is_noop(handler, checked_out_order, signer, fake_zoho, test_db_session):
    first = handler.confirm(make_request(signer, checked_out_order.id))
    calls_after_first = len(fake_zoho.calls)

    second = handler.confirm(make_request(signer, checked_out_order.id))

    assert first.success is second.success is True
    assert second.payment_id == "pay_789"
    assert len(fake_zoho.calls) == calls_after_first
    assert len(notes(test_db_session, checked_out_order.id, NoteAction.payment_confirmed)) == 1


def test_mark_paid_only_finalizes_once(order_store, checked_out_order, test_db_session):
    assert order_store.mark_paid(checked_out_order.id, "pay_789") is True
    assert order_store.mark_paid(checked_out_order.id, "pay_other") is False

    test_db_session.refresh(checked_out_order)
    assert checked_out_order.payment_id == "pay_789"
    assert len(notes(test_db_session, checked_out_order.id, NoteAction.payment_confirmed)) == 1


def test_paid_order_is_not_downgraded(order_store, checked_out_order, test_db_session):
    order_store.mark_paid(checked_out_order.id, "pay_789")

    assert order_store.set_status(checked_out_order.id, OrderStatus.failed, note="late") is False

    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.paid


@pytest.mark.parametrize(
    "token_for",
    [
        lambda order_id: ("other-order", order_id + 1, "sess_123"),
        lambda order_id: ("other-session", order_id, "sess_999"),
    ],
)
def test_integrity_mismatch_rejected_before_provider_call(
    handler, checked_out_order, signer, fake_zoho, test_db_session, token_for
):
    _, token_order, token_session = token_for(checked_out_order.id)
    request = make_request(
        signer,
        checked_out_order.id,
        integrity_token=signer.issue(token_order, token_session),
    )

    with pytest.raises(IntegrityMismatch):
        handler.confirm(request)

    assert fake_zoho.calls == []
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.pending


def test_garbage_integrity_token_rejected(handler, checked_out_order, signer, fake_zoho):
    with pytest.raises(IntegrityMismatch):
        handler.confirm(make_request(signer, checked_out_order.id, integrity_token="not-a-jwt"))

    assert fake_zoho.calls == []


def test_stale_session_cannot_confirm_order(
    handler, checked_out_order, order_store, signer, fake_zoho, test_db_session
):
    # A second checkout attempt replaced the session
    order_store.attach_session(checked_out_order.id, "sess_456")

    with pytest.raises(IntegrityMismatch):
        handler.confirm(make_request(signer, checked_out_order.id, "sess_123"))

    assert fake_zoho.calls == []
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.pending


def test_order_without_stored_session_rejected(handler, order, signer, fake_zoho):
    with pytest.raises(IntegrityMismatch):
        handler.confirm(make_request(signer, order.id))

    assert fake_zoho.calls == []


def test_account_mismatch_rejected(handler, checked_out_order, signer, fake_zoho):
    with pytest.raises(ValidationError):
        handler.confirm(make_request(signer, checked_out_order.id, account_id="acct_other"))

    assert fake_zoho.calls == []


def test_unknown_order(handler, signer):
    with pytest.raises(OrderNotFound):
        handler.confirm(make_request(signer, 9999))


def test_transport_error_fails_closed(handler, checked_out_order, signer, fake_zoho, test_db_session):
    fake_zoho.status_response = requests.ConnectionError("connection reset")

    result = handler.confirm(make_request(signer, checked_out_order.id))

    assert result.success is False
    assert result.message == "Could not reach payment provider"
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.failed


def test_failed_order_is_reverified(handler, checked_out_order, signer, fake_zoho, test_db_session):
    fake_zoho.status_response = [
        requests.Timeout("read timed out"),
        requests.Timeout("read timed out"),
        session_status_response("succeeded", payment_id="pay_789"),
    ]

    first = handler.confirm(make_request(signer, checked_out_order.id))
    second = handler.confirm(make_request(signer, checked_out_order.id))

    assert first.success is False
    assert second.success is True
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.paid
    assert checked_out_order.payment_id == "pay_789"


@pytest.mark.parametrize(
    "session_body",
    [
        {"status": "succeeded", "payments": {"payment_id": "pay_789"}},
        {"status": 1, "payments": []},
    ],
    ids=["payments-dict", "status-int"],
)
def test_malformed_status_response_fails_closed(
    handler, checked_out_order, signer, fake_zoho, test_db_session, session_body
):
    fake_zoho.status_response = MockResponse(200, {"payments_session": session_body})

    result = handler.confirm(make_request(signer, checked_out_order.id))

    assert result.success is False
    assert result.message == "Payment provider returned an invalid session"
    test_db_session.refresh(checked_out_order)
    assert checked_out_order.status == OrderStatus.failed
    assert checked_out_order.payment_id is None
    failed = notes(test_db_session, checked_out_order.id, NoteAction.payment_failed)
    assert "invalid session" in failed[-1].note
