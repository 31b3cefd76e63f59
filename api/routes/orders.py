"""
Checkout routes: payment session creation and the widget parameter bundle.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_order_store, get_session_client, get_signer
from api.schemas import CheckoutParams, OrderOut
from core.dependencies import get_settings
from core.settings import Settings
from db.models import Order, OrderStatus
from db.stores import SqlOrderStore
from payments.checkout import build_checkout_params
from payments.errors import TokenUnavailable, TransportError, ProviderError
from payments.integrity import IntegritySigner
from payments.zoho_service import ZohoPaymentSessionClient

log = structlog.get_logger(__name__)

router = APIRouter()


def _load_order(order_store: SqlOrderStore, order_id: int) -> Order:
    order = order_store.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, order_store: SqlOrderStore = Depends(get_order_store)):
    return _load_order(order_store, order_id)


@router.post("/{order_id}/payment-session", response_model=CheckoutParams, status_code=201)
def create_payment_session(
    order_id: int,
    settings: Settings = Depends(get_settings),
    order_store: SqlOrderStore = Depends(get_order_store),
    session_client: ZohoPaymentSessionClient = Depends(get_session_client),
    signer: IntegritySigner = Depends(get_signer),
):
    """
    Start a checkout attempt for an order.

    Creates a Zoho payment session, records it as the order's current session
    (replacing any session from an earlier attempt) and returns the bundle
    the checkout page feeds to the Zoho widget.
    """
    if not settings.ZOHO_GATEWAY_ENABLED:
        raise HTTPException(status_code=503, detail="Zoho gateway is disabled")

    order = _load_order(order_store, order_id)
    if order.status == OrderStatus.paid:
        raise HTTPException(status_code=409, detail="Order is already paid")

    try:
        session_id = session_client.create_session(order)
    except TokenUnavailable:
        raise HTTPException(status_code=503, detail="Zoho token error.")
    except TransportError:
        raise HTTPException(status_code=502, detail="Failed to create payment session.")
    except ProviderError:
        raise HTTPException(status_code=502, detail="Could not generate payment session.")

    order_store.attach_session(order.id, session_id)
    return CheckoutParams(**build_checkout_params(order, settings, signer))


@router.get("/{order_id}/checkout", response_model=CheckoutParams)
def get_checkout_params(
    order_id: int,
    settings: Settings = Depends(get_settings),
    order_store: SqlOrderStore = Depends(get_order_store),
    signer: IntegritySigner = Depends(get_signer),
):
    """Widget bundle for an unpaid order that already has a payment session."""
    order = _load_order(order_store, order_id)
    if order.status == OrderStatus.paid:
        raise HTTPException(status_code=409, detail="Order is already paid")
    if not order.payment_session_id:
        raise HTTPException(status_code=404, detail="No payment session for order")
    return CheckoutParams(**build_checkout_params(order, settings, signer))
