"""
Checkout-page parameter bundle.

The storefront renders the Zoho widget from this bundle; every value is plain
data, so escaping is the renderer's job and no script is generated here.
"""

from typing import Any

from core.settings import Settings
from db.models import Order
from payments.integrity import IntegritySigner

CONFIRM_PATH = "/api/v1/payments/confirm"


def build_checkout_params(
    order: Order, settings: Settings, signer: IntegritySigner
) -> dict[str, Any]:
    session_id = order.payment_session_id
    return {
        "script_url": settings.ZOHO_WIDGET_SCRIPT_URL,
        "account_id": settings.ZOHO_ACCOUNT_ID,
        "domain": settings.ZOHO_DOMAIN,
        "api_key": settings.ZOHO_API_KEY,
        "amount": f"{order.total:.2f}",
        "currency_code": order.currency,
        "payments_session_id": session_id,
        "business": settings.ZOHO_BUSINESS_NAME,
        "description": f"Payment for Order #{order.id}",
        "invoice_number": f"INV-{order.id}",
        "address": {
            "name": order.billing_name,
            "email": order.billing_email,
            "phone": order.billing_phone,
        },
        "order_id": order.id,
        "integrity_token": signer.issue(order.id, session_id),
        "confirm_url": settings.PUBLIC_BASE_URL.rstrip("/") + CONFIRM_PATH,
    }
