"""
Payment confirmation route, called by the checkout page after the Zoho
widget reports a payment attempt.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_confirmation_handler
from api.schemas import ConfirmationIn, ConfirmationResponse
from payments.confirmation import ConfirmationHandler, ConfirmationRequest
from payments.errors import IntegrityMismatch, OrderNotFound, ValidationError

router = APIRouter()


# Plain ``def`` so the handler runs in the threadpool: a client disconnect
# does not cancel the provider query or the order update.
@router.post("/confirm", response_model=ConfirmationResponse)
def confirm_payment(
    payload: ConfirmationIn,
    handler: ConfirmationHandler = Depends(get_confirmation_handler),
):
    """
    Verify a payment against Zoho and finalize the order.

    The widget's own result is ignored; the order is marked paid only when
    Zoho reports the session as succeeded. A rejected payment returns 200
    with ``success: false``.
    """
    try:
        result = handler.confirm(
            ConfirmationRequest(
                order_id=payload.order_id,
                session_id=payload.session_id,
                account_id=payload.account_id,
                integrity_token=payload.integrity_token,
            )
        )
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    except IntegrityMismatch as e:
        raise HTTPException(status_code=403, detail=e.reason)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.reason)

    return ConfirmationResponse.model_validate(result)
