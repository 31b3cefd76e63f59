"""
Operator endpoints for the access token.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_token_manager
from api.schemas import TokenStatus
from payments.errors import TokenUnavailable
from payments.token_manager import TokenManager

router = APIRouter()


@router.get("/token", response_model=TokenStatus)
def token_status(token_manager: TokenManager = Depends(get_token_manager)):
    return token_manager.status()


@router.post("/token/refresh", response_model=TokenStatus)
def refresh_token(token_manager: TokenManager = Depends(get_token_manager)):
    """Force a token refresh outside the schedule."""
    try:
        token_manager.refresh(trigger="manual")
    except TokenUnavailable as e:
        raise HTTPException(status_code=503, detail=e.reason)
    return token_manager.status()
