"""
Wiring of gateway components for request handlers and the app lifespan.
"""

from datetime import timedelta

from fastapi import Depends
from sqlalchemy.orm import Session

from core.dependencies import get_settings
from core.settings import Settings
from db.session import get_db, get_session_factory
from db.stores import SqlOrderStore, SqlTokenStore
from payments.confirmation import ConfirmationHandler
from payments.integrity import IntegritySigner
from payments.token_manager import TokenManager
from payments.transport import ZohoTransport
from payments.zoho_oauth import ZohoOAuthClient
from payments.zoho_service import ZohoPaymentSessionClient

# Process-wide token manager; its refresh lock must be shared by all requests
_token_manager: TokenManager | None = None


def build_token_manager(settings: Settings) -> TokenManager:
    transport = ZohoTransport.from_settings(settings)
    return TokenManager(
        credentials=settings.credentials,
        oauth_client=ZohoOAuthClient(settings.ZOHO_ACCOUNTS_BASE, transport),
        token_store=SqlTokenStore(get_session_factory(settings)),
        threshold=timedelta(minutes=settings.TOKEN_REFRESH_THRESHOLD_MINUTES),
        interval=timedelta(minutes=settings.TOKEN_REFRESH_INTERVAL_MINUTES),
    )


def init_token_manager(settings: Settings) -> TokenManager:
    global _token_manager
    _token_manager = build_token_manager(settings)
    return _token_manager


def get_token_manager() -> TokenManager:
    """Dependency that provides the token manager."""
    assert (
        _token_manager is not None
    ), "Token manager not initialized. Make sure startup() was called."
    return _token_manager


def clear_token_manager():
    global _token_manager
    if _token_manager is not None:
        _token_manager.stop()
    _token_manager = None


def get_signer(settings: Settings = Depends(get_settings)) -> IntegritySigner:
    return IntegritySigner(
        settings.INTEGRITY_SECRET,
        ttl=timedelta(minutes=settings.INTEGRITY_TOKEN_TTL_MINUTES),
    )


def get_session_client(
    settings: Settings = Depends(get_settings),
    token_manager: TokenManager = Depends(get_token_manager),
) -> ZohoPaymentSessionClient:
    return ZohoPaymentSessionClient(
        credentials=settings.credentials,
        token_manager=token_manager,
        transport=ZohoTransport.from_settings(settings),
        payments_base=settings.ZOHO_PAYMENTS_BASE,
    )


def get_order_store(db: Session = Depends(get_db)) -> SqlOrderStore:
    return SqlOrderStore(db)


def get_confirmation_handler(
    settings: Settings = Depends(get_settings),
    session_client: ZohoPaymentSessionClient = Depends(get_session_client),
    order_store: SqlOrderStore = Depends(get_order_store),
    signer: IntegritySigner = Depends(get_signer),
) -> ConfirmationHandler:
    return ConfirmationHandler(
        account_id=settings.ZOHO_ACCOUNT_ID,
        session_client=session_client,
        order_store=order_store,
        signer=signer,
    )
