from fastapi import APIRouter, Depends, HTTPException, status
import logging

from ..dependencies import get_auth_service
from ..exceptions import AuthError
from ..models.auth_models import WalletLinkRequest, WalletStatusResponse
from ..models.data_models import Account, ErrorResponse
from ..routers.auth import get_current_active_user, internal_error, raise_http_error
from ..services.auth_service import AuthService
from ..services.session_service import TokenData

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/wallet",
    tags=["Wallet Settings"],
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Not authenticated"},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Account service unavailable"},
    }
)


def to_status(account: Account, auth_service: AuthService) -> WalletStatusResponse:
    return WalletStatusResponse(
        account_id=account.account_id,
        email=account.email,
        wallet_address=auth_service.resolver.bound_wallet(account),
        has_passkey=auth_service.resolver.has_passkey(account),
    )


@router.get("", response_model=WalletStatusResponse)
def get_wallet(
    current_user: TokenData = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Returns the wallet bound to the signed-in account, if any."""
    try:
        account = auth_service.wallet_status(current_user.sub)
    except AuthError as e:
        raise_http_error(e)
    return to_status(account, auth_service)


@router.post(
    "/connect",
    response_model=WalletStatusResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "A different wallet is already linked"},
    }
)
def connect_wallet(
    link_request: WalletLinkRequest,
    current_user: TokenData = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Links a wallet to the signed-in account.

    The wallet must sign a challenge from `/auth/challenge`. Accounts that
    sign in with a passkey link their wallet here.
    """
    logger.info(f"Account {current_user.sub} requesting wallet link for {link_request.address}")
    try:
        account = auth_service.link_wallet(
            current_user.sub, link_request.address, link_request.signature, link_request.message
        )
    except AuthError as e:
        raise_http_error(e)
    except Exception as e:
        logger.error(f"Unexpected error linking wallet for account {current_user.sub}: {e}", exc_info=True)
        raise internal_error()
    return to_status(account, auth_service)


@router.post("/disconnect", response_model=WalletStatusResponse)
def disconnect_wallet(
    current_user: TokenData = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Removes the wallet binding from the signed-in account."""
    try:
        account = auth_service.unlink_wallet(current_user.sub)
    except AuthError as e:
        raise_http_error(e)
    return to_status(account, auth_service)
