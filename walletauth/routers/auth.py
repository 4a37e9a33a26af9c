from fastapi import APIRouter, HTTPException, status, Depends
from fastapi.security import OAuth2PasswordBearer # For JWT extraction
from datetime import timedelta
import logging

from ..models.auth_models import (
    AuthRequest,
    AuthResponse,
    ChallengeResponse,
    SessionRequest,
    SessionResponse,
    StatusResponse,
)
from ..models.data_models import ErrorResponse
from ..exceptions import AuthError
from ..dependencies import get_auth_service, get_session_store
from ..services.auth_service import AuthService
from ..services.session_service import (
    InvalidCredentialError,
    SessionError,
    SessionStore,
    TokenData,
    create_access_token,
    decode_access_token,
)
from .. import config # Import config for JWT settings

# --- JWT Configuration ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/session") # Dummy URL, sessions come from /auth/session

router = APIRouter(
    prefix="/auth",
    tags=["Authentication (Wallet)"],
)

logger = logging.getLogger(__name__)


# --- Helper Functions ---
def raise_http_error(exc: AuthError):
    """Maps a domain error to an HTTPException with a stable kind and message."""
    if exc.status_code >= 500:
        logger.error(f"Authentication failed upstream ({exc.kind}): {exc}")
    else:
        logger.warning(f"Authentication rejected ({exc.kind}): {exc}")
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail()) from exc


def internal_error(kind: str = "internal_error", message: str = "An internal error occurred.") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"kind": kind, "message": message},
    )


# --- API Endpoints ---
@router.get("/challenge", response_model=ChallengeResponse)
def get_challenge(auth_service: AuthService = Depends(get_auth_service)):
    """
    Issues a single-use challenge message for the wallet to sign with personal_sign.
    """
    challenge = auth_service.issue_challenge()
    return ChallengeResponse(
        nonce=challenge.nonce,
        issued_at_millis=challenge.issued_at_millis,
        message=challenge.message,
        expires_in=config.CHALLENGE_TTL_SECONDS,
    )


@router.post(
    "/authenticate",
    response_model=AuthResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    }
)
def authenticate(auth_request: AuthRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Verifies a signed challenge and returns a single-use exchange credential.

    The account for the email is created on first sign-in and the wallet is
    bound to it. An account already bound to another wallet, or one that uses
    a passkey, is refused with 403.

    - **email**: Email of the account.
    - **address**: The wallet address that signed the message.
    - **signature**: The hex-encoded signature string.
    - **message**: The challenge message (or its `auth-<nonce>` tag).
    """
    try:
        credential = auth_service.authenticate(auth_request)
    except AuthError as e:
        raise_http_error(e)
    except Exception as e:
        logger.error(f"Unexpected error during wallet authentication: {e}", exc_info=True)
        raise internal_error(message="An internal error occurred during authentication.")

    return AuthResponse(account_id=credential.account_id, secret=credential.secret)


@router.post(
    "/session",
    response_model=SessionResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    }
)
def create_session(session_request: SessionRequest, sessions: SessionStore = Depends(get_session_store)):
    """
    Redeems an exchange credential for a session and returns a JWT access token.
    """
    if not config.JWT_SECRET_KEY:
        logger.error("Missing JWT_SECRET_KEY configuration.")
        raise internal_error(message="Server configuration error.")

    try:
        session = sessions.create_session(session_request.account_id, session_request.secret)
    except InvalidCredentialError as e:
        logger.warning(f"Exchange credential rejected for account {session_request.account_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"kind": "unauthorized", "message": "Invalid or expired exchange credential."},
        )
    except SessionError as e:
        logger.error(f"Session store failed for account {session_request.account_id}: {e}")
        raise internal_error("upstream_unavailable", "The session service is unavailable. Please try again.")

    access_token = create_access_token(
        data={"sub": session.account_id, "sid": session.session_id},
        secret_key=config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        expires_delta=timedelta(minutes=config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    logger.info(f"Session {session.session_id} created for account {session.account_id}")
    return SessionResponse(
        session_id=session.session_id,
        account_id=session.account_id,
        access_token=access_token,
    )


# --- Secure Dependency for Authenticated User ---
def get_current_active_user(
    token: str = Depends(oauth2_scheme),
    sessions: SessionStore = Depends(get_session_store),
) -> TokenData:
    """
    Dependency that verifies the JWT token from the Authorization header
    and returns its claims (account id and session id).
    Raises HTTPException 401 if the token is invalid or expired, or its session was deleted.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"kind": "unauthorized", "message": "Could not validate credentials"},
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not config.JWT_SECRET_KEY:
        logger.error("Missing JWT_SECRET_KEY configuration.")
        raise credentials_exception

    token_data = decode_access_token(token, config.JWT_SECRET_KEY, config.JWT_ALGORITHM)
    if token_data is None:
        raise credentials_exception

    try:
        active = sessions.session_exists(token_data.sub, token_data.sid)
    except SessionError as e:
        logger.error(f"Could not check session {token_data.sid}: {e}")
        raise internal_error("upstream_unavailable", "The session service is unavailable. Please try again.")
    if not active:
        logger.warning(f"Token refers to an ended session: {token_data.sid}")
        raise credentials_exception
    return token_data


@router.delete(
    "/session",
    response_model=StatusResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    }
)
def delete_session(
    current_user: TokenData = Depends(get_current_active_user),
    sessions: SessionStore = Depends(get_session_store),
):
    """Signs out: deletes the session behind the bearer token."""
    try:
        sessions.delete_session(current_user.sub, current_user.sid)
    except SessionError as e:
        logger.error(f"Failed to delete session {current_user.sid}: {e}")
        raise internal_error("upstream_unavailable", "The session service is unavailable. Please try again.")
    logger.info(f"Session {current_user.sid} deleted for account {current_user.sub}")
    return StatusResponse()
