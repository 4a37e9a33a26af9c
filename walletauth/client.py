"""
Client half of the wallet sign-in flow.

``WalletAuthClient`` fetches a challenge, has the wallet sign it, submits the
proof to ``POST /auth/authenticate`` and can redeem the resulting exchange
credential for a session.

Example:
    wallet = LocalAccountWallet(private_key)
    client = WalletAuthClient("http://localhost:8000", wallet)
    session = client.sign_in("user@example.com")
"""
import logging
from abc import ABC, abstractmethod

import requests
from eth_account import Account
from eth_account.messages import encode_defunct

from .models.auth_models import AuthResponse, ChallengeResponse, SessionResponse

logger = logging.getLogger(__name__)


class WalletError(Exception):
    """The wallet is unavailable or refused to sign."""


class WalletAuthClientError(Exception):
    def __init__(self, kind: str, message: str, status_code: int | None = None):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        super().__init__(f"{kind}: {message}")


class Wallet(ABC):
    """Capability of a user's wallet: report the active address and sign personal messages."""

    @abstractmethod
    def get_active_address(self) -> str:
        ...

    @abstractmethod
    def sign_personal_message(self, message: str, address: str) -> str:
        """Returns the 0x-prefixed hex signature of ``message`` (EIP-191 personal_sign)."""


class LocalAccountWallet(Wallet):
    """Wallet backed by a local private key."""

    def __init__(self, private_key: str):
        self.account = Account.from_key(private_key)

    def get_active_address(self) -> str:
        return self.account.address

    def sign_personal_message(self, message: str, address: str) -> str:
        if address.lower() != self.account.address.lower():
            raise WalletError(f"Wallet cannot sign for {address}")
        signed = self.account.sign_message(encode_defunct(text=message))
        signature = signed.signature.hex()
        return signature if signature.startswith("0x") else f"0x{signature}"


class WalletAuthClient:
    def __init__(self, base_url: str, wallet: Wallet, timeout: float = 10.0,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.wallet = wallet
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {url} failed: {type(e).__name__} - {e}")
            raise WalletAuthClientError("network_error", str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            detail = data.get("detail") if isinstance(data, dict) else None
            if isinstance(detail, dict):
                raise WalletAuthClientError(detail.get("kind", "error"), detail.get("message", ""), response.status_code)
            raise WalletAuthClientError("error", str(detail or response.text), response.status_code)
        return data

    def get_challenge(self) -> ChallengeResponse:
        return ChallengeResponse(**self._request("GET", "/auth/challenge"))

    def authenticate(self, email: str) -> AuthResponse:
        """Signs a fresh challenge with the wallet and exchanges it for an exchange credential."""
        address = self.wallet.get_active_address()
        if not address:
            raise WalletError("No wallet account selected")
        challenge = self.get_challenge()
        signature = self.wallet.sign_personal_message(challenge.message, address)
        logger.info(f"Authenticating {email} with wallet {address}")
        data = self._request("POST", "/auth/authenticate", json={
            "email": email,
            "address": address,
            "signature": signature,
            "message": challenge.message,
        })
        return AuthResponse(**data)

    def create_session(self, credential: AuthResponse) -> SessionResponse:
        data = self._request("POST", "/auth/session", json={
            "account_id": credential.account_id,
            "secret": credential.secret,
        })
        return SessionResponse(**data)

    def sign_in(self, email: str) -> SessionResponse:
        return self.create_session(self.authenticate(email))

    def sign_out(self, access_token: str):
        self._request("DELETE", "/auth/session", headers={"Authorization": f"Bearer {access_token}"})
