"""
Wallet sign-in orchestration.

``authenticate`` runs one request through
verify signature -> resolve identity -> issue token, strictly in sequence and
terminal on the first failure. Either an ExchangeCredential is returned or an
AuthError is raised.

Account creation and wallet binding are two directory writes. If the second
fails the account is left without a wallet; it stays loginable and the next
successful sign-in binds the wallet as a first-time link.
"""
import logging
import re

from ..exceptions import InvalidInputError, UnauthorizedError, ConflictError, ConflictKind
from ..models.auth_models import AuthRequest
from ..models.data_models import Account, AuthChallenge, ExchangeCredential
from .challenge_service import ChallengeIssuer
from .identity_service import IdentityResolver
from .signature_service import is_valid_address, normalize_address, verify_signature
from .token_service import TokenIssuer

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SIGNATURE_PATTERN = re.compile(r"^(0[xX])?[0-9a-fA-F]+$")


class AuthService:
    def __init__(self, challenges: ChallengeIssuer, resolver: IdentityResolver, tokens: TokenIssuer):
        self.challenges = challenges
        self.resolver = resolver
        self.tokens = tokens

    def issue_challenge(self) -> AuthChallenge:
        return self.challenges.issue()

    def authenticate(self, req: AuthRequest) -> ExchangeCredential:
        email = (req.email or "").strip()
        if not EMAIL_PATTERN.match(email):
            raise InvalidInputError("A valid email address is required.")
        normalized = self._check_proof(req.address, req.signature, req.message)

        logger.debug(f"Resolving identity for {email}")
        identity = self.resolver.resolve(email, normalized)

        logger.debug(f"Creating exchange token for account {identity.account_id}")
        credential = self.tokens.issue_for(identity.account_id)
        logger.info(
            f"Wallet sign-in succeeded for {email} (account={identity.account_id}, "
            f"created={identity.created}, bound={identity.bound})"
        )
        return credential

    def wallet_status(self, account_id: str) -> Account:
        return self._load_account(account_id)

    def link_wallet(self, account_id: str, address: str, signature: str, message: str) -> Account:
        """
        Binds a wallet to a signed-in account.

        This is the authenticated path for accounts that sign in with a
        passkey, so PASSKEY_FIRST does not apply here.
        """
        normalized = self._check_proof(address, signature, message)
        account = self._load_account(account_id)
        bound = self.resolver.bound_wallet(account)
        if bound and normalize_address(bound) != normalized:
            logger.warning(f"Account {account_id} already linked to {bound}; refused {normalized}")
            raise ConflictError(ConflictKind.WALLET_MISMATCH, "Disconnect the current wallet before linking a different one.")
        if bound:
            return account
        account = self.resolver.bind(account, normalized)
        logger.info(f"Linked wallet {normalized} to signed-in account {account_id}")
        return account

    def unlink_wallet(self, account_id: str) -> Account:
        account = self._load_account(account_id)
        if not self.resolver.bound_wallet(account):
            return account
        account = self.resolver.unbind(account)
        logger.info(f"Unlinked wallet from account {account_id}")
        return account

    def _check_proof(self, address: str, signature: str, message: str) -> str:
        """Validates input, verifies the signature, then redeems the challenge. Returns the normalized address."""
        if not is_valid_address(address):
            raise InvalidInputError("A valid 0x-prefixed wallet address is required.")
        signature = (signature or "").strip()
        if not SIGNATURE_PATTERN.match(signature):
            raise InvalidInputError("Signature must be a hex string.")
        nonce, signed_message = self.challenges.parse(message)

        logger.debug(f"Verifying signature for {address}")
        if not verify_signature(signed_message, signature, address):
            logger.warning(f"Signature verification failed for address {address}")
            raise UnauthorizedError()

        # Redeem only after the signature verifies
        self.challenges.redeem(nonce)
        return normalize_address(address)

    def _load_account(self, account_id: str) -> Account:
        account = self.resolver.load(account_id)
        if account is None:
            raise UnauthorizedError("Account no longer exists.")
        return account
