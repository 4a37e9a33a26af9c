import logging

from ..exceptions import ConflictError, ConflictKind, UpstreamRaceError, UpstreamUnavailableError
from ..models.data_models import Account, ResolvedIdentity
from .directory.base import Directory, DirectoryError, DuplicateAccountError
from .signature_service import normalize_address

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Finds or creates the account for an email and binds a wallet to it.

    Binding rules for an existing account, checked in this order:

    1. A passkey account rejects with PASSKEY_FIRST unless this exact wallet
       is already bound (so a passkey plus a mismatched wallet is PASSKEY_FIRST).
    2. A different bound wallet rejects with WALLET_MISMATCH.
    3. No bound wallet: bind this one.
    4. Same wallet: nothing to write.
    """

    def __init__(self, directory: Directory, wallet_pref_key: str = "walletAddress",
                 passkey_pref_key: str = "passkeyCredentials"):
        self.directory = directory
        self.wallet_pref_key = wallet_pref_key
        self.passkey_pref_key = passkey_pref_key

    def bound_wallet(self, account: Account) -> str | None:
        return account.preferences.get(self.wallet_pref_key) or None

    def has_passkey(self, account: Account) -> bool:
        return bool(account.preferences.get(self.passkey_pref_key))

    def resolve(self, email: str, normalized_address: str) -> ResolvedIdentity:
        """Returns the account bound to ``normalized_address`` for ``email``. Raises ConflictError or UpstreamUnavailableError."""
        account = self._call("look up account", self.directory.get_by_email, email)
        if account is not None:
            return self._resolve_existing(account, normalized_address)

        try:
            created = self.directory.create(email)
        except DuplicateAccountError:
            logger.warning(f"Concurrent account creation for {email}; retrying lookup once")
        except DirectoryError as e:
            logger.error(f"Failed to create account for {email}: {e}")
            raise UpstreamUnavailableError() from e
        else:
            return self._bind_new(created, normalized_address)

        account = self._call("look up account", self.directory.get_by_email, email)
        if account is None:
            logger.error(f"Account for {email} still missing after a concurrent create was reported")
            raise UpstreamRaceError()
        return self._resolve_existing(account, normalized_address)

    def _resolve_existing(self, account: Account, normalized_address: str) -> ResolvedIdentity:
        bound = self.bound_wallet(account)
        matches = bool(bound) and normalize_address(bound) == normalized_address

        # Passkey accounts only sign in with a wallet already linked through a passkey session
        if self.has_passkey(account) and not matches:
            logger.info(f"Account {account.account_id} uses a passkey; anonymous wallet linking refused")
            raise ConflictError(ConflictKind.PASSKEY_FIRST)

        if bound and not matches:
            logger.warning(f"Account {account.account_id} is bound to {bound}; refused {normalized_address}")
            raise ConflictError(ConflictKind.WALLET_MISMATCH)

        if not bound:
            self.bind(account, normalized_address)
            logger.info(f"Linked wallet {normalized_address} to existing account {account.account_id}")
            return ResolvedIdentity(account_id=account.account_id, bound=True)

        return ResolvedIdentity(account_id=account.account_id)

    def _bind_new(self, account: Account, normalized_address: str) -> ResolvedIdentity:
        try:
            self.bind(account, normalized_address)
        except UpstreamUnavailableError:
            # The account exists without a wallet; the next sign-in links it as a first-time bind.
            logger.warning(f"Account {account.account_id} was created but the wallet could not be bound")
            raise
        logger.info(f"Created account {account.account_id} with wallet {normalized_address}")
        return ResolvedIdentity(account_id=account.account_id, created=True, bound=True)

    def load(self, account_id: str) -> Account | None:
        return self._call("get account", self.directory.get, account_id)

    def bind(self, account: Account, normalized_address: str) -> Account:
        prefs = dict(account.preferences)
        prefs[self.wallet_pref_key] = normalized_address
        return self._call("update preferences", self.directory.update_preferences, account.account_id, prefs)

    def unbind(self, account: Account) -> Account:
        prefs = dict(account.preferences)
        prefs.pop(self.wallet_pref_key, None)
        return self._call("update preferences", self.directory.update_preferences, account.account_id, prefs)

    def _call(self, action: str, func, *args):
        try:
            return func(*args)
        except DirectoryError as e:
            logger.error(f"Directory failed to {action}: {e}")
            raise UpstreamUnavailableError() from e
