import copy
import logging
import secrets
import threading
import time
import uuid
from typing import Any, Dict

from ...models.data_models import Account, ExchangeCredential
from .base import Directory, DirectoryError, DuplicateAccountError

logger = logging.getLogger(__name__)


class InMemoryDirectory(Directory):
    """
    Process-local account directory for development and tests.

    Accounts and exchange tokens are lost on restart. Creation is atomic per
    email, so a concurrent second create raises DuplicateAccountError the way
    a real directory reports a conflict.
    """

    name = "memory"

    def __init__(self, token_expire_seconds: int = 900):
        self.token_expire_seconds = token_expire_seconds
        self._accounts: Dict[str, Account] = {}
        self._tokens: Dict[str, ExchangeCredential] = {}  # secret -> credential
        self._lock = threading.Lock()

    def get(self, account_id: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return account.model_copy(deep=True) if account else None

    def get_by_email(self, email: str) -> Account | None:
        with self._lock:
            for account in self._accounts.values():
                if account.email == email:
                    return account.model_copy(deep=True)
        return None

    def create(self, email: str) -> Account:
        with self._lock:
            if any(a.email == email for a in self._accounts.values()):
                raise DuplicateAccountError(f"Account already exists for {email}")
            account = Account(account_id=uuid.uuid4().hex, email=email)
            self._accounts[account.account_id] = account
        logger.info(f"Created account {account.account_id} for email {email}")
        return account.model_copy(deep=True)

    def update_preferences(self, account_id: str, prefs: Dict[str, Any]) -> Account:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise DirectoryError(f"Account {account_id} not found")
            account.preferences = copy.deepcopy(prefs)
            return account.model_copy(deep=True)

    def mint_exchange_token(self, account_id: str) -> ExchangeCredential:
        with self._lock:
            if account_id not in self._accounts:
                raise DirectoryError(f"Account {account_id} not found")
            credential = ExchangeCredential(
                account_id=account_id,
                secret=secrets.token_hex(32),
                expires_at=int(time.time()) + self.token_expire_seconds,
            )
            self._tokens[credential.secret] = credential
        logger.debug(f"Minted exchange token for account {account_id}")
        return credential

    def redeem_exchange_token(self, account_id: str, secret: str) -> bool:
        """Consumes a minted token. Returns False if it is unknown, expired, used or belongs to another account."""
        with self._lock:
            credential = self._tokens.pop(secret, None)
        if credential is None or credential.account_id != account_id:
            return False
        if credential.expires_at is not None and credential.expires_at < time.time():
            return False
        return True

    @property
    def accounts(self) -> list[Account]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._accounts.values()]
