"""
Account directory collaborator.

The directory owns user records. This service only reads accounts, creates
them for unseen emails, rewrites their preferences and asks the directory to
mint single-use exchange tokens.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from ...models.data_models import Account, ExchangeCredential


class DirectoryError(Exception):
    """Base class for directory failures."""

class DirectoryUnavailableError(DirectoryError):
    """The directory could not be reached or answered with a server error."""

class DuplicateAccountError(DirectoryError):
    """An account with the same email was created concurrently."""


class Directory(ABC):
    name = "directory"

    @abstractmethod
    def get(self, account_id: str) -> Account | None:
        ...

    @abstractmethod
    def get_by_email(self, email: str) -> Account | None:
        """Exact lookup by email as stored."""

    @abstractmethod
    def create(self, email: str) -> Account:
        """Creates an account. Raises DuplicateAccountError if the email is taken."""

    @abstractmethod
    def update_preferences(self, account_id: str, prefs: Dict[str, Any]) -> Account:
        """Replaces the whole preferences object of the account."""

    @abstractmethod
    def mint_exchange_token(self, account_id: str) -> ExchangeCredential:
        ...
