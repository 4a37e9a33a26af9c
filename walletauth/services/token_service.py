import logging

from ..exceptions import TokenIssuanceError
from ..models.data_models import ExchangeCredential
from .directory.base import Directory, DirectoryError

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Mints single-use exchange credentials through the directory. Failures are not retried."""

    def __init__(self, directory: Directory):
        self.directory = directory

    def issue_for(self, account_id: str) -> ExchangeCredential:
        try:
            credential = self.directory.mint_exchange_token(account_id)
        except DirectoryError as e:
            logger.error(f"Failed to mint exchange token for account {account_id}: {e}")
            raise TokenIssuanceError() from e
        logger.info(f"Exchange token issued for account {account_id}")
        return credential
