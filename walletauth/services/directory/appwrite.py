import json
import logging
from datetime import datetime
from typing import Any, Dict

import requests

from ...models.data_models import Account, ExchangeCredential
from .base import Directory, DirectoryError, DirectoryUnavailableError, DuplicateAccountError

logger = logging.getLogger(__name__)


class AppwriteClient:
    """Thin wrapper around the Appwrite REST API using a shared requests.Session."""

    def __init__(self, endpoint: str, project: str, api_key: str | None = None,
                 timeout: float = 10.0, session: requests.Session | None = None):
        if not endpoint or not project:
            raise ValueError("Appwrite endpoint and project ID are required")
        self.endpoint = endpoint.rstrip("/")
        self.project = project
        self.api_key = api_key
        self.timeout = timeout
        self.http = session or requests.Session()

    def request(self, method: str, path: str, *, use_key: bool = True, **kwargs) -> requests.Response:
        """Sends a request and returns the response. Raises DirectoryUnavailableError on transport or 5xx errors."""
        headers = {
            "Content-Type": "application/json",
            "X-Appwrite-Project": self.project,
        }
        if use_key and self.api_key:
            headers["X-Appwrite-Key"] = self.api_key
        url = f"{self.endpoint}{path}"
        try:
            response = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout calling Appwrite {method} {path}: {e}")
            raise DirectoryUnavailableError(f"Appwrite request timed out: {method} {path}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling Appwrite {method} {path}: {type(e).__name__} - {e}", exc_info=True)
            raise DirectoryUnavailableError(f"Appwrite request failed: {method} {path}") from e

        if response.status_code >= 500:
            logger.error(f"Appwrite {method} {path} returned HTTP {response.status_code}: {response.text}")
            raise DirectoryUnavailableError(f"Appwrite returned HTTP {response.status_code}")
        return response

    @staticmethod
    def error_message(response: requests.Response) -> str:
        try:
            return response.json().get("message") or response.text
        except ValueError:
            return response.text


def parse_timestamp(value: Any) -> int | None:
    """Converts an Appwrite ISO 8601 datetime to a unix timestamp."""
    if not value:
        return None
    try:
        return int(datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp())
    except ValueError:
        logger.warning(f"Unparseable Appwrite timestamp: {value!r}")
        return None


class AppwriteDirectory(Directory):
    """Account directory backed by the Appwrite Users API (server API key required)."""

    name = "appwrite"

    def __init__(self, client: AppwriteClient, token_expire_seconds: int = 900):
        self.client = client
        self.token_expire_seconds = token_expire_seconds

    @staticmethod
    def _to_account(user: Dict[str, Any]) -> Account:
        return Account(
            account_id=user["$id"],
            email=user.get("email") or "",
            preferences=user.get("prefs") or {},
        )

    def _raise_for_status(self, response: requests.Response, action: str):
        if response.status_code >= 400:
            message = self.client.error_message(response)
            logger.error(f"Appwrite {action} failed with HTTP {response.status_code}: {message}")
            raise DirectoryError(f"{action} failed: HTTP {response.status_code}")

    def get(self, account_id: str) -> Account | None:
        response = self.client.request("GET", f"/users/{account_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "get user")
        return self._to_account(response.json())

    def get_by_email(self, email: str) -> Account | None:
        # Appwrite stores emails lower-cased
        wanted = email.lower()
        query = json.dumps({"method": "equal", "attribute": "email", "values": [wanted]})
        response = self.client.request("GET", "/users", params={"queries[]": [query]})
        self._raise_for_status(response, "list users")
        users = response.json().get("users") or []
        matches = [u for u in users if (u.get("email") or "").lower() == wanted]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(f"Directory returned {len(matches)} accounts for email {email}; using the first")
        return self._to_account(matches[0])

    def create(self, email: str) -> Account:
        response = self.client.request("POST", "/users", json={"userId": "unique()", "email": email})
        if response.status_code == 409:
            logger.info(f"Appwrite reported an existing account for email {email}")
            raise DuplicateAccountError(f"Account already exists for {email}")
        self._raise_for_status(response, "create user")
        account = self._to_account(response.json())
        logger.info(f"Created Appwrite user {account.account_id} for email {email}")
        return account

    def update_preferences(self, account_id: str, prefs: Dict[str, Any]) -> Account:
        response = self.client.request("PATCH", f"/users/{account_id}/prefs", json={"prefs": prefs})
        self._raise_for_status(response, "update preferences")
        # The prefs endpoint returns only the preferences object
        account = self.get(account_id)
        if account is None:
            raise DirectoryError(f"Account {account_id} disappeared after preferences update")
        return account

    def mint_exchange_token(self, account_id: str) -> ExchangeCredential:
        response = self.client.request(
            "POST", f"/users/{account_id}/tokens", json={"expire": self.token_expire_seconds}
        )
        self._raise_for_status(response, "create token")
        token = response.json()
        secret = token.get("secret")
        if not secret:
            logger.error(f"Appwrite token response for {account_id} is missing the secret")
            raise DirectoryError("Token response did not include a secret")
        return ExchangeCredential(
            account_id=token.get("userId") or account_id,
            secret=secret,
            expires_at=parse_timestamp(token.get("expire")),
        )
