import os

# Configure before the application modules read their settings
os.environ.setdefault("DIRECTORY_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from walletauth import config
from walletauth.challenge_store import ChallengeStore
from walletauth.client import LocalAccountWallet
from walletauth.dependencies import build_auth_service, get_auth_service, get_session_store
from walletauth.main import app
from walletauth.models.auth_models import AuthRequest
from walletauth.services.directory.memory import InMemoryDirectory
from walletauth.services.session_service import InMemorySessionStore


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET_KEY", "test-secret-key")


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory()


@pytest.fixture
def challenge_store() -> ChallengeStore:
    return ChallengeStore()


@pytest.fixture
def auth_service(directory, challenge_store):
    return build_auth_service(directory, challenge_store)


@pytest.fixture
def session_store(directory) -> InMemorySessionStore:
    return InMemorySessionStore(directory)


@pytest.fixture
def client(auth_service, session_store) -> TestClient:
    """Create a test client with in-memory collaborators"""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_session_store] = lambda: session_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def wallet() -> LocalAccountWallet:
    return LocalAccountWallet(Account.create().key)


@pytest.fixture
def other_wallet() -> LocalAccountWallet:
    return LocalAccountWallet(Account.create().key)


@pytest.fixture
def signed_request(auth_service):
    """Builds an AuthRequest signed by ``wallet`` over a freshly issued challenge."""
    def _build(wallet: LocalAccountWallet, email: str = "new@example.com", address: str | None = None) -> AuthRequest:
        challenge = auth_service.issue_challenge()
        signer = wallet.get_active_address()
        return AuthRequest(
            email=email,
            address=address or signer,
            signature=wallet.sign_personal_message(challenge.message, signer),
            message=challenge.message,
        )
    return _build
