# walletauth/dependencies.py

import logging
from functools import lru_cache

from . import config
from .challenge_store import ChallengeStore
from .services.auth_service import AuthService
from .services.challenge_service import ChallengeIssuer
from .services.directory.appwrite import AppwriteClient, AppwriteDirectory
from .services.directory.base import Directory
from .services.directory.memory import InMemoryDirectory
from .services.identity_service import IdentityResolver
from .services.session_service import AppwriteSessionStore, InMemorySessionStore, SessionStore
from .services.token_service import TokenIssuer

logger = logging.getLogger(__name__)


def build_backends(backend: str) -> tuple[Directory, SessionStore]:
    """Creates the directory and session store for the configured backend."""
    if backend == "memory":
        directory = InMemoryDirectory(token_expire_seconds=config.EXCHANGE_TOKEN_EXPIRE_SECONDS)
        return directory, InMemorySessionStore(directory)

    client = AppwriteClient(
        endpoint=config.APPWRITE_ENDPOINT,
        project=config.APPWRITE_PROJECT,
        api_key=config.APPWRITE_API_KEY,
        timeout=config.APPWRITE_TIMEOUT_SECONDS,
    )
    return (
        AppwriteDirectory(client, token_expire_seconds=config.EXCHANGE_TOKEN_EXPIRE_SECONDS),
        AppwriteSessionStore(client),
    )


def build_auth_service(directory: Directory, store: ChallengeStore | None = None) -> AuthService:
    challenges = ChallengeIssuer(
        store or ChallengeStore(),
        ttl_seconds=config.CHALLENGE_TTL_SECONDS,
        allow_client_challenges=config.ALLOW_CLIENT_CHALLENGES,
    )
    resolver = IdentityResolver(
        directory,
        wallet_pref_key=config.WALLET_PREF_KEY,
        passkey_pref_key=config.PASSKEY_PREF_KEY,
    )
    return AuthService(challenges, resolver, TokenIssuer(directory))


# --- Process-wide instances, selected once ---
@lru_cache(maxsize=1)
def _backends() -> tuple[Directory, SessionStore]:
    directory, sessions = build_backends(config.DIRECTORY_BACKEND)
    logger.info(f"Account directory backend: {directory.name}")
    return directory, sessions


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    directory, _ = _backends()
    return build_auth_service(directory)


def get_session_store() -> SessionStore:
    return _backends()[1]
