"""
Session collaborator and the JWT access tokens handed out for a session.

The session store redeems an exchange credential for a session. The backend
then issues a JWT (``sub`` = account id, ``sid`` = session id) that signed-in
routes accept as a bearer token.
"""
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from ..models.data_models import Session
from .directory.appwrite import AppwriteClient, parse_timestamp
from .directory.base import DirectoryError
from .directory.memory import InMemoryDirectory

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """The session store refused or failed the request."""

class InvalidCredentialError(SessionError):
    """The exchange credential is unknown, expired or already used."""


class SessionStore(ABC):
    @abstractmethod
    def create_session(self, account_id: str, secret: str) -> Session:
        ...

    @abstractmethod
    def delete_session(self, account_id: str, session_id: str):
        ...

    @abstractmethod
    def session_exists(self, account_id: str, session_id: str) -> bool:
        ...


class AppwriteSessionStore(SessionStore):
    """Creates sessions from custom tokens through the Appwrite Account API."""

    def __init__(self, client: AppwriteClient):
        self.client = client

    def create_session(self, account_id: str, secret: str) -> Session:
        try:
            response = self.client.request(
                "POST", "/account/sessions/token", use_key=False,
                json={"userId": account_id, "secret": secret},
            )
        except DirectoryError as e:
            raise SessionError(str(e)) from e
        if response.status_code in (400, 401, 404):
            logger.warning(f"Appwrite rejected exchange credential for {account_id}: {self.client.error_message(response)}")
            raise InvalidCredentialError("Invalid or expired exchange credential")
        if response.status_code >= 400:
            logger.error(f"Appwrite session creation failed with HTTP {response.status_code}")
            raise SessionError(f"Session creation failed: HTTP {response.status_code}")
        data = response.json()
        return Session(
            session_id=data["$id"],
            account_id=data.get("userId") or account_id,
            expires_at=parse_timestamp(data.get("expire")),
        )

    def delete_session(self, account_id: str, session_id: str):
        try:
            response = self.client.request("DELETE", f"/users/{account_id}/sessions/{session_id}")
        except DirectoryError as e:
            raise SessionError(str(e)) from e
        if response.status_code == 404:
            logger.info(f"Session {session_id} already gone")
            return
        if response.status_code >= 400:
            logger.error(f"Appwrite session deletion failed with HTTP {response.status_code}")
            raise SessionError(f"Session deletion failed: HTTP {response.status_code}")

    def session_exists(self, account_id: str, session_id: str) -> bool:
        try:
            response = self.client.request("GET", f"/users/{account_id}/sessions")
        except DirectoryError as e:
            raise SessionError(str(e)) from e
        if response.status_code == 404:
            return False
        if response.status_code >= 400:
            logger.error(f"Appwrite session listing failed with HTTP {response.status_code}")
            raise SessionError(f"Session listing failed: HTTP {response.status_code}")
        return any(s.get("$id") == session_id for s in response.json().get("sessions") or [])


class InMemorySessionStore(SessionStore):
    """Sessions for the in-memory directory. Lost on restart."""

    def __init__(self, directory: InMemoryDirectory, session_ttl_seconds: int = 3600):
        self.directory = directory
        self.session_ttl_seconds = session_ttl_seconds
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create_session(self, account_id: str, secret: str) -> Session:
        if not self.directory.redeem_exchange_token(account_id, secret):
            raise InvalidCredentialError("Invalid or expired exchange credential")
        session = Session(
            session_id=uuid.uuid4().hex,
            account_id=account_id,
            expires_at=int(time.time()) + self.session_ttl_seconds,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def delete_session(self, account_id: str, session_id: str):
        with self._lock:
            session = self._sessions.get(session_id)
            if session and session.account_id == account_id:
                del self._sessions[session_id]

    def session_exists(self, account_id: str, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.account_id != account_id:
            return False
        return session.expires_at is None or session.expires_at >= time.time()


# --- Token Payload Model ---
class TokenData(BaseModel):
    sub: str # Account id
    sid: str # Session id


def create_access_token(data: dict, secret_key: str, algorithm: str = "HS256",
                        expires_delta: timedelta | None = None) -> str:
    """Creates a JWT access token."""
    if not secret_key:
        raise SessionError("JWT secret key is not configured")
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> TokenData | None:
    """Returns the token claims, or None if the token is invalid or expired."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
        return TokenData(sub=payload.get("sub"), sid=payload.get("sid"))
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        return None
    except ValidationError as e:
        logger.warning(f"JWT payload validation error: {e}")
        return None
