"""Error taxonomy for wallet authentication.

Every error carries a stable machine-checkable ``kind`` and a human-readable
``message``. Routers translate them to HTTP responses using ``status_code``.
"""
from enum import Enum


class ConflictKind(str, Enum):
    WALLET_MISMATCH = "wallet_mismatch"
    PASSKEY_FIRST = "passkey_first"


class AuthError(Exception):
    kind = "auth_error"
    status_code = 500
    default_message = "Authentication failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class InvalidInputError(AuthError):
    kind = "invalid_input"
    status_code = 400
    default_message = "Invalid request."


class UnauthorizedError(AuthError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Signature does not match the claimed address."


class ConflictError(AuthError):
    status_code = 403

    _messages = {
        ConflictKind.WALLET_MISMATCH: "A different wallet is already linked to this account.",
        ConflictKind.PASSKEY_FIRST: "This account uses a passkey. Sign in with the passkey to link a wallet.",
    }

    def __init__(self, conflict: ConflictKind, message: str | None = None):
        self.conflict = conflict
        super().__init__(message or self._messages[conflict])

    @property
    def kind(self) -> str:
        return self.conflict.value


class UpstreamUnavailableError(AuthError):
    kind = "upstream_unavailable"
    status_code = 500
    default_message = "The account service is unavailable. Please try again."


class UpstreamRaceError(UpstreamUnavailableError):
    kind = "upstream_race"
    default_message = "The account could not be created. Please try again."


class TokenIssuanceError(UpstreamUnavailableError):
    kind = "issuance_failed"
    default_message = "Could not issue a sign-in token. Please try again."
