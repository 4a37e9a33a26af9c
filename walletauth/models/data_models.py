from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any, Optional


class ErrorDetail(BaseModel):
    kind: str = Field(..., description="Stable machine-checkable error kind (e.g. 'unauthorized', 'wallet_mismatch').")
    message: str = Field(..., description="Human-readable explanation.")

class ErrorResponse(BaseModel):
    detail: ErrorDetail

class AuthChallenge(BaseModel):
    model_config = ConfigDict(frozen=True)

    nonce: str
    issued_at_millis: int
    message: str = Field(..., description="Full text the wallet must sign.")

class Account(BaseModel):
    """Projection of a directory user record."""
    account_id: str
    email: str
    preferences: Dict[str, Any] = Field(default_factory=dict)

class ExchangeCredential(BaseModel):
    account_id: str
    secret: str
    expires_at: Optional[int] = Field(None, description="Unix timestamp after which the secret can no longer be redeemed.")

class Session(BaseModel):
    session_id: str
    account_id: str
    expires_at: Optional[int] = None

class ResolvedIdentity(BaseModel):
    account_id: str
    created: bool = False # A new account was created for the email
    bound: bool = False # The wallet was bound during this call
