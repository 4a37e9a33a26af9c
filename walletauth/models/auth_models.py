from pydantic import BaseModel, Field
from typing import Optional

class ChallengeResponse(BaseModel):
    nonce: str = Field(..., description="Unique nonce embedded in the challenge message.")
    issued_at_millis: int = Field(..., description="Issue time in milliseconds since the epoch.")
    message: str = Field(..., description="Message the wallet must sign with personal_sign.")
    expires_in: int = Field(..., description="Seconds until the challenge can no longer be redeemed.")

class AuthRequest(BaseModel):
    email: str = Field(..., description="Email of the account to sign in to (created if unknown).")
    address: str = Field(..., description="The 0x-prefixed wallet address that signed the message.")
    signature: str = Field(..., description="The hex-encoded personal_sign signature.")
    message: str = Field(..., description="The challenge message, or its 'auth-<nonce>' tag.")

class AuthResponse(BaseModel):
    account_id: str = Field(..., description="Identifier of the resolved account.")
    secret: str = Field(..., description="Single-use exchange secret, redeemable for a session.")

class SessionRequest(BaseModel):
    account_id: str
    secret: str

class SessionResponse(BaseModel):
    session_id: str
    account_id: str
    access_token: str = Field(..., description="JWT access token for subsequent authenticated requests.")
    token_type: str = Field("bearer", description="Type of the token (always 'bearer').")

class WalletLinkRequest(BaseModel):
    address: str = Field(..., description="The 0x-prefixed wallet address to link.")
    signature: str = Field(..., description="The hex-encoded personal_sign signature.")
    message: str = Field(..., description="The challenge message, or its 'auth-<nonce>' tag.")

class WalletStatusResponse(BaseModel):
    account_id: str
    email: str
    wallet_address: Optional[str] = Field(None, description="Normalized wallet address bound to the account, if any.")
    has_passkey: bool = False

class StatusResponse(BaseModel):
    status: str = "ok"
