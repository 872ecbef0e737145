"""SigningSession model — a pool creation waiting on the user's wallet."""

from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field


class CreationState(str, Enum):
    VALIDATING = "validating"
    CREDENTIAL_ACQUIRED = "credential_acquired"
    UPLOADED = "uploaded"
    CO_SIGNED = "co_signed"
    USER_SIGNED = "user_signed"
    BROADCAST = "broadcast"
    RETIRED = "retired"
    FAILED = "failed"


class SigningSession(SQLModel, table=True):
    __tablename__ = "signing_session"

    id: str = Field(primary_key=True)  # request id
    credential_id: str = Field(index=True)
    mint: str  # credential public key
    user_wallet: str
    token_name: str
    token_symbol: str
    state: str = Field(default=CreationState.CO_SIGNED.value, index=True)
    transaction: str = ""  # base64, co-signed by the credential
    signature: str | None = None  # broadcast transaction signature
    failure_reason: str | None = None
    retired: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime
