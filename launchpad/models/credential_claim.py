"""CredentialClaim model — exclusive, expiring reservation of a pool keypair."""

from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field


class ClaimState(str, Enum):
    FREE = "free"
    CLAIMED = "claimed"
    RETIRED = "retired"


class CredentialClaim(SQLModel, table=True):
    __tablename__ = "credential_claim"

    identifier: str = Field(primary_key=True)  # keypair file name
    state: str = ClaimState.FREE.value
    owner: str | None = None  # request id holding the claim
    deadline: datetime | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
