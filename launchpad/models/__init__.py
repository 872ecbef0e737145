"""Database models."""

from launchpad.models.credential_claim import CredentialClaim, ClaimState
from launchpad.models.signing_session import SigningSession, CreationState

__all__ = [
    "CredentialClaim",
    "ClaimState",
    "SigningSession",
    "CreationState",
]
