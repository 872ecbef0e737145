"""Domain exceptions for pool creation and pool lookups."""

from typing import Any, Optional


class LaunchpadError(Exception):
    """Base exception for the launchpad service."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(LaunchpadError):
    """User-correctable input errors (not Pydantic)."""

    pass


class NoCredentialAvailable(LaunchpadError):
    """The available credential pool is empty or fully claimed."""

    pass


class UploadError(LaunchpadError):
    """The asset upload service failed or returned an unusable response."""

    pass


class BroadcastError(LaunchpadError):
    """The network rejected the signed transaction.

    ``message`` carries the remote rejection reason verbatim.
    """

    pass


class SerializationError(LaunchpadError):
    """Transaction bytes are malformed or lack the expected signer slots."""

    pass


class UserRejected(LaunchpadError):
    """The user declined to sign, or no wallet was connected."""

    pass


class NotFound(LaunchpadError):
    """A credential or record is not where the caller expected it."""

    pass


class ClaimNotHeld(NotFound):
    """The caller does not hold the claim on a credential."""

    pass


class SessionNotFound(NotFound):
    """No pending signing session exists for a request id."""

    pass


class DirectoryIOError(LaunchpadError):
    """A credential pool location or file could not be read."""

    pass


class InvalidAddress(LaunchpadError):
    """A lookup key is not a well-formed public key."""

    pass


class MetadataEnrichmentError(LaunchpadError):
    """Token metadata could not be fetched for one pool. Always non-fatal."""

    def __init__(
        self,
        message: str,
        mint: str,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.mint = mint
