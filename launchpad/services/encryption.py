"""Keypair file contents, optionally Fernet-encrypted at rest.

A keypair file holds the 64-byte secret key as a JSON byte array (the Solana
CLI format). With LP_ENCRYPTION_KEY set, new files hold a Fernet token wrapping
that array instead. Both forms are readable.
"""

import json
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from launchpad.config import settings

SECRET_KEY_LENGTH = 64


@lru_cache
def _fernet(key: str) -> Fernet:
    return Fernet(key.encode())


def _get_fernet() -> Fernet:
    if not settings.encryption_key:
        raise RuntimeError(
            "LP_ENCRYPTION_KEY not set. Generate one with: "
            "python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
        )
    return _fernet(settings.encryption_key)


def encryption_enabled() -> bool:
    return bool(settings.encryption_key)


def encode_secret(secret: bytes) -> str:
    """Serialize a secret key for writing to a keypair file."""
    text = json.dumps(list(secret))
    if encryption_enabled():
        return _get_fernet().encrypt(text.encode()).decode()
    return text


def decode_secret(text: str) -> bytes:
    """Parse keypair file contents back into the 64-byte secret key."""
    text = text.strip()
    if not text.startswith("["):
        try:
            text = _get_fernet().decrypt(text.encode()).decode()
        except InvalidToken as e:
            raise ValueError("not a JSON byte array or a Fernet token for LP_ENCRYPTION_KEY") from e

    secret = json.loads(text)
    if not isinstance(secret, list) or len(secret) != SECRET_KEY_LENGTH:
        raise ValueError(f"expected a JSON array of {SECRET_KEY_LENGTH} bytes")
    return bytes(secret)
