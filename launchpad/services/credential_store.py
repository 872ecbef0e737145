"""On-disk pools of single-use co-signing keypairs.

Two directories hold one JSON file per keypair: the *available* pool and the
*consumed* pool. The file name is the credential's external identifier. A file
is only ever moved between the two directories, never copied, so a credential
is in exactly one pool at a time.

Selection here is read-only and unguarded: two callers can select the same
entry. Exclusive assignment is the job of ``ClaimLedger``.
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from launchpad.errors import DirectoryIOError, NoCredentialAvailable, NotFound
from launchpad.services import encryption
from launchpad.utils.constants import KEYPAIR_SUFFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialHandle:
    identifier: str
    path: Path


@dataclass(frozen=True)
class Credential:
    identifier: str
    keypair: Keypair

    @property
    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    @property
    def secret(self) -> list[int]:
        return list(bytes(self.keypair))


class CredentialStore:
    """Directory-backed available/consumed credential pools."""

    def __init__(self, available_dir: Path, consumed_dir: Path):
        self.available_dir = Path(available_dir)
        self.consumed_dir = Path(consumed_dir)

    def list_available(self) -> list[CredentialHandle]:
        return self._list(self.available_dir)

    def list_consumed(self) -> list[CredentialHandle]:
        if not self.consumed_dir.exists():
            return []
        return self._list(self.consumed_dir)

    def select_random(self) -> CredentialHandle:
        """Pick one available credential uniformly at random. Does not move it."""
        handles = self.list_available()
        if not handles:
            raise NoCredentialAvailable("No keypairs available")
        return random.choice(handles)

    def is_available(self, identifier: str) -> bool:
        return self._entry(self.available_dir, identifier).is_file()

    def is_consumed(self, identifier: str) -> bool:
        return self._entry(self.consumed_dir, identifier).is_file()

    def load(self, identifier: str) -> Credential:
        """Read and decode an available credential's keypair."""
        path = self._entry(self.available_dir, identifier)
        if not path.is_file():
            raise NotFound(f"Keypair file not found: {identifier}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise DirectoryIOError(f"Cannot read keypair {identifier}: {e}") from e
        try:
            keypair = Keypair.from_bytes(encryption.decode_secret(text))
        except Exception as e:
            raise DirectoryIOError(
                f"Keypair {identifier} is not a valid secret key: {e}"
            ) from e
        return Credential(identifier=identifier, keypair=keypair)

    def consume(self, identifier: str) -> None:
        """Move a credential from the available pool to the consumed pool."""
        source = self._entry(self.available_dir, identifier)
        if not source.is_file():
            raise NotFound(f"Keypair file not found: {identifier}")

        destination = self._entry(self.consumed_dir, identifier)
        try:
            self.consumed_dir.mkdir(parents=True, exist_ok=True)
            source.rename(destination)
        except FileNotFoundError as e:
            # Lost a race with another consumer between the check and the move
            raise NotFound(f"Keypair file not found: {identifier}") from e
        except OSError as e:
            raise DirectoryIOError(f"Failed to move keypair {identifier}: {e}") from e
        logger.info(f"Keypair {identifier} moved to {self.consumed_dir}")

    def add(self, keypair: Keypair) -> CredentialHandle:
        """Write a freshly generated keypair into the available pool."""
        identifier = f"{keypair.pubkey()}{KEYPAIR_SUFFIX}"
        path = self._entry(self.available_dir, identifier)
        payload = encryption.encode_secret(bytes(keypair))
        try:
            self.available_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")
        except OSError as e:
            raise DirectoryIOError(f"Failed to write keypair {identifier}: {e}") from e
        return CredentialHandle(identifier=identifier, path=path)

    def _list(self, directory: Path) -> list[CredentialHandle]:
        try:
            entries = sorted(p for p in directory.iterdir() if p.name.endswith(KEYPAIR_SUFFIX))
        except OSError as e:
            raise DirectoryIOError(f"Cannot read keypair directory {directory}: {e}") from e
        return [CredentialHandle(identifier=p.name, path=p) for p in entries if p.is_file()]

    @staticmethod
    def _entry(directory: Path, identifier: str) -> Path:
        if not identifier or Path(identifier).name != identifier or identifier in (".", ".."):
            raise NotFound(f"Invalid keypair identifier: {identifier!r}")
        return directory / identifier

