"""CLI tool for operator tasks.

Usage:
    python -m launchpad.cli generate-keypairs [count] [suffix]
    python -m launchpad.cli status
    python -m launchpad.cli create-pool
"""

import asyncio
import base64
import json
import logging
import mimetypes
import sys
from pathlib import Path

from solders.keypair import Keypair

from launchpad.database import create_db_and_tables
from launchpad.errors import LaunchpadError
from launchpad.utils.logging import setup_logging

logger = logging.getLogger(__name__)

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
DEFAULT_WALLET_PATH = Path.home() / ".config" / "solana" / "id.json"


def generate_vanity_keypair(suffix: str = "") -> Keypair:
    """Generate keypairs until the public key ends with ``suffix``."""
    invalid = set(suffix) - set(BASE58_ALPHABET)
    if invalid:
        raise ValueError(f"Suffix contains characters outside base58: {''.join(sorted(invalid))}")

    attempts = 0
    while True:
        keypair = Keypair()
        attempts += 1
        if str(keypair.pubkey()).endswith(suffix):
            break
        if attempts % 1000 == 0:
            logger.info(f"Tried {attempts} keypairs...")

    logger.info(f"Found {keypair.pubkey()} after {attempts} attempts")
    return keypair


def generate_keypairs(count: int, suffix: str = ""):
    """Provision ``count`` keypairs into the available pool."""
    from launchpad.api.deps import get_credential_store

    store = get_credential_store()
    for _ in range(count):
        handle = store.add(generate_vanity_keypair(suffix))
        print(f"Added {handle.identifier}")
    print(f"\n{count} keypair(s) written to {store.available_dir}")


def status():
    from launchpad.api.deps import get_credential_store

    store = get_credential_store()
    print(f"Available: {len(store.list_available())}  ({store.available_dir})")
    print(f"Consumed:  {len(store.list_consumed())}  ({store.consumed_dir})")


def load_wallet(path: Path) -> Keypair:
    return Keypair.from_bytes(bytes(json.loads(path.read_text(encoding="utf-8"))))


def logo_data_url(path: Path) -> str:
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    return f"data:{mime};base64,{base64.b64encode(path.read_bytes()).decode()}"


def create_pool():
    """Create a pool in-process, signing with a local wallet keypair."""
    from launchpad.api.deps import close_clients, get_orchestrator
    from launchpad.services.wallet import KeypairWallet

    create_db_and_tables()

    token_name = input("Token name: ").strip()
    token_symbol = input("Token symbol: ").strip()
    logo_path = Path(input("Logo file: ").strip()).expanduser()
    website = input("Website (optional): ").strip()
    twitter = input("Twitter (optional): ").strip()
    wallet_path = input(f"Wallet keypair [{DEFAULT_WALLET_PATH}]: ").strip()
    wallet_path = Path(wallet_path).expanduser() if wallet_path else DEFAULT_WALLET_PATH

    if not logo_path.is_file():
        print(f"Logo file not found: {logo_path}")
        sys.exit(1)
    try:
        wallet = KeypairWallet(load_wallet(wallet_path))
    except (OSError, ValueError) as e:
        print(f"Cannot load wallet keypair {wallet_path}: {e}")
        sys.exit(1)

    request = {
        "token_name": token_name,
        "token_symbol": token_symbol,
        "token_logo": logo_data_url(logo_path),
        "website": website,
        "twitter": twitter,
    }

    async def _run():
        try:
            return await get_orchestrator().run(request, wallet)
        finally:
            await close_clients()

    try:
        result = asyncio.run(_run())
    except LaunchpadError as e:
        print(f"\nPool creation failed ({type(e).__name__}): {e.message}")
        sys.exit(1)

    print(f"\nPool created for mint {result.mint}")
    if result.signature:
        print(f"Signature: {result.signature}")
    if not result.retired:
        print("Warning: pool keypair could not be moved to the consumed pool.")


def main():
    setup_logging()
    if len(sys.argv) < 2:
        print("Usage: python -m launchpad.cli <command>")
        print("Commands: generate-keypairs [count] [suffix], status, create-pool")
        sys.exit(1)

    command = sys.argv[1]
    if command == "generate-keypairs":
        count = int(sys.argv[2]) if len(sys.argv) > 2 else 1
        suffix = sys.argv[3] if len(sys.argv) > 3 else ""
        generate_keypairs(count, suffix)
    elif command == "status":
        status()
    elif command == "create-pool":
        create_pool()
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
