"""Shared fixtures: throwaway keypair pools and an in-memory database."""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from launchpad.database import create_db_and_tables
from launchpad.engine.orchestrator import PoolCreationOrchestrator
from launchpad.services.broadcast_client import BroadcastResult
from launchpad.services.claims import ClaimLedger
from launchpad.services.credential_store import CredentialStore

LOGO_BASE64 = base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32).decode()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    return CredentialStore(tmp_path / "keypairs", tmp_path / "used_keypairs")


@pytest.fixture
def ledger(store, engine) -> ClaimLedger:
    return ClaimLedger(store, engine=engine, claim_ttl_seconds=60)


def fill_store(store: CredentialStore, count: int) -> list[str]:
    """Provision ``count`` fresh keypairs; returns their identifiers."""
    return [store.add(Keypair()).identifier for _ in range(count)]


def pool_creation_tx(mint: Pubkey, user_wallet: Pubkey, extra_signer: Pubkey | None = None) -> Transaction:
    """An unsigned transaction requiring ``user_wallet`` (fee payer) and ``mint`` signatures."""
    accounts = [AccountMeta(mint, True, True), AccountMeta(user_wallet, True, True)]
    if extra_signer is not None:
        accounts.append(AccountMeta(extra_signer, True, False))
    instruction = Instruction(Pubkey.new_unique(), b"\x01create", accounts)
    message = Message.new_with_blockhash([instruction], user_wallet, Hash.default())
    return Transaction.new_unsigned(message)


def encode(tx: Transaction) -> str:
    return base64.b64encode(bytes(tx)).decode()


def unsigned_for(request) -> str:
    """What the upload service returns: a transaction for the requested mint and wallet."""
    return encode(pool_creation_tx(
        Pubkey.from_string(request.mint_identity),
        Pubkey.from_string(request.user_wallet),
    ))


@pytest.fixture
def upload_client():
    client = MagicMock()
    client.upload = AsyncMock(side_effect=unsigned_for)
    return client


@pytest.fixture
def broadcast_client():
    client = MagicMock()
    client.submit = AsyncMock(return_value=BroadcastResult(success=True, signature="5igNaTuRe"))
    return client


@pytest.fixture
def orchestrator(store, ledger, upload_client, broadcast_client, engine):
    return PoolCreationOrchestrator(
        store=store,
        claims=ledger,
        upload_client=upload_client,
        broadcast_client=broadcast_client,
        engine=engine,
        session_ttl_seconds=60,
    )
