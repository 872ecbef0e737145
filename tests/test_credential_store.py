"""Tests for the directory-backed keypair pools."""

import json
from unittest.mock import patch

import pytest
from cryptography.fernet import Fernet
from solders.keypair import Keypair

from conftest import fill_store
from launchpad.errors import DirectoryIOError, NoCredentialAvailable, NotFound
from launchpad.services import encryption
from launchpad.services.credential_store import CredentialStore


def _membership(store: CredentialStore) -> tuple[set[str], set[str]]:
    available = {h.identifier for h in store.list_available()}
    consumed = {h.identifier for h in store.list_consumed()}
    return available, consumed


# ---------------------------------------------------------------------------
# 1. Listing and selection
# ---------------------------------------------------------------------------

class TestListing:
    def test_list_available_sorted_json_only(self, store):
        ids = fill_store(store, 3)
        (store.available_dir / "notes.txt").write_text("ignore me")
        assert [h.identifier for h in store.list_available()] == sorted(ids)

    def test_consumed_pool_absent_is_empty(self, store):
        fill_store(store, 1)
        assert store.list_consumed() == []

    def test_unreadable_available_dir(self, tmp_path):
        store = CredentialStore(tmp_path / "missing", tmp_path / "used")
        with pytest.raises(DirectoryIOError):
            store.list_available()


class TestSelectRandom:
    def test_returns_available_identifier(self, store):
        ids = fill_store(store, 5)
        for _ in range(20):
            assert store.select_random().identifier in ids

    def test_empty_pool(self, store):
        store.available_dir.mkdir(parents=True)
        with pytest.raises(NoCredentialAvailable):
            store.select_random()

    def test_does_not_move_anything(self, store):
        ids = fill_store(store, 2)
        store.select_random()
        assert _membership(store) == (set(ids), set())

    def test_two_selections_may_return_the_same_keypair(self, store):
        a, b = sorted(fill_store(store, 2))
        # Both callers observe the pool before either consumes; nothing stops a collision
        with patch(
            "launchpad.services.credential_store.random.choice",
            side_effect=lambda handles: handles[0],
        ):
            first = store.select_random()
            second = store.select_random()
        assert first.identifier == second.identifier == a


# ---------------------------------------------------------------------------
# 2. Consumption
# ---------------------------------------------------------------------------

class TestConsume:
    def test_moves_between_pools(self, store):
        ids = fill_store(store, 3)
        store.consume(ids[0])

        available, consumed = _membership(store)
        assert consumed == {ids[0]}
        assert available == set(ids[1:])
        assert available.isdisjoint(consumed)
        assert store.is_consumed(ids[0]) and not store.is_available(ids[0])

    def test_creates_consumed_dir(self, store):
        ids = fill_store(store, 1)
        assert not store.consumed_dir.exists()
        store.consume(ids[0])
        assert store.consumed_dir.is_dir()

    def test_consume_twice_fails(self, store):
        ids = fill_store(store, 1)
        store.consume(ids[0])
        with pytest.raises(NotFound):
            store.consume(ids[0])

    def test_unknown_identifier(self, store):
        fill_store(store, 1)
        with pytest.raises(NotFound):
            store.consume("nope.json")

    @pytest.mark.parametrize("identifier", ["../escape.json", "a/b.json", "..", ""])
    def test_path_like_identifiers_rejected(self, store, identifier):
        fill_store(store, 1)
        with pytest.raises(NotFound):
            store.consume(identifier)

    def test_membership_exclusive_throughout(self, store):
        ids = fill_store(store, 4)
        for identifier in ids:
            store.consume(identifier)
            available, consumed = _membership(store)
            assert available.isdisjoint(consumed)
            assert available | consumed == set(ids)


# ---------------------------------------------------------------------------
# 3. Loading and provisioning
# ---------------------------------------------------------------------------

class TestLoad:
    def test_round_trips_added_keypair(self, store):
        keypair = Keypair()
        handle = store.add(keypair)
        assert handle.identifier == f"{keypair.pubkey()}.json"

        credential = store.load(handle.identifier)
        assert credential.pubkey == keypair.pubkey()
        assert credential.secret == list(bytes(keypair))

    def test_reads_solana_cli_format(self, store):
        keypair = Keypair()
        store.available_dir.mkdir(parents=True)
        (store.available_dir / "cli.json").write_text(json.dumps(list(bytes(keypair))))
        assert store.load("cli.json").pubkey == keypair.pubkey()

    def test_missing_file(self, store):
        store.available_dir.mkdir(parents=True)
        with pytest.raises(NotFound):
            store.load("ghost.json")

    def test_corrupt_file(self, store):
        store.available_dir.mkdir(parents=True)
        (store.available_dir / "bad.json").write_text("[1, 2, 3]")
        with pytest.raises(DirectoryIOError):
            store.load("bad.json")

    def test_encrypted_at_rest(self, store):
        keypair = Keypair()
        with patch.object(encryption.settings, "encryption_key", Fernet.generate_key().decode()):
            handle = store.add(keypair)
            assert not handle.path.read_text().startswith("[")
            assert store.load(handle.identifier).pubkey == keypair.pubkey()
