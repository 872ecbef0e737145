"""HTTP tests for the credential, pool and system routers."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from solders.keypair import Keypair
from sqlmodel import Session

from conftest import LOGO_BASE64, encode, fill_store
from launchpad.api.deps import get_credential_store, get_orchestrator, get_pool_reader
from launchpad.config import settings
from launchpad.database import get_session
from launchpad.errors import InvalidAddress, UploadError
from launchpad.main import app
from launchpad.services.transactions import decode_transaction


OPERATOR_KEY = "operator-test-key"


@pytest.fixture
def pool_reader():
    reader = MagicMock()
    reader.list_pools_by_creator = AsyncMock(return_value=[])
    return reader


@pytest.fixture
def client(store, orchestrator, pool_reader, engine, monkeypatch):
    def _session():
        with Session(engine) as session:
            yield session

    monkeypatch.setattr(settings, "operator_api_key", OPERATOR_KEY)
    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_pool_reader] = lambda: pool_reader
    app.dependency_overrides[get_session] = _session
    yield TestClient(app, headers={"Authorization": f"Bearer {OPERATOR_KEY}"})
    app.dependency_overrides.clear()


def _create_body(wallet: Keypair | None, **overrides):
    body = {"tokenName": "Test Token", "tokenSymbol": "TEST", "tokenLogo": LOGO_BASE64}
    if wallet is not None:
        body["userWallet"] = str(wallet.pubkey())
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# 1. Credential pools
# ---------------------------------------------------------------------------

class TestCredentialsApi:
    def test_list(self, client, store):
        ids = fill_store(store, 2)
        store.consume(ids[0])

        resp = client.get("/api/credentials")
        assert resp.status_code == 200
        assert resp.json() == {
            "available": [ids[1]],
            "consumed": [ids[0]],
            "availableCount": 1,
            "consumedCount": 1,
        }

    def test_select(self, client, store):
        ids = fill_store(store, 3)
        resp = client.get("/api/credentials/select")
        assert resp.status_code == 200
        data = resp.json()
        assert data["identifier"] in ids
        assert len(data["secret"]) == 64
        assert store.is_available(data["identifier"])

    def test_select_empty(self, client, store):
        store.available_dir.mkdir(parents=True)
        resp = client.get("/api/credentials/select")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No keypairs available"

    def test_retire(self, client, store):
        ids = fill_store(store, 1)
        resp = client.post("/api/credentials/retire", json={"identifier": ids[0]})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Keypair moved to used_keypairs"}
        assert store.is_consumed(ids[0])

    def test_retire_twice(self, client, store):
        ids = fill_store(store, 1)
        client.post("/api/credentials/retire", json={"identifier": ids[0]})
        resp = client.post("/api/credentials/retire", json={"identifier": ids[0]})
        assert resp.status_code == 404

    def test_retire_missing_identifier(self, client):
        resp = client.post("/api/credentials/retire", json={})
        assert resp.status_code == 400

    def test_retire_without_body(self, client, store):
        ids = fill_store(store, 1)
        resp = client.post("/api/credentials/retire")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Keypair identifier is required"
        assert store.is_available(ids[0])


# ---------------------------------------------------------------------------
# 2. Pools by creator
# ---------------------------------------------------------------------------

class TestPoolsByCreatorApi:
    def test_zero_pools(self, client):
        creator = str(Keypair().pubkey())
        resp = client.get("/api/pools/by-creator", params={"creatorAddress": creator})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "creator": creator, "poolCount": 0, "pools": []}

    def test_body_variant(self, client, pool_reader):
        creator = str(Keypair().pubkey())
        resp = client.post("/api/pools/by-creator", json={"creatorAddress": creator})
        assert resp.status_code == 200
        pool_reader.list_pools_by_creator.assert_awaited_once_with(creator)

    def test_missing_creator(self, client):
        assert client.get("/api/pools/by-creator").status_code == 400
        assert client.post("/api/pools/by-creator", json={}).status_code == 400

    def test_invalid_creator(self, client, pool_reader):
        pool_reader.list_pools_by_creator.side_effect = InvalidAddress("Invalid creator address format.")
        resp = client.get("/api/pools/by-creator", params={"creatorAddress": "xyz"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "InvalidAddress"

    def test_unexpected_failure(self, client, pool_reader):
        pool_reader.list_pools_by_creator.side_effect = RuntimeError("rpc down")
        resp = client.get("/api/pools/by-creator", params={"creatorAddress": str(Keypair().pubkey())})
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": "Internal server error while fetching pools",
            "details": "rpc down",
        }


# ---------------------------------------------------------------------------
# 3. Pool creation
# ---------------------------------------------------------------------------

class TestPoolCreationApi:
    def test_two_step_creation(self, client, store):
        fill_store(store, 1)
        user = Keypair()

        started = client.post("/api/pools", json=_create_body(user))
        assert started.status_code == 201
        data = started.json()
        assert data["state"] == "co_signed"

        tx = decode_transaction(data["transaction"])
        tx.partial_sign([user], tx.message.recent_blockhash)
        done = client.post(
            f"/api/pools/{data['requestId']}/submit", json={"signedTransaction": encode(tx)}
        )
        assert done.status_code == 200
        assert done.json()["state"] == "retired"
        assert done.json()["retired"] is True
        assert done.json()["mint"] == data["mint"]

        status = client.get(f"/api/pools/{data['requestId']}")
        assert status.status_code == 200
        assert status.json()["state"] == "retired"

        again = client.post(
            f"/api/pools/{data['requestId']}/submit", json={"signedTransaction": encode(tx)}
        )
        assert again.status_code == 404
        assert again.json()["detail"]["error"] == "SessionNotFound"

    def test_unsigned_submit_is_rejection(self, client, store):
        fill_store(store, 1)
        data = client.post("/api/pools", json=_create_body(Keypair())).json()
        resp = client.post(
            f"/api/pools/{data['requestId']}/submit", json={"signedTransaction": data["transaction"]}
        )
        assert resp.status_code == 409

    def test_invalid_input(self, client, store):
        fill_store(store, 1)
        resp = client.post("/api/pools", json=_create_body(Keypair(), tokenSymbol="WAYTOOLONGSYMBOL"))
        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "ValidationError"

    def test_no_wallet(self, client, store):
        fill_store(store, 1)
        resp = client.post("/api/pools", json=_create_body(None))
        assert resp.status_code == 409
        assert resp.json()["detail"]["details"] == "Wallet not connected"

    def test_no_keypairs(self, client, store):
        store.available_dir.mkdir(parents=True)
        resp = client.post("/api/pools", json=_create_body(Keypair()))
        assert resp.status_code == 503

    def test_upload_failure(self, client, store, upload_client):
        ids = fill_store(store, 1)
        upload_client.upload.side_effect = UploadError("Failed to upload image")
        resp = client.post("/api/pools", json=_create_body(Keypair()))
        assert resp.status_code == 502
        assert store.is_available(ids[0])

    def test_reject(self, client, store):
        fill_store(store, 1)
        data = client.post("/api/pools", json=_create_body(Keypair())).json()

        resp = client.post(f"/api/pools/{data['requestId']}/reject", json={"reason": "User rejected the request"})
        assert resp.status_code == 204

        status = client.get(f"/api/pools/{data['requestId']}").json()
        assert status["state"] == "failed"
        assert status["failureReason"] == "User rejected the request"

    def test_unknown_request(self, client):
        assert client.get("/api/pools/nope").status_code == 404


# ---------------------------------------------------------------------------
# 4. System
# ---------------------------------------------------------------------------

def test_health(client):
    resp = client.get("/api/system/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


class TestOperatorAuth:
    @pytest.mark.parametrize("method, path", [
        ("get", "/api/credentials"),
        ("get", "/api/credentials/select"),
        ("post", "/api/credentials/retire"),
        ("get", "/api/system/scheduler"),
        ("post", "/api/system/sweep"),
    ])
    def test_missing_token(self, client, method, path):
        anonymous = TestClient(app)
        resp = getattr(anonymous, method)(path)
        assert resp.status_code == 401

    def test_wrong_token(self, client, store):
        ids = fill_store(store, 1)
        anonymous = TestClient(app, headers={"Authorization": "Bearer not-the-key"})
        assert anonymous.get("/api/credentials/select").status_code == 403
        resp = anonymous.post("/api/credentials/retire", json={"identifier": ids[0]})
        assert resp.status_code == 403
        assert store.is_available(ids[0])

    def test_unconfigured_key_closes_operator_routes(self, client, monkeypatch):
        monkeypatch.setattr(settings, "operator_api_key", "")
        resp = client.get("/api/credentials")
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Operator access is disabled"

    def test_health_is_open(self, client):
        assert TestClient(app).get("/api/system/health").status_code == 200

    def test_pool_routes_are_open(self, client):
        resp = TestClient(app).get("/api/pools/by-creator", params={"creatorAddress": str(Keypair().pubkey())})
        assert resp.status_code == 200
