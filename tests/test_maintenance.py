"""Tests for the maintenance sweep and CLI provisioning helpers."""

import json
from unittest.mock import MagicMock, patch

import pytest
from solders.keypair import Keypair

from launchpad.cli import generate_vanity_keypair, load_wallet, logo_data_url
from launchpad.engine.scheduler import get_scheduler_status, run_sweep


# ---------------------------------------------------------------------------
# 1. Maintenance sweep
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sweep_runs_all_steps():
    claims = MagicMock()
    claims.recycle_expired.return_value = 2
    claims.reconcile_retired.return_value = 1
    orchestrator = MagicMock()
    orchestrator.expire_sessions.return_value = 3

    with patch("launchpad.api.deps.get_claim_ledger", return_value=claims), \
         patch("launchpad.api.deps.get_orchestrator", return_value=orchestrator):
        result = await run_sweep()

    assert result == {"sessions_expired": 3, "claims_recycled": 2, "keypairs_reconciled": 1}


@pytest.mark.asyncio
async def test_sweep_failure_propagates():
    claims = MagicMock()
    orchestrator = MagicMock()
    orchestrator.expire_sessions.side_effect = RuntimeError("database is locked")

    with patch("launchpad.api.deps.get_claim_ledger", return_value=claims), \
         patch("launchpad.api.deps.get_orchestrator", return_value=orchestrator):
        with pytest.raises(RuntimeError):
            await run_sweep()
    claims.recycle_expired.assert_not_called()


def test_scheduler_status_when_stopped():
    status = get_scheduler_status()
    assert status["running"] is False
    assert status["job_count"] == len(status["jobs"])


# ---------------------------------------------------------------------------
# 2. CLI helpers
# ---------------------------------------------------------------------------

def test_vanity_suffix():
    keypair = generate_vanity_keypair("z")
    assert str(keypair.pubkey()).endswith("z")


def test_vanity_suffix_outside_base58():
    with pytest.raises(ValueError):
        generate_vanity_keypair("0OIl")


def test_load_wallet(tmp_path):
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))
    assert load_wallet(path).pubkey() == keypair.pubkey()


def test_logo_data_url(tmp_path):
    path = tmp_path / "logo.png"
    path.write_bytes(b"\x89PNG")
    assert logo_data_url(path) == "data:image/png;base64,iVBORw=="
