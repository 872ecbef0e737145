"""Credential pool API — random selection and retirement of pool keypairs."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from launchpad.api.deps import get_credential_store, require_operator
from launchpad.errors import DirectoryIOError, NoCredentialAvailable, NotFound
from launchpad.schemas.credential import (
    CredentialPools,
    CredentialSelection,
    RetireRequest,
    RetireResponse,
)
from launchpad.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/credentials",
    tags=["credentials"],
    dependencies=[Depends(require_operator)],
)


@router.get("", response_model=CredentialPools)
def list_pools(store: CredentialStore = Depends(get_credential_store)):
    try:
        available = [h.identifier for h in store.list_available()]
        consumed = [h.identifier for h in store.list_consumed()]
    except DirectoryIOError as e:
        logger.error(f"Error listing keypairs: {e}")
        raise HTTPException(status_code=500, detail="Failed to list keypairs")
    return CredentialPools(
        available=available,
        consumed=consumed,
        available_count=len(available),
        consumed_count=len(consumed),
    )


@router.get("/select", response_model=CredentialSelection)
def select_credential(store: CredentialStore = Depends(get_credential_store)):
    """Return one randomly chosen available keypair. Does not reserve it."""
    try:
        handle = store.select_random()
        credential = store.load(handle.identifier)
    except NoCredentialAvailable:
        raise HTTPException(status_code=404, detail="No keypairs available")
    except (NotFound, DirectoryIOError) as e:
        logger.error(f"Error selecting keypair: {e}")
        raise HTTPException(status_code=500, detail="Failed to select keypair")
    return CredentialSelection(secret=credential.secret, identifier=credential.identifier)


@router.post("/retire", response_model=RetireResponse)
def retire_credential(
    data: RetireRequest | None = None,
    store: CredentialStore = Depends(get_credential_store),
):
    """Move a keypair to the consumed pool."""
    if data is None or not data.identifier:
        raise HTTPException(status_code=400, detail="Keypair identifier is required")
    try:
        store.consume(data.identifier)
    except NotFound:
        raise HTTPException(status_code=404, detail="Keypair file not found")
    except DirectoryIOError as e:
        logger.error(f"Error moving keypair: {e}")
        raise HTTPException(status_code=500, detail="Failed to move keypair")
    return RetireResponse(success=True, message="Keypair moved to used_keypairs")
