"""Shared API dependencies: process-wide service instances and operator auth."""

import secrets
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from launchpad.config import settings
from launchpad.engine.orchestrator import PoolCreationOrchestrator
from launchpad.services.broadcast_client import BroadcastClient
from launchpad.services.claims import ClaimLedger
from launchpad.services.credential_store import CredentialStore
from launchpad.services.pool_directory import PoolDirectoryReader
from launchpad.services.upload_client import AssetUploadClient


@lru_cache
def get_credential_store() -> CredentialStore:
    return CredentialStore(settings.keypairs_dir, settings.used_keypairs_dir)


@lru_cache
def get_claim_ledger() -> ClaimLedger:
    return ClaimLedger(get_credential_store())


@lru_cache
def get_orchestrator() -> PoolCreationOrchestrator:
    return PoolCreationOrchestrator(
        store=get_credential_store(),
        claims=get_claim_ledger(),
        upload_client=AssetUploadClient(),
        broadcast_client=BroadcastClient(),
    )


@lru_cache
def get_pool_reader() -> PoolDirectoryReader:
    return PoolDirectoryReader()


async def close_clients():
    """Close HTTP/RPC clients created for this process."""
    if get_orchestrator.cache_info().currsize:
        orchestrator = get_orchestrator()
        await orchestrator.upload_client.close()
        await orchestrator.broadcast_client.close()
    if get_pool_reader.cache_info().currsize:
        await get_pool_reader().close()


bearer_scheme = HTTPBearer(auto_error=False)


def require_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> None:
    """Guard operator routes with the static ``LP_OPERATOR_API_KEY`` bearer token.

    With no key configured the operator routes are closed.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing operator token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not settings.operator_api_key:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operator access is disabled")
    if not secrets.compare_digest(credentials.credentials, settings.operator_api_key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid operator token")
