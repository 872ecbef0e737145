"""Pool API — two-step pool creation and pools-by-creator listing."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from launchpad.api.deps import get_orchestrator, get_pool_reader
from launchpad.database import get_session
from launchpad.engine.orchestrator import PoolCreationOrchestrator
from launchpad.errors import (
    BroadcastError,
    DirectoryIOError,
    InvalidAddress,
    LaunchpadError,
    NoCredentialAvailable,
    NotFound,
    SerializationError,
    UploadError,
    UserRejected,
    ValidationError,
)
from launchpad.models.signing_session import SigningSession
from launchpad.schemas.pool import (
    PoolCreationResult,
    PoolCreationStarted,
    SigningSessionRead,
    SubmitSignedRequest,
)
from launchpad.schemas.pool_record import PoolsByCreatorResponse
from launchpad.services.pool_directory import PoolDirectoryReader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pools", tags=["pools"])

_STATUS_BY_ERROR: list[tuple[type[LaunchpadError], int]] = [
    (ValidationError, 400),
    (InvalidAddress, 400),
    (UserRejected, 409),
    (NotFound, 404),
    (NoCredentialAvailable, 503),
    (UploadError, 502),
    (BroadcastError, 502),
    (SerializationError, 422),
    (DirectoryIOError, 500),
]


def _http_error(error: LaunchpadError) -> HTTPException:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(error, cls)), 500)
    return HTTPException(
        status_code=status,
        detail={"error": type(error).__name__, "details": error.message},
    )


@router.get("/by-creator", response_model=PoolsByCreatorResponse, response_model_exclude_none=True)
async def pools_by_creator_query(
    creatorAddress: str | None = None,
    reader: PoolDirectoryReader = Depends(get_pool_reader),
):
    return await _pools_by_creator(creatorAddress, reader)


@router.post("/by-creator", response_model=PoolsByCreatorResponse, response_model_exclude_none=True)
async def pools_by_creator_body(
    request: Request,
    reader: PoolDirectoryReader = Depends(get_pool_reader),
):
    try:
        body = await request.json()
    except ValueError:
        body = None
    creator = body.get("creatorAddress") if isinstance(body, dict) else None
    return await _pools_by_creator(creator, reader)


async def _pools_by_creator(creator_address: str | None, reader: PoolDirectoryReader):
    if not creator_address:
        raise HTTPException(status_code=400, detail="Missing required parameter: creatorAddress")
    try:
        pools = await reader.list_pools_by_creator(creator_address)
    except InvalidAddress as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error fetching pools by creator: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error while fetching pools",
                "details": str(e),
            },
        )
    return PoolsByCreatorResponse(creator=creator_address, pool_count=len(pools), pools=pools)


@router.post("", response_model=PoolCreationStarted, status_code=201)
async def create_pool(
    data: dict[str, Any] = Body(...),
    orchestrator: PoolCreationOrchestrator = Depends(get_orchestrator),
):
    """Validate, reserve a pool keypair, upload assets and co-sign.

    Returns the co-signed transaction for the user's wallet to sign.
    """
    try:
        pending = await orchestrator.begin(data)
    except LaunchpadError as e:
        raise _http_error(e)
    return PoolCreationStarted(
        request_id=pending.request_id,
        state=pending.state.value,
        mint=pending.mint,
        transaction=pending.transaction,
        expires_at=pending.expires_at,
    )


@router.get("/{request_id}", response_model=SigningSessionRead)
def get_pool_creation(request_id: str, session: Session = Depends(get_session)):
    signing_session = session.get(SigningSession, request_id)
    if not signing_session:
        raise HTTPException(status_code=404, detail="Pool creation not found")
    return signing_session


@router.post("/{request_id}/submit", response_model=PoolCreationResult)
async def submit_signed(
    request_id: str,
    data: SubmitSignedRequest,
    orchestrator: PoolCreationOrchestrator = Depends(get_orchestrator),
):
    """Broadcast the wallet-signed transaction and retire the pool keypair."""
    try:
        result = await orchestrator.complete(request_id, data.signed_transaction)
    except LaunchpadError as e:
        raise _http_error(e)
    return PoolCreationResult(
        request_id=result.request_id,
        state=result.state.value,
        mint=result.mint,
        signature=result.signature,
        retired=result.retired,
    )


@router.post("/{request_id}/reject", status_code=204)
def reject_signing(
    request_id: str,
    reason: str = Body(default="User rejected the request", embed=True),
    orchestrator: PoolCreationOrchestrator = Depends(get_orchestrator),
):
    try:
        orchestrator.reject(request_id, reason)
    except LaunchpadError as e:
        raise _http_error(e)
