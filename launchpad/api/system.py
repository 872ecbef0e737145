"""System API — health check, scheduler status, manual maintenance sweep."""

from fastapi import APIRouter, Depends, HTTPException

from launchpad.api.deps import require_operator

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/scheduler", dependencies=[Depends(require_operator)])
def scheduler_status():
    """Current scheduler state with job details."""
    from launchpad.engine.scheduler import get_scheduler_status
    return get_scheduler_status()


@router.post("/sweep", dependencies=[Depends(require_operator)])
async def trigger_sweep():
    """Run one maintenance sweep now."""
    from launchpad.engine.scheduler import run_sweep
    try:
        return await run_sweep()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
