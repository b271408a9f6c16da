from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from statsync.services.scheduler_service import SyncScheduler

router = APIRouter(prefix="/api/sync", tags=["Sync"])


def get_sync_scheduler(request: Request) -> SyncScheduler:
    scheduler = getattr(request.app.state, "sync_scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="No sync engine configured")
    return scheduler


@router.get("/status")
async def get_sync_status(
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> Dict[str, Any]:
    """Scheduler run-state: running flag, tenants mid-sync, next job firings."""
    return scheduler.get_status()


@router.post("/full")
async def trigger_full_sync(
    background_tasks: BackgroundTasks,
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> Dict[str, Any]:
    """Run a full sync for all tenants now, outside the regular cadence."""
    background_tasks.add_task(scheduler.full_sync_job)
    return {"success": True, "message": "Full sync triggered"}


@router.post("/live")
async def trigger_live_stats_sync(
    background_tasks: BackgroundTasks,
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> Dict[str, Any]:
    """Poll live games for all tenants now."""
    background_tasks.add_task(scheduler.live_stats_job)
    return {"success": True, "message": "Live stats sync triggered"}


@router.post("/start")
async def start_scheduler(
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> Dict[str, Any]:
    """Start the recurring sync jobs."""
    await scheduler.start()
    return {"success": True, "message": "Scheduler started"}


@router.post("/stop")
async def stop_scheduler(
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> Dict[str, Any]:
    """Stop the recurring sync jobs."""
    await scheduler.stop()
    return {"success": True, "message": "Scheduler stopped"}
