from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
@router.get("")
async def health_check(request: Request):
    """Basic health check endpoint."""
    scheduler = getattr(request.app.state, "sync_scheduler", None)
    return {
        "status": "healthy",
        "message": "Service is running",
        "scheduler_running": bool(scheduler and scheduler.running),
    }
