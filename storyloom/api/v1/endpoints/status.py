"""Service status endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from storyloom.core.config import settings

router = APIRouter()


@router.get("/status")
def api_status():
    """Lightweight status endpoint for liveness checks."""
    return {
        "success": True,
        "message": "API is working!",
        "data": {
            "status": "operational",
            "version": settings.VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }
