from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from drm_backend.context import AppContext, get_context

router = APIRouter()


@router.get("/health")
async def health(ctx: AppContext = Depends(get_context)):
    return {
        "status": "ok",
        "service": "drm-backend",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(ctx.uptime, 3),
    }
