from fastapi import APIRouter, Body, Depends, HTTPException
import logging
from typing import Any, Dict, Optional

from drm_backend.context import AppContext, get_context
from drm_backend.schemas.api import BroadcastSessionCreate
from drm_backend.utils.broadcast_registry import BroadcastSession

router = APIRouter(prefix="/api/broadcast")
logger = logging.getLogger(__name__)


def _require_session(session: Optional[BroadcastSession]) -> Dict[str, Any]:
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True, "session": session.to_dict()}


@router.post("/sessions")
async def create_session(body: BroadcastSessionCreate, ctx: AppContext = Depends(get_context)):
    """Create or reactivate a WHIP session. The global encryption flag overrides the request's."""
    if not body.streamId:
        raise HTTPException(status_code=400, detail="streamId is required")

    encrypted = ctx.settings.get_flag("drm.encryption.enabled", True)
    if body.encrypted is not None and body.encrypted != encrypted:
        logger.info(f"🔐 Encryption for {body.streamId} forced to {encrypted} by global setting")

    session, is_existing = ctx.broadcasts.upsert(
        body.streamId,
        endpoint=body.endpoint,
        merchant=body.merchant,
        user_id_for_drm=body.userIdForDrm,
        encrypted=encrypted,
        ice_servers=body.iceServers,
    )
    return {
        "success": True,
        "session": session.to_dict(),
        "isExisting": is_existing,
        "encryptionEnforced": encrypted,
    }


@router.get("/sessions/{stream_id}")
async def get_session(stream_id: str, ctx: AppContext = Depends(get_context)):
    return _require_session(ctx.broadcasts.get(stream_id))


@router.patch("/sessions/{stream_id}/state")
async def update_session_state(
    stream_id: str,
    body: Optional[Dict[str, Any]] = Body(default=None),
    ctx: AppContext = Depends(get_context),
):
    body = body or {}
    # Keys that are absent keep their value, explicit nulls clear it
    updates = {
        name: body[field]
        for field, name in (
            ("localSdp", "local_sdp"),
            ("remoteSdp", "remote_sdp"),
            ("iceCandidates", "ice_candidates"),
        )
        if field in body
    }
    session = ctx.broadcasts.update_state(stream_id, connection_state=body.get("connectionState"), **updates)
    return _require_session(session)


@router.post("/sessions/{stream_id}/ping")
async def ping_session(stream_id: str, ctx: AppContext = Depends(get_context)):
    return _require_session(ctx.broadcasts.ping(stream_id))


@router.delete("/sessions/{stream_id}")
async def deactivate_session(stream_id: str, ctx: AppContext = Depends(get_context)):
    return _require_session(ctx.broadcasts.deactivate(stream_id))


@router.get("/active")
async def active_sessions(ctx: AppContext = Depends(get_context)):
    sessions = [s.to_dict() for s in ctx.broadcasts.list_active()]
    return {"success": True, "sessions": sessions, "count": len(sessions)}
