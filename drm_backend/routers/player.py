"""
Player bootstrap endpoints.

The WHEP player sends its EME probe results here and gets back the DRM
type, robustness and the full SDK config to hand to rtc-drm-transform.
Platform detection uses the request's User-Agent and UA client hints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
import logging
from typing import Dict, Optional

from drm_backend.context import AppContext, get_context
from drm_backend.schemas.api import PlayerErrorReport
from drm_backend.utils.drm.constants import ENCRYPTION_MODES, DrmType
from drm_backend.utils.drm.errors import CapabilityError, classify_drm_error, classify_playback_rejection
from drm_backend.utils.drm.platform import (
    EmeProbeResults,
    detect_drm_capability,
    detect_platform,
    get_platform_drm_candidates,
    hints_from_headers,
)
from drm_backend.utils.drm.player_config import build_drm_config
from drm_backend.utils.user_agent import format_user_agent

router = APIRouter(prefix="/api/player")
logger = logging.getLogger(__name__)


def _hw_results(
    candidates,
    hw: Optional[bool],
    hw_widevine: Optional[bool],
    hw_playready: Optional[bool],
    hw_fairplay: Optional[bool],
) -> Dict[DrmType, bool]:
    results: Dict[DrmType, bool] = {}
    # ``hw`` answers the probe of the platform's first candidate
    if hw is not None and candidates:
        results[candidates[0].drm_type] = hw
    for drm_type, value in (
        (DrmType.WIDEVINE, hw_widevine),
        (DrmType.PLAYREADY, hw_playready),
        (DrmType.FAIRPLAY, hw_fairplay),
    ):
        if value is not None:
            results[drm_type] = value
    return results


@router.get("/config")
async def player_config(
    request: Request,
    hw: Optional[bool] = Query(None, description="Hardware probe result for the preferred DRM"),
    hwWidevine: Optional[bool] = None,
    hwPlayReady: Optional[bool] = None,
    hwFairPlay: Optional[bool] = None,
    eme: bool = Query(True, description="False when no key system answered the EME probe"),
    emeApi: bool = Query(True, description="False when requestMediaKeySystemAccess is missing"),
    emeError: Optional[str] = None,
    inIframe: bool = False,
    maxTouchPoints: int = 0,
    robustness: Optional[str] = Query(None, description="HW or SW, overrides the detected robustness"),
    userId: Optional[str] = None,
    encryption: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    env = ctx.env
    if encryption and encryption.lower() not in ENCRYPTION_MODES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported encryption mode: {encryption}. Valid values: {', '.join(ENCRYPTION_MODES)}",
        )
    hints = hints_from_headers(request.headers, max_touch_points=maxTouchPoints)
    platform = detect_platform(hints)
    candidates = get_platform_drm_candidates(platform, env.prefer_playready_on_edge)
    probe = EmeProbeResults(
        eme_api_present=emeApi,
        eme_available=eme,
        error_name=emeError,
        in_iframe=inIframe,
        hw_secure=_hw_results(candidates, hw, hwWidevine, hwPlayReady, hwFairPlay),
    )
    logger.info(f"🔍 Player config request from {format_user_agent(hints.user_agent)} ({platform.tag.value})")

    try:
        capability = detect_drm_capability(
            platform,
            probe,
            robustness_override=robustness,
            prefer_playready_on_edge=env.prefer_playready_on_edge,
            require_hardware=env.require_hardware_drm,
        )
    except CapabilityError as e:
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "category": e.category.value,
                    "message": e.reason,
                    "retryable": e.retryable,
                },
                "platform": platform.to_dict(),
            },
        )

    encryption_mode = encryption or ctx.settings.get("drm.encryption.mode") or env.drm_encryption_mode
    try:
        config = build_drm_config(
            capability,
            merchant=env.drmtoday_merchant,
            user_id=userId if userId is not None else env.default_user_id,
            environment=env.drmtoday_environment,
            key_id_hex=env.drm_key_id,
            iv_hex=env.drm_iv,
            encryption_mode=encryption_mode,
        )
    except ValueError as e:
        logger.error(f"❌ DRM configuration error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": {"status": 500, "message": f"DRM configuration error: {e}"}},
        )
    return {
        "platform": platform.to_dict(),
        "capability": capability.to_dict(),
        "config": config,
        "encryptionEnabled": ctx.settings.get_flag("drm.encryption.enabled", True),
    }


@router.post("/errors")
async def report_player_error(report: PlayerErrorReport):
    """Classify an error the player hit and tell it whether to retry, continue or stop."""
    if report.kind == "playback":
        classification = classify_playback_rejection(report.name, report.message)
    else:
        classification = classify_drm_error(report.message, in_iframe=report.inIframe)

    stream = f" stream={report.streamId}" if report.streamId else ""
    if classification.fatal:
        logger.error(f"❌ Player {report.kind} error ({classification.category.value}){stream}: {report.message}")
    else:
        logger.warning(f"⚠️ Player {report.kind} event ({classification.category.value}){stream}: {report.message}")
    return classification.to_dict()
