"""
DRMtoday Callback Authorization endpoints.

DRMtoday POSTs the license request context here and expects a Customer
Rights Token back. Configure the callback URL in the DRMtoday dashboard as
``https://<host>/api/callback``.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import json
import logging

from drm_backend.auth.security import check_callback_secret
from drm_backend.context import AppContext, get_context
from drm_backend.schemas.callback import CallbackRequest
from drm_backend.utils.drm.constants import VALID_DRM_SCHEME_NAMES, LicenseType, normalize_drm_scheme
from drm_backend.utils.drm.crt import build_callback_response
from drm_backend.utils.user_agent import get_short_user_agent_info

router = APIRouter(prefix="/api/callback")
logger = logging.getLogger(__name__)


async def validate_callback_request(request: Request, ctx: AppContext = Depends(get_context)) -> CallbackRequest:
    """Check body shape, scheme and the optional shared secret, then parse the body."""
    try:
        body = await request.json()
    except (ValueError, UnicodeDecodeError):
        body = None
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid request body")

    raw_scheme = body.get("drmScheme")
    scheme = normalize_drm_scheme(raw_scheme)
    if scheme is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported DRM scheme: {raw_scheme}. Valid values: {', '.join(VALID_DRM_SCHEME_NAMES)}",
        )
    body["drmScheme"] = scheme.value

    check_callback_secret(request, ctx.env.callback_auth_secret)

    try:
        return CallbackRequest.model_validate(body)
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid request body", "details": [err["msg"] for err in e.errors()]},
        ) from e


def _log_callback(kind: str, payload: CallbackRequest) -> None:
    fields = payload.log_fields()
    ua = payload.requestMetadata.userAgent if payload.requestMetadata else None
    logger.info(f"📥 DRMtoday {kind} callback received: {json.dumps(fields)}")
    if ua:
        logger.info(f"   Viewer UA: {get_short_user_agent_info(ua)}")


@router.post("")
async def license_callback(
    payload: CallbackRequest = Depends(validate_callback_request),
    ctx: AppContext = Depends(get_context),
):
    """Purchase license: output protection follows the scheme/secLevel policy."""
    _log_callback("license", payload)

    settings = ctx.settings
    crt = build_callback_response(
        payload,
        license_type=LicenseType.PURCHASE,
        enforce=settings.get_flag("drm.outputProtection.enforce", True),
        digital=settings.get_flag("drm.outputProtection.digital", True),
        analogue=settings.get_flag("drm.outputProtection.analogue", True),
    )

    logger.info(
        f"✅ Callback response sent: asset={crt['assetId']} "
        f"outputProtection={json.dumps(crt['outputProtection'])}"
    )
    return crt


@router.post("/rental")
async def rental_callback(payload: CallbackRequest = Depends(validate_callback_request)):
    """Time-limited license: 24h validity, 4h playback window, no enforcement."""
    _log_callback("rental", payload)

    crt = build_callback_response(
        payload,
        license_type=LicenseType.RENTAL,
        relative_expiration="PT24H",
        play_duration="PT4H",
        enforce=False,
    )
    logger.info(f"✅ Rental callback response sent: asset={crt['assetId']} profile={json.dumps(crt['profile'])}")
    return crt


@router.post("/error")
async def error_callback(payload: CallbackRequest = Depends(validate_callback_request)):
    logger.warning(
        f"⚠️ DRMtoday error callback: asset={payload.asset} user={payload.user} "
        f"scheme={payload.drmScheme} secLevel={payload.sec_level} error={payload.error_message}"
    )
    return JSONResponse(
        status_code=403,
        content={"error": "License request denied", "message": payload.error_message},
    )
