"""
Upfront Authorization Token endpoints (Token / Fallback Authorization only).
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
import logging

import jwt

from drm_backend.auth.token_auth import generate_auth_token, is_token_auth_available, verify_auth_token
from drm_backend.context import AppContext, get_context
from drm_backend.schemas.api import TokenGenerateRequest, TokenVerifyRequest
from drm_backend.utils.drm.constants import LicenseType
from drm_backend.utils.drm.crt import build_crt_for_token, build_session_id

router = APIRouter(prefix="/api/token")
logger = logging.getLogger(__name__)


def require_token_auth(ctx: AppContext = Depends(get_context)) -> AppContext:
    if not is_token_auth_available(ctx.env):
        raise HTTPException(
            status_code=503,
            detail={
                "message": "Token Authorization is not configured. Set DRM_JWT_SHARED_SECRET and DRM_JWT_KID in .env.",
                "hint": "For production, use Callback Authorization instead (POST /api/callback).",
            },
        )
    return ctx


@router.post("/generate")
async def generate_token(body: TokenGenerateRequest, ctx: AppContext = Depends(require_token_auth)):
    env = ctx.env
    asset_id = body.assetId or env.default_asset_id
    user_id = body.userId if body.userId is not None else env.default_user_id

    try:
        license_type = LicenseType(body.licenseType.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail="licenseType must be 'purchase' or 'rental'")

    crt = build_crt_for_token(
        asset_id=asset_id,
        license_type=license_type,
        relative_expiration=body.relativeExpiration,
        play_duration=body.playDuration,
        enforce=body.enforce,
    )
    token = generate_auth_token(env, crt, merchant=env.drmtoday_merchant, user_id=user_id, expires_in=body.expiresIn)

    logger.info(f"✅ Auth token generated: asset={asset_id} user={user_id or '-'} type={license_type.value}")
    return {
        "token": token,
        "sessionId": build_session_id(crt),
        "crt": crt,
        "expiresIn": body.expiresIn or env.drm_jwt_token_expiry,
        "merchant": env.drmtoday_merchant,
    }


@router.post("/verify")
async def verify_token(body: TokenVerifyRequest, ctx: AppContext = Depends(require_token_auth)):
    if not body.token:
        raise HTTPException(status_code=400, detail="token is required")
    try:
        decoded = verify_auth_token(ctx.env, body.token)
    except jwt.InvalidTokenError as e:
        return JSONResponse(status_code=401, content={"valid": False, "error": str(e)})
    return {"valid": True, "decoded": decoded}
