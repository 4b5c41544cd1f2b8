from fastapi import APIRouter, Depends, HTTPException
import logging
from typing import Optional

from drm_backend.auth.security import enforce_admin_key
from drm_backend.context import AppContext, get_context
from drm_backend.schemas.api import EncryptionToggle, SettingUpdate, SettingsBulkUpdate
from drm_backend.utils.settings_store import SettingNotFoundError

router = APIRouter(prefix="/api/settings")
logger = logging.getLogger(__name__)

ENCRYPTION_KEY = "drm.encryption.enabled"


@router.get("")
async def list_settings(
    category: Optional[str] = None,
    keys: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    """All settings, or one category (defaults included), or a comma-separated key list."""
    if category:
        return {"settings": ctx.settings.get_by_category(category)}
    key_list = [k.strip() for k in keys.split(",") if k.strip()] if keys else None
    return {"settings": ctx.settings.get_many(keys=key_list)}


@router.get("/public")
async def public_settings(ctx: AppContext = Depends(get_context)):
    return {"settings": ctx.settings.get_public()}


@router.get("/encryption/enabled")
async def get_encryption_enabled(ctx: AppContext = Depends(get_context)):
    """Global encryption flag, true when unset or not a boolean."""
    return {"enabled": ctx.settings.get_flag(ENCRYPTION_KEY, True), "key": ENCRYPTION_KEY}


@router.put("/encryption/enabled", dependencies=[Depends(enforce_admin_key)])
async def set_encryption_enabled(body: EncryptionToggle, ctx: AppContext = Depends(get_context)):
    if not isinstance(body.enabled, bool):
        raise HTTPException(status_code=400, detail="Enabled must be a boolean value")

    value = ctx.settings.set(
        ENCRYPTION_KEY,
        body.enabled,
        value_type="BOOLEAN",
        category="drm",
        description="Enable DRM encryption for streams",
        is_public=True,
    )
    logger.info(f"🔐 Encryption {'enabled' if value else 'disabled'} globally")
    return {"success": True, "enabled": value, "key": ENCRYPTION_KEY}


@router.get("/category/{category}")
async def settings_by_category(category: str, ctx: AppContext = Depends(get_context)):
    return {"category": category, "settings": ctx.settings.get_by_category(category)}


@router.get("/{key}")
async def get_setting(key: str, ctx: AppContext = Depends(get_context)):
    value = ctx.settings.get(key)
    if value is None:
        raise HTTPException(status_code=404, detail="Setting not found")
    return {"key": key, "value": value}


@router.put("/{key}", dependencies=[Depends(enforce_admin_key)])
async def put_setting(key: str, body: SettingUpdate, ctx: AppContext = Depends(get_context)):
    if body.value is None:
        raise HTTPException(status_code=400, detail="Value is required")
    try:
        value = ctx.settings.set(
            key,
            body.value,
            value_type=body.valueType,
            category=body.category,
            description=body.description,
            is_public=body.isPublic,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "setting": value}


@router.post("", dependencies=[Depends(enforce_admin_key)])
async def post_settings(body: SettingsBulkUpdate, ctx: AppContext = Depends(get_context)):
    if not body.settings:
        raise HTTPException(status_code=400, detail="Settings object is required")
    try:
        return ctx.settings.set_many(body.settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{key}", dependencies=[Depends(enforce_admin_key)])
async def delete_setting(key: str, ctx: AppContext = Depends(get_context)):
    try:
        ctx.settings.delete(key)
    except SettingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Setting deleted successfully"}


@router.post("/{key}/reset", dependencies=[Depends(enforce_admin_key)])
async def reset_setting(key: str, ctx: AppContext = Depends(get_context)):
    try:
        return ctx.settings.reset(key)
    except SettingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
