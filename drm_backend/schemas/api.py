from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any


class TokenGenerateRequest(BaseModel):
    assetId: Optional[str] = None
    userId: Optional[str] = None
    licenseType: str = "purchase"
    relativeExpiration: str = "PT24H"
    playDuration: str = "PT4H"
    enforce: bool = False
    expiresIn: Optional[int] = None


class TokenVerifyRequest(BaseModel):
    token: Optional[str] = None


class SettingUpdate(BaseModel):
    value: Any = None
    valueType: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    isPublic: Optional[bool] = None


class SettingsBulkUpdate(BaseModel):
    settings: Optional[Dict[str, Any]] = None


class EncryptionToggle(BaseModel):
    # Left untyped so a non-boolean gets the API's own 400 message
    enabled: Any = None


class BroadcastSessionCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    streamId: Optional[str] = None
    endpoint: Optional[str] = None
    merchant: Optional[str] = None
    userIdForDrm: Optional[str] = None
    encrypted: Optional[bool] = None
    iceServers: Optional[List[Dict[str, Any]]] = None


class PlayerErrorReport(BaseModel):
    kind: str = "drm"  # 'drm' (rtcdrmerror) or 'playback' (video.play() rejection)
    message: Optional[str] = None
    name: Optional[str] = None
    inIframe: bool = False
    streamId: Optional[str] = None
