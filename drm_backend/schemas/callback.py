from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, Any, Dict, Union


class ClientInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    manufacturer: Optional[str] = None
    model: Optional[str] = None
    version: Optional[str] = None
    certType: Optional[str] = None
    drmVersion: Optional[str] = None
    # Widevine sends 1-3, PlayReady 150/2000/3000
    secLevel: Optional[str] = None

    @field_validator("secLevel", "version", "drmVersion", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v)


class RequestMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    remoteAddr: Optional[str] = None
    userAgent: Optional[str] = None


class CallbackError(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: Optional[str] = None
    code: Optional[Union[str, int]] = None


class CallbackRequest(BaseModel):
    """Callback Authorization request body sent by DRMtoday."""
    model_config = ConfigDict(extra="allow")

    asset: Optional[str] = None
    variant: Optional[str] = None
    user: Optional[str] = None
    session: Optional[str] = None
    client: Optional[str] = None
    drmScheme: str = "WIDEVINE_MODULAR"
    clientInfo: Optional[ClientInfo] = None
    requestMetadata: Optional[RequestMetadata] = None
    error: Optional[Union[CallbackError, str]] = None

    @property
    def sec_level(self) -> Optional[str]:
        return self.clientInfo.secLevel if self.clientInfo else None

    @property
    def error_message(self) -> str:
        if isinstance(self.error, CallbackError):
            return self.error.message or "Unknown error"
        return self.error or "Unknown error"

    def log_fields(self) -> Dict[str, Any]:
        return {
            "asset": self.asset,
            "variant": self.variant,
            "user": self.user,
            "session": self.session,
            "client": self.client,
            "drmScheme": self.drmScheme,
            "secLevel": self.sec_level,
            "manufacturer": self.clientInfo.manufacturer if self.clientInfo else None,
            "remoteAddr": self.requestMetadata.remoteAddr if self.requestMetadata else None,
        }
