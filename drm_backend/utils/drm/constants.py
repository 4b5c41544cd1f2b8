"""
DRM constants shared by the callback, token and player-config code.
"""

from enum import Enum
from typing import Dict, Optional


class DrmScheme(str, Enum):
    """DRM schemes DRMtoday reports in callback requests."""
    FAIRPLAY = "FAIRPLAY"
    WIDEVINE_MODULAR = "WIDEVINE_MODULAR"
    PLAYREADY = "PLAYREADY"
    OMADRM = "OMADRM"
    WISEPLAY = "WISEPLAY"


# Wire names that map onto a canonical scheme. DEFAULT is what DRMtoday's
# dashboard sends for its test callback.
DRM_SCHEME_ALIASES: Dict[str, DrmScheme] = {
    "WIDEVINE": DrmScheme.WIDEVINE_MODULAR,
    "DEFAULT": DrmScheme.WIDEVINE_MODULAR,
}

VALID_DRM_SCHEME_NAMES = [s.value for s in DrmScheme] + list(DRM_SCHEME_ALIASES)


def normalize_drm_scheme(value: Optional[str]) -> Optional[DrmScheme]:
    """Map a wire scheme name to DrmScheme. Missing means Widevine, unknown means None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return DrmScheme.WIDEVINE_MODULAR
    if not isinstance(value, str):
        return None
    name = value.strip().upper()
    if name in DRM_SCHEME_ALIASES:
        return DRM_SCHEME_ALIASES[name]
    try:
        return DrmScheme(name)
    except ValueError:
        return None


class HdcpVersion(str, Enum):
    NONE = "HDCP_NONE"
    V1 = "HDCP_V1"
    V2 = "HDCP_V2"


class DrmType(str, Enum):
    """DRM type names used by the rtc-drm-transform SDK config."""
    WIDEVINE = "Widevine"
    PLAYREADY = "PlayReady"
    FAIRPLAY = "FairPlay"


class Robustness(str, Enum):
    HW = "HW"
    SW = "SW"


class LicenseType(str, Enum):
    PURCHASE = "purchase"
    RENTAL = "rental"


DRMTODAY_URLS = {
    "staging": {
        "base": "https://lic.staging.drmtoday.com",
        "widevine": "https://lic.staging.drmtoday.com/license-proxy-widevine/cenc/",
        "fairplay": "https://lic.staging.drmtoday.com/license-server-fairplay/",
        "fairplay_cert": "https://lic.staging.drmtoday.com/license-server-fairplay/cert/{merchant}",
        "playready": "https://lic.staging.drmtoday.com/license-proxy-headerauth/drmtoday/RightsManager.asmx",
        "dashboard": "https://fe.staging.drmtoday.com",
    },
    "production": {
        "base": "https://lic.drmtoday.com",
        "widevine": "https://lic.drmtoday.com/license-proxy-widevine/cenc/",
        "fairplay": "https://lic.drmtoday.com/license-server-fairplay/",
        "fairplay_cert": "https://lic.drmtoday.com/license-server-fairplay/cert/{merchant}",
        "playready": "https://lic.drmtoday.com/license-proxy-headerauth/drmtoday/RightsManager.asmx",
        "dashboard": "https://fe.drmtoday.com",
    },
}

# Security levels as reported in clientInfo.secLevel
WIDEVINE_SECURITY_LEVELS = {
    "UNKNOWN": 0,
    "L1": 1,  # hardware TEE
    "L2": 2,  # crypto in TEE, video in software
    "L3": 3,  # software only
}

PLAYREADY_SECURITY_LEVELS = {
    "SL150": 150,
    "SL2000": 2000,
    "SL3000": 3000,  # hardware
}

FAIRPLAY_SECURITY_LEVELS = {
    "UNKNOWN": 0,
    "BASELINE": 1,
    "MAIN": 2,
}

PLAYREADY_HARDWARE_MIN_LEVEL = 3000

ENCRYPTION_MODES = ("cbcs", "cenc")
VIDEO_CODECS = ("H264", "AV1")
JWT_ALGORITHMS = ("HS256", "HS384", "HS512")
