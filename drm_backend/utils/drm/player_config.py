"""
Assembly of the rtc-drm-transform SDK config from a detected capability.
"""

import logging
from typing import Optional

from drm_backend.schemas.type_defs import DrmConfig, VideoConfig
from drm_backend.utils.drm.constants import DrmType, ENCRYPTION_MODES
from drm_backend.utils.drm.keys import bytes_to_hex, validate_drm_key
from drm_backend.utils.drm.platform import DrmCapability

logger = logging.getLogger(__name__)

SDK_LOG_LEVEL = 3
VIDEO_CODEC = "H264"


def sdk_environment(name: Optional[str]) -> str:
    """The SDK only knows 'Production' and 'Staging'."""
    return "Production" if (name or "").lower() == "production" else "Staging"


def build_drm_config(
    capability: DrmCapability,
    merchant: str,
    user_id: str,
    environment: str,
    key_id_hex: Optional[str],
    iv_hex: str,
    encryption_mode: str = "cbcs",
) -> DrmConfig:
    """
    Build the config object for the SDK.

    FairPlay streams are always cbcs and identify the key through the
    license, so keyId and robustness are left out. Raises ValueError for
    malformed key material or an unknown encryption mode.
    """
    if capability.selected_drm_type is None:
        raise ValueError("Cannot build a DRM config without a selected DRM type")

    iv = bytes_to_hex(validate_drm_key(iv_hex))

    if capability.selected_drm_type == DrmType.FAIRPLAY:
        video: VideoConfig = {"codec": VIDEO_CODEC, "encryption": "cbcs", "iv": iv}
        audio = {"codec": "aac", "encryption": "clear"}
    else:
        mode = (encryption_mode or "cbcs").lower()
        if mode not in ENCRYPTION_MODES:
            raise ValueError(f"Unsupported encryption mode: {encryption_mode}")
        video = {
            "codec": VIDEO_CODEC,
            "encryption": mode,
            "robustness": capability.robustness.value,
            "keyId": bytes_to_hex(validate_drm_key(key_id_hex)),
            "iv": iv,
        }
        audio = {"codec": "opus", "encryption": "clear"}

    config: DrmConfig = {
        "merchant": merchant,
        "userId": user_id,
        "environment": sdk_environment(environment),
        "video": video,
        "audio": audio,
        "logLevel": SDK_LOG_LEVEL,
        "mediaBufferMs": capability.media_buffer_ms,
        "type": capability.selected_drm_type.value,
    }
    logger.debug(f"DRM config built for {config['type']} ({config['environment']})")
    return config
