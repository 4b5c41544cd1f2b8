"""
Player-side DRM error taxonomy.

Four kinds of failure matter to the player:
capability errors (terminal, never retried), license/callback denials,
output-restriction events (logged, playback continues) and autoplay
rejections (retried with exponential backoff).
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

IFRAME_PERMISSION_HINT = (
    'DRM blocked inside iframe. The parent page must embed with: '
    '<iframe allow="encrypted-media; autoplay" ...>'
)

DEFAULT_PLAY_RETRIES = 3


class ErrorCategory(str, Enum):
    CAPABILITY = "capability"
    LICENSE = "license"
    OUTPUT_RESTRICTED = "output_restricted"
    TRANSIENT = "transient"
    AUTOPLAY = "autoplay"
    FATAL = "fatal"


class CapabilityError(Exception):
    """The device cannot play protected content. Terminal, never retried."""

    retryable = False
    category = ErrorCategory.CAPABILITY

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class DrmErrorClassification:
    category: ErrorCategory
    fatal: bool
    retryable: bool
    display_message: Optional[str] = None
    retry_delays_ms: List[int] = field(default_factory=list)
    mute_and_retry: bool = False

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "fatal": self.fatal,
            "retryable": self.retryable,
            "displayMessage": self.display_message,
            "retryDelaysMs": list(self.retry_delays_ms),
            "muteAndRetry": self.mute_and_retry,
        }


# Substrings of rtcdrmerror messages that do not stop playback
_OUTPUT_RESTRICTED_MARKERS = ("output-restricted", "output-downscaled")
_TRANSIENT_MARKERS = (
    "not usable for decryption",
    "requestmediakeysystemaccess",
    "frame gap",
    "duplicate/reordered frame",
)
_LICENSE_MARKERS = ("unauthorized", "forbidden", "license request denied")
_LICENSE_STATUS = re.compile(r"\b40[13]\b")


def classify_drm_error(message: Optional[str], in_iframe: bool = False) -> DrmErrorClassification:
    """Classify an rtcdrmerror message reported by the player."""
    msg = message or ""
    lowered = msg.lower()

    if any(marker in lowered for marker in _OUTPUT_RESTRICTED_MARKERS):
        return DrmErrorClassification(ErrorCategory.OUTPUT_RESTRICTED, fatal=False, retryable=False)

    if any(marker in lowered for marker in _TRANSIENT_MARKERS):
        return DrmErrorClassification(ErrorCategory.TRANSIENT, fatal=False, retryable=False)

    if in_iframe and "not-allowed" in lowered:
        return DrmErrorClassification(
            ErrorCategory.CAPABILITY,
            fatal=True,
            retryable=False,
            display_message=IFRAME_PERMISSION_HINT,
        )

    if any(marker in lowered for marker in _LICENSE_MARKERS) or _LICENSE_STATUS.search(lowered):
        return DrmErrorClassification(
            ErrorCategory.LICENSE,
            fatal=True,
            retryable=False,
            display_message=f"DRM error: {msg}",
        )

    return DrmErrorClassification(
        ErrorCategory.FATAL,
        fatal=True,
        retryable=False,
        display_message=f"DRM error: {msg}",
    )


def play_retry_delays_ms(max_retries: int = DEFAULT_PLAY_RETRIES) -> List[int]:
    """Backoff before each retry of video.play(): 2^attempt * 100 ms."""
    return [(2 ** attempt) * 100 for attempt in range(1, max_retries)]


def classify_playback_rejection(
    error_name: Optional[str],
    message: Optional[str] = None,
    max_retries: int = DEFAULT_PLAY_RETRIES,
) -> DrmErrorClassification:
    """Classify a rejected video.play() promise by its DOMException name."""
    if error_name in ("AbortError", "NotAllowedError"):
        return DrmErrorClassification(
            ErrorCategory.AUTOPLAY,
            fatal=False,
            retryable=True,
            retry_delays_ms=play_retry_delays_ms(max_retries),
            mute_and_retry=error_name == "NotAllowedError",
        )
    return DrmErrorClassification(
        ErrorCategory.FATAL,
        fatal=True,
        retryable=False,
        display_message=f"Playback error: {message or error_name or 'unknown'}",
    )
