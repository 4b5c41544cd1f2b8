"""
Platform and DRM-capability detection.

Everything here is a pure function of the viewer's User-Agent, client hints
and the EME probe results the player reports; there is no browser access.
The detector picks exactly one DRM type per platform, then the robustness
and the media buffer that go with it.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from drm_backend.utils.drm.constants import DrmType, Robustness
from drm_backend.utils.drm.errors import CapabilityError

logger = logging.getLogger(__name__)

BUFFER_HW_MS = 1200
BUFFER_SW_MS = 600
BUFFER_FIREFOX_MS = 900

DEVICE_NOT_SUPPORTED = "Device is not supported"


class PlatformTag(str, Enum):
    IOS = "iOS"
    SAFARI = "Safari"
    ANDROID = "Android"
    WINDOWS = "Windows"
    FIREFOX = "Firefox"
    OTHER = "Other"


@dataclass(frozen=True)
class UserAgentHints:
    """What the browser tells us about itself: UA string plus UA client hints."""
    user_agent: str = ""
    platform: str = ""
    mobile: bool = False
    max_touch_points: int = 0


@dataclass(frozen=True)
class PlatformInfo:
    tag: PlatformTag
    is_ios: bool = False
    is_safari: bool = False
    is_android: bool = False
    is_windows: bool = False
    is_firefox: bool = False
    is_edge: bool = False
    is_chrome: bool = False
    is_mobile: bool = False

    def to_dict(self) -> dict:
        return {
            "tag": self.tag.value,
            "isIOS": self.is_ios,
            "isSafari": self.is_safari,
            "isAndroid": self.is_android,
            "isWindows": self.is_windows,
            "isFirefox": self.is_firefox,
            "isEdge": self.is_edge,
            "isChrome": self.is_chrome,
            "isMobile": self.is_mobile,
        }


@dataclass(frozen=True)
class DrmCandidate:
    drm_type: DrmType
    key_system: str
    hw_robustness: str
    init_data_types: Tuple[str, ...]


WIDEVINE_L1 = DrmCandidate(DrmType.WIDEVINE, "com.widevine.alpha", "HW_SECURE_ALL", ("cenc",))
PLAYREADY_SL3000 = DrmCandidate(
    DrmType.PLAYREADY, "com.microsoft.playready.recommendation", "3000", ("cenc",)
)
FAIRPLAY_HW = DrmCandidate(DrmType.FAIRPLAY, "com.apple.fps.1_0", "", ("sinf",))


@dataclass(frozen=True)
class EmeProbeResults:
    """
    Results of the player's EME probes.

    ``eme_api_present`` is False when navigator.requestMediaKeySystemAccess is
    missing, ``eme_available`` is False when no key system answered, and
    ``error_name`` carries the DOMException name of a failed probe.
    ``hw_secure`` maps each DRM type to whether its hardware-robustness probe
    succeeded; a type that was not probed counts as not hardware-secure.
    """
    eme_api_present: bool = True
    eme_available: bool = True
    error_name: Optional[str] = None
    in_iframe: bool = False
    hw_secure: Mapping[DrmType, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class DrmCapability:
    supported: bool
    selected_drm_type: Optional[DrmType]
    robustness: Optional[Robustness]
    security_level: Optional[str]
    media_buffer_ms: int
    platform: PlatformInfo
    evaluated_candidates: List[Dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "supported": self.supported,
            "selectedDrmType": self.selected_drm_type.value if self.selected_drm_type else None,
            "robustness": self.robustness.value if self.robustness else None,
            "securityLevel": self.security_level,
            "mediaBufferMs": self.media_buffer_ms,
            "platform": self.platform.tag.value,
            "evaluatedCandidates": self.evaluated_candidates,
        }


_IOS_UA = re.compile(r"iPad|iPhone|iPod")
_SAFARI_UA = re.compile(r"Safari")
_NOT_SAFARI_UA = re.compile(r"Chrome|Chromium|CriOS|FxiOS|EdgiOS|Edg/|Firefox|OPR/")
_ANDROID_UA = re.compile(r"Android", re.IGNORECASE)
_WINDOWS_UA = re.compile(r"Windows|Win32|Win64", re.IGNORECASE)
_FIREFOX_UA = re.compile(r"Firefox|FxiOS")
_EDGE_UA = re.compile(r"Edg(e|A|iOS)?/")
_CHROME_UA = re.compile(r"Chrome|CriOS")
_MOBILE_UA = re.compile(r"Mobi|Android|iPhone|iPod", re.IGNORECASE)


def _unquote(value: Optional[str]) -> str:
    return (value or "").strip().strip('"')


def hints_from_headers(headers: Mapping[str, str], max_touch_points: int = 0) -> UserAgentHints:
    """Build UserAgentHints from request headers (User-Agent, Sec-CH-UA-Platform, Sec-CH-UA-Mobile)."""
    lowered = {k.lower(): v for k, v in headers.items()}
    return UserAgentHints(
        user_agent=lowered.get("user-agent", ""),
        platform=_unquote(lowered.get("sec-ch-ua-platform")),
        mobile=_unquote(lowered.get("sec-ch-ua-mobile")) == "?1",
        max_touch_points=max_touch_points,
    )


def detect_platform(hints: UserAgentHints) -> PlatformInfo:
    """
    Compute platform flags and the single PlatformTag.

    The tag is the first match in this order: iOS, Safari, Android, Windows,
    Firefox, anything else.
    """
    ua = hints.user_agent or ""
    platform = (hints.platform or "").lower()

    # iPadOS 13+ reports a Mac UA, touch points give it away
    is_ios = bool(_IOS_UA.search(ua)) or (
        platform in ("macintel", "macos", "mac os x") and hints.max_touch_points > 1
    )
    is_safari = bool(_SAFARI_UA.search(ua)) and not _NOT_SAFARI_UA.search(ua)
    is_mobile = hints.mobile or bool(_MOBILE_UA.search(ua))
    is_android = (
        bool(_ANDROID_UA.search(ua))
        or platform == "android"
        or (hints.mobile and "linux" in platform)
    )
    is_windows = "windows" in platform or platform.startswith("win") or bool(_WINDOWS_UA.search(ua))
    is_firefox = bool(_FIREFOX_UA.search(ua))
    is_edge = bool(_EDGE_UA.search(ua))
    is_chrome = bool(_CHROME_UA.search(ua)) and not is_edge

    if is_ios:
        tag = PlatformTag.IOS
    elif is_safari:
        tag = PlatformTag.SAFARI
    elif is_android:
        tag = PlatformTag.ANDROID
    elif is_windows:
        tag = PlatformTag.WINDOWS
    elif is_firefox:
        tag = PlatformTag.FIREFOX
    else:
        tag = PlatformTag.OTHER

    return PlatformInfo(
        tag=tag,
        is_ios=is_ios,
        is_safari=is_safari,
        is_android=is_android,
        is_windows=is_windows,
        is_firefox=is_firefox,
        is_edge=is_edge,
        is_chrome=is_chrome,
        is_mobile=is_mobile,
    )


def get_platform_drm_candidates(
    platform: PlatformInfo,
    prefer_playready_on_edge: bool = False,
) -> List[DrmCandidate]:
    """Ordered DRM candidates for a platform, most preferred first."""
    if platform.tag in (PlatformTag.IOS, PlatformTag.SAFARI):
        return [FAIRPLAY_HW]
    if platform.tag == PlatformTag.WINDOWS and platform.is_edge and prefer_playready_on_edge:
        return [PLAYREADY_SL3000, WIDEVINE_L1]
    return [WIDEVINE_L1, PLAYREADY_SL3000]


def check_eme_availability(probe: EmeProbeResults) -> Tuple[bool, Optional[str]]:
    """Return (available, reason) with the user-facing reason when EME cannot be used."""
    if not probe.eme_api_present:
        return False, (
            "Your browser does not support Encrypted Media Extensions (EME). "
            "DRM playback is not possible."
        )
    if probe.error_name == "NotAllowedError":
        if probe.in_iframe:
            return False, (
                'DRM is blocked because the iframe is missing the "encrypted-media" permission. '
                'The embedding page must use: <iframe allow="encrypted-media; autoplay" ...>'
            )
        return False, "DRM is blocked by browser permissions policy. Ensure encrypted-media is allowed."
    if not probe.eme_available:
        if probe.in_iframe:
            return False, (
                "No supported DRM key system found. If this player is in an iframe, make sure "
                'the parent uses: <iframe allow="encrypted-media; autoplay" ...>'
            )
        return False, "No supported DRM key system found in this browser."
    return True, None


def media_buffer_ms(robustness: Robustness, platform: PlatformInfo) -> int:
    if robustness == Robustness.HW:
        return BUFFER_HW_MS
    if platform.is_firefox:
        return BUFFER_FIREFOX_MS
    return BUFFER_SW_MS


def parse_robustness_override(value: Optional[str]) -> Optional[Robustness]:
    if not value:
        return None
    try:
        return Robustness(value.strip().upper())
    except ValueError:
        logger.warning(f"⚠️ Ignoring unknown robustness override {value!r}")
        return None


def detect_drm_capability(
    platform: PlatformInfo,
    probe: EmeProbeResults,
    robustness_override: Optional[str] = None,
    prefer_playready_on_edge: bool = False,
    require_hardware: bool = False,
) -> DrmCapability:
    """
    Pick the DRM type, robustness and buffer for a platform.

    Raises CapabilityError when EME is unusable, or when ``require_hardware``
    is set and no candidate passed its hardware probe.
    """
    available, reason = check_eme_availability(probe)
    if not available:
        logger.error(f"❌ EME unavailable on {platform.tag.value}: {reason}")
        raise CapabilityError(reason)

    candidates = get_platform_drm_candidates(platform, prefer_playready_on_edge)
    evaluated: List[Dict[str, object]] = []
    selected: Optional[DrmCandidate] = None
    for candidate in candidates:
        hw = bool(probe.hw_secure.get(candidate.drm_type, False))
        evaluated.append({
            "drmType": candidate.drm_type.value,
            "keySystem": candidate.key_system,
            "hwSecure": hw,
        })
        if hw:
            selected = candidate
            break

    if selected is not None:
        robustness = Robustness.HW
    else:
        if require_hardware:
            logger.warning(f"⚠️ No hardware-secure DRM on {platform.tag.value}, blocking playback")
            raise CapabilityError(DEVICE_NOT_SUPPORTED)
        selected = candidates[0]
        robustness = Robustness.SW

    override = parse_robustness_override(robustness_override)
    if override is not None and override != robustness:
        logger.info(f"🔧 Robustness override: {robustness.value} -> {override.value}")
        robustness = override

    capability = DrmCapability(
        supported=True,
        selected_drm_type=selected.drm_type,
        robustness=robustness,
        security_level="L1" if robustness == Robustness.HW else "L3",
        media_buffer_ms=media_buffer_ms(robustness, platform),
        platform=platform,
        evaluated_candidates=evaluated,
    )
    logger.info(
        f"✅ DRM capability for {platform.tag.value}: {capability.selected_drm_type.value} "
        f"{robustness.value} buffer={capability.media_buffer_ms}ms"
    )
    return capability


def select_drm_type_for_platform(
    platform: PlatformInfo,
    hw_secure: Optional[Mapping[DrmType, bool]] = None,
    prefer_playready_on_edge: bool = False,
) -> DrmType:
    """First hardware-backed candidate, else the platform's default DRM type."""
    candidates = get_platform_drm_candidates(platform, prefer_playready_on_edge)
    for candidate in candidates:
        if (hw_secure or {}).get(candidate.drm_type):
            return candidate.drm_type
    return candidates[0].drm_type
