"""
Output-protection policy for DRMtoday Customer Rights Tokens.

The HDCP requirement and the enforce flag are looked up in a single table
keyed on (DRM scheme, security class) with one column per resolution tier.
Rows that do not match fall back to the permissive default row.
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from drm_backend.schemas.type_defs import OutputProtection
from drm_backend.utils.drm.constants import (
    DrmScheme,
    HdcpVersion,
    PLAYREADY_HARDWARE_MIN_LEVEL,
    normalize_drm_scheme,
)

logger = logging.getLogger(__name__)


class SecurityClass(str, Enum):
    HARDWARE = "HARDWARE"
    SOFTWARE = "SOFTWARE"
    ANY = "ANY"


class ResolutionTier(str, Enum):
    SD = "SD"
    HD = "HD"
    UHD = "UHD"


@dataclass(frozen=True)
class PolicyRow:
    sd: HdcpVersion
    hd: HdcpVersion
    uhd: HdcpVersion
    enforce: bool

    def hdcp_for(self, tier: ResolutionTier) -> HdcpVersion:
        if tier == ResolutionTier.UHD:
            return self.uhd
        if tier == ResolutionTier.HD:
            return self.hd
        return self.sd


@dataclass(frozen=True)
class OutputProtectionPolicy:
    require_hdcp: HdcpVersion
    enforce: bool


_NONE = HdcpVersion.NONE
_V1 = HdcpVersion.V1
_V2 = HdcpVersion.V2

DEFAULT_POLICY_ROW = PolicyRow(_NONE, _NONE, _NONE, enforce=False)

OUTPUT_PROTECTION_POLICY: Dict[Tuple[DrmScheme, SecurityClass], PolicyRow] = {
    (DrmScheme.WIDEVINE_MODULAR, SecurityClass.HARDWARE): PolicyRow(_V1, _V1, _V2, enforce=True),
    (DrmScheme.WIDEVINE_MODULAR, SecurityClass.SOFTWARE): PolicyRow(_NONE, _NONE, _NONE, enforce=False),
    (DrmScheme.FAIRPLAY, SecurityClass.ANY): PolicyRow(_NONE, _V1, _V1, enforce=True),
    (DrmScheme.PLAYREADY, SecurityClass.SOFTWARE): PolicyRow(_NONE, _NONE, _NONE, enforce=False),
    (DrmScheme.PLAYREADY, SecurityClass.HARDWARE): PolicyRow(_V1, _V1, _V2, enforce=True),
}

_WIDEVINE_HARDWARE_LEVELS = {"1", "L1", "2", "L2"}


def _level_number(level: str) -> Optional[int]:
    match = re.search(r"\d+", level)
    return int(match.group(0)) if match else None


def classify_security_level(
    scheme: Union[DrmScheme, str, None],
    sec_level: Union[str, int, None],
) -> SecurityClass:
    """
    Reduce a scheme-specific clientInfo.secLevel to HARDWARE or SOFTWARE.

    A missing level is treated as SOFTWARE. FairPlay rows do not depend on the
    level, so FairPlay always classifies as ANY.
    """
    canonical = normalize_drm_scheme(scheme.value if isinstance(scheme, DrmScheme) else scheme)
    if canonical == DrmScheme.FAIRPLAY:
        return SecurityClass.ANY

    if sec_level is None:
        return SecurityClass.SOFTWARE
    level = str(sec_level).strip().upper()
    if not level:
        return SecurityClass.SOFTWARE

    if level in ("HW", "HARDWARE"):
        return SecurityClass.HARDWARE
    if level in ("SW", "SOFTWARE"):
        return SecurityClass.SOFTWARE

    if canonical == DrmScheme.WIDEVINE_MODULAR:
        return SecurityClass.HARDWARE if level in _WIDEVINE_HARDWARE_LEVELS else SecurityClass.SOFTWARE

    if canonical == DrmScheme.PLAYREADY:
        number = _level_number(level)
        if number is not None and number >= PLAYREADY_HARDWARE_MIN_LEVEL:
            return SecurityClass.HARDWARE
        return SecurityClass.SOFTWARE

    return SecurityClass.SOFTWARE


def resolution_tier_from_variant(variant: Optional[str]) -> ResolutionTier:
    """Guess the resolution tier from a DRMtoday variant id like 'uhd' or 'hd-1080p'."""
    if not variant:
        return ResolutionTier.SD
    value = str(variant).lower()
    if "2160" in value or "4k" in value or "uhd" in value:
        return ResolutionTier.UHD
    if "1080" in value or "720" in value or re.search(r"(^|[^a-z])f?hd([^a-z]|$)", value):
        return ResolutionTier.HD
    return ResolutionTier.SD


def lookup_policy_row(scheme: Union[DrmScheme, str, None], sec_level: Union[str, int, None]) -> PolicyRow:
    canonical = normalize_drm_scheme(scheme.value if isinstance(scheme, DrmScheme) else scheme)
    if canonical is None:
        return DEFAULT_POLICY_ROW
    security = classify_security_level(canonical, sec_level)
    return OUTPUT_PROTECTION_POLICY.get((canonical, security), DEFAULT_POLICY_ROW)


def resolve_output_protection(
    scheme: Union[DrmScheme, str, None],
    sec_level: Union[str, int, None] = None,
    tier: ResolutionTier = ResolutionTier.SD,
) -> OutputProtectionPolicy:
    row = lookup_policy_row(scheme, sec_level)
    return OutputProtectionPolicy(require_hdcp=row.hdcp_for(tier), enforce=row.enforce)


def build_output_protection(
    policy: OutputProtectionPolicy,
    digital: bool = True,
    analogue: bool = True,
) -> OutputProtection:
    return {
        "digital": digital,
        "analogue": analogue,
        "enforce": policy.enforce,
        "requireHDCP": policy.require_hdcp.value,
    }
