"""
Type definitions for the JSON objects this service builds.
Provides TypedDicts for Customer Rights Tokens and the player SDK config.
"""

from typing import TypedDict, Optional, List, Dict


class OutputProtection(TypedDict):
    """CRT outputProtection block"""
    digital: bool
    analogue: bool
    enforce: bool
    requireHDCP: str  # HDCP_NONE | HDCP_V1 | HDCP_V2


class RentalProfile(TypedDict):
    relativeExpiration: str  # ISO-8601 duration, e.g. PT24H
    playDuration: str


class CrtProfile(TypedDict, total=False):
    purchase: Dict
    rental: RentalProfile


class CustomerRightsToken(TypedDict, total=False):
    """DRMtoday Customer Rights Token"""
    profile: CrtProfile
    assetId: str
    outputProtection: OutputProtection
    storeLicense: bool

    # Template and override CRTs
    ref: List[str]
    overrides: Dict


class VideoConfig(TypedDict, total=False):
    codec: str  # 'H264' or 'AV1'
    encryption: str  # 'cbcs' or 'cenc'
    robustness: str  # 'HW' or 'SW', absent for FairPlay
    keyId: str  # hex, absent for FairPlay
    iv: str  # hex


class AudioConfig(TypedDict):
    codec: str
    encryption: str


class DrmConfig(TypedDict):
    """Config object handed to the rtc-drm-transform SDK"""
    merchant: str
    userId: str
    environment: str  # 'Staging' or 'Production'
    video: VideoConfig
    audio: AudioConfig
    logLevel: int
    mediaBufferMs: int
    type: str  # 'Widevine', 'PlayReady' or 'FairPlay'


class TokenOptData(TypedDict, total=False):
    merchant: str
    userId: Optional[str]
