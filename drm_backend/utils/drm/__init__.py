"""
DRM utilities package.
Consolidates the output-protection policy, CRT building, platform detection
and player config assembly.
"""

from drm_backend.utils.drm.crt import build_callback_response, build_crt_for_token
from drm_backend.utils.drm.output_protection import resolve_output_protection
from drm_backend.utils.drm.platform import detect_drm_capability, detect_platform
from drm_backend.utils.drm.player_config import build_drm_config

__all__ = [
    'build_callback_response',
    'build_crt_for_token',
    'resolve_output_protection',
    'detect_drm_capability',
    'detect_platform',
    'build_drm_config',
]
