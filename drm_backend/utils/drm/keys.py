"""
Hex key helpers for DRM key ids and IVs.
"""

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s:\-]")


def normalize_hex(value: str) -> str:
    """Strip whitespace, colons and dashes and lowercase the result."""
    return _SEPARATORS.sub("", value or "").lower()


def hex_to_bytes(value: str) -> bytes:
    clean = normalize_hex(value)
    if len(clean) % 2 != 0:
        raise ValueError("Invalid hex string: odd length")
    try:
        return bytes.fromhex(clean)
    except ValueError as e:
        raise ValueError(f"Invalid hex string: {e}") from e


def bytes_to_hex(data: bytes) -> str:
    return data.hex()


def validate_drm_key(value: Optional[str], expected_length: int = 16) -> bytes:
    """Decode a hex key id / IV and check it is exactly ``expected_length`` bytes."""
    if not value:
        raise ValueError("DRM key is empty")
    key = hex_to_bytes(value)
    if len(key) != expected_length:
        raise ValueError(f"Invalid key length: expected {expected_length} bytes, got {len(key)}")
    return key
