"""
Origin matching for CORS: exact origins, ``*`` wildcards and subdomains.
"""

import re
import logging
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


def _split(origin: str):
    parsed = urlparse(origin if "://" in origin else f"https://{origin}")
    return parsed.scheme, (parsed.hostname or "").lower()


def is_origin_allowed(origin: Optional[str], allowed: Iterable[str]) -> bool:
    # Same-origin requests and non-browser clients send no Origin
    if not origin:
        return True

    origin_scheme, origin_host = _split(origin)
    for pattern in allowed:
        if origin == pattern:
            return True
        if "*" in pattern:
            regex = "^" + re.escape(pattern).replace(r"\*", ".*") + "$"
            if re.match(regex, origin):
                return True
            continue
        scheme, host = _split(pattern)
        if host and scheme == origin_scheme and (origin_host == host or origin_host.endswith("." + host)):
            return True
    return False


class OriginPatternCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that accepts wildcard and subdomain origin patterns."""

    def __init__(self, app: ASGIApp, allowed_origins: List[str], **kwargs):
        super().__init__(app, allow_origins=allowed_origins, **kwargs)
        self.allowed_origin_patterns = list(allowed_origins)

    def is_allowed_origin(self, origin: str) -> bool:
        allowed = is_origin_allowed(origin, self.allowed_origin_patterns)
        if not allowed:
            logger.warning(f"🚫 CORS blocked origin: {origin}")
        return allowed
