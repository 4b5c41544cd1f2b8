"""
Shared-secret checks for admin writes and DRMtoday callbacks.
"""

import hmac
import logging

from fastapi import Depends, HTTPException, Request

from drm_backend.context import AppContext, get_context

logger = logging.getLogger(__name__)


def _mask(k: str) -> str:
    k = (k or "").strip()
    if not k:
        return "None"
    n = len(k)
    return f"{k[:4]}***{k[-4:]}(len={n})" if n > 8 else f"{k[:2]}***{k[-2:]}(len={n})"


def _matches(received: str, expected: str) -> bool:
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def enforce_admin_key(request: Request, ctx: AppContext = Depends(get_context)) -> None:
    """Require ``x-api-key`` to equal ADMIN_API_KEY when that variable is set."""
    expected = ctx.env.admin_api_key
    if not expected:
        return
    received = (request.headers.get("x-api-key") or "").strip()
    if not _matches(received, expected):
        logger.warning(f"🔒 Admin key rejected: expected={_mask(expected)} received={_mask(received)}")
        raise HTTPException(status_code=401, detail="Invalid API key")


def check_callback_secret(request: Request, secret: str) -> None:
    """Require ``Authorization: Bearer <secret>`` when a callback secret is configured."""
    if not secret:
        return
    auth_header = request.headers.get("authorization") or ""
    if not _matches(auth_header, f"Bearer {secret}"):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"🔒 Unauthorized callback request from {client}")
        raise HTTPException(status_code=401, detail="Unauthorized callback request")
