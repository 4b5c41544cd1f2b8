"""
Upfront Authorization Tokens (UAT) for DRMtoday Token / Fallback Authorization.

Pure Callback Authorization does not need any of this: DRMtoday calls
/api/callback directly. Tokens are signed with the merchant's shared secret
(hex in DRM_JWT_SHARED_SECRET) and carry the CRT as a JSON string claim.
"""

import json
import math
import secrets
import logging
import time
from typing import Any, Dict, Mapping, Optional

import jwt

from drm_backend.config.env import Env

logger = logging.getLogger(__name__)


class TokenAuthNotConfigured(RuntimeError):
    """Raised when the shared secret or key id is missing."""


def is_token_auth_available(env: Env) -> bool:
    return env.token_auth_available


def get_signing_secret(env: Env) -> bytes:
    if not env.drm_jwt_shared_secret:
        raise TokenAuthNotConfigured(
            "DRM_JWT_SHARED_SECRET is not configured. Token Authorization is not available."
        )
    try:
        return bytes.fromhex(env.drm_jwt_shared_secret.strip())
    except ValueError as e:
        raise TokenAuthNotConfigured(f"DRM_JWT_SHARED_SECRET is not valid hex: {e}") from e


def generate_random_string(min_length: int = 16) -> str:
    return secrets.token_hex(math.ceil(min_length / 2))[:min_length + 4]


def generate_auth_token(
    env: Env,
    crt: Mapping[str, Any],
    merchant: Optional[str] = None,
    user_id: Optional[str] = None,
    kid: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> str:
    """
    Sign a UAT for DRMtoday.

    ``optData`` and ``crt`` are serialized JSON strings, and ``crt`` holds a
    single CRT object rather than a list.
    """
    if not crt:
        raise ValueError("CRT object is required for token generation")

    merchant = merchant if merchant is not None else env.drmtoday_merchant
    user_id = user_id if user_id is not None else env.default_user_id
    kid = kid or env.drm_jwt_kid
    expires_in = expires_in or env.drm_jwt_token_expiry

    opt_data: Dict[str, Any] = {"merchant": merchant}
    if user_id:
        opt_data["userId"] = user_id

    jti = generate_random_string()
    issued_at = int(time.time())
    payload = {
        "jti": jti,
        "optData": json.dumps(opt_data),
        "crt": json.dumps(crt),
        "iat": issued_at,
        "exp": issued_at + int(expires_in),
    }

    token = jwt.encode(
        payload,
        get_signing_secret(env),
        algorithm=env.drm_jwt_algorithm,
        headers={"kid": kid, "typ": "JWT"},
    )
    logger.info(
        f"🔑 Generated auth token: merchant={merchant} userId={user_id or '-'} "
        f"assetId={crt.get('assetId')} alg={env.drm_jwt_algorithm} expiresIn={expires_in} jti={jti}"
    )
    return token


def verify_auth_token(env: Env, token: str) -> Dict[str, Any]:
    """Decode a UAT and parse optData / crt back into objects. Raises jwt.InvalidTokenError."""
    try:
        decoded = jwt.decode(token, get_signing_secret(env), algorithms=[env.drm_jwt_algorithm])
    except jwt.InvalidTokenError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise

    for claim in ("optData", "crt"):
        if isinstance(decoded.get(claim), str):
            try:
                decoded[claim] = json.loads(decoded[claim])
            except ValueError as e:
                raise jwt.InvalidTokenError(f"Claim {claim} is not valid JSON") from e
    logger.debug(f"Token verified: jti={decoded.get('jti')}")
    return decoded
