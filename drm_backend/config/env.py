"""
Environment configuration for the DRM backend.

Values come from the process environment (``.env`` files are loaded by
``run_server.py`` and at app import through python-dotenv).
"""

import os
import tempfile
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from drm_backend.utils.drm.constants import DRMTODAY_URLS, JWT_ALGORITHMS

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}

REQUIRED_VARS = ["DRMTODAY_MERCHANT"]
TOKEN_AUTH_VARS = ["DRM_JWT_SHARED_SECRET", "DRM_JWT_KID"]

# 100 years, DRMtoday accepts long-lived upfront tokens
DEFAULT_TOKEN_EXPIRY = 3153600000


def env_flag(name: str, default: bool = False) -> bool:
    """Return True when the variable holds a truthy value (1, true, yes, on)."""
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in TRUTHY


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(f"⚠️ {name}={raw!r} is not an integer, using {default}")
        return default


def split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _is_hex(value: Optional[str]) -> bool:
    """True for a non-empty hex string, the format of the DRMtoday shared secret."""
    if not value or not value.strip():
        return False
    try:
        bytes.fromhex(value.strip())
    except ValueError:
        return False
    return True


def get_drmtoday_base_url(environment: str) -> str:
    """License server base URL for a DRMtoday environment, staging when unknown."""
    urls = DRMTODAY_URLS.get((environment or "").lower(), DRMTODAY_URLS["staging"])
    return urls["base"]


@dataclass
class Env:
    node_env: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000

    drmtoday_merchant: str = ""
    drmtoday_environment: str = "staging"

    drm_key_id: str = ""
    drm_iv: str = ""
    drm_encryption_mode: str = "cbcs"

    drm_jwt_shared_secret: Optional[str] = None
    drm_jwt_kid: Optional[str] = None
    drm_jwt_algorithm: str = "HS512"
    drm_jwt_token_expiry: int = DEFAULT_TOKEN_EXPIRY

    default_asset_id: str = "test-key"
    default_user_id: str = ""

    callback_auth_secret: str = ""
    admin_api_key: str = ""
    cors_allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    prefer_playready_on_edge: bool = False
    require_hardware_drm: bool = False

    settings_file: Optional[str] = None

    log_level: str = "info"
    log_to_file: bool = False
    log_file: str = field(default_factory=lambda: os.path.join(tempfile.gettempdir(), "drm_backend.log"))

    @classmethod
    def from_environ(cls) -> "Env":
        algorithm = os.getenv("DRM_JWT_ALGORITHM", "HS512").strip().upper()
        if algorithm not in JWT_ALGORITHMS:
            logger.warning(f"⚠️ Unsupported DRM_JWT_ALGORITHM {algorithm!r}, falling back to HS512")
            algorithm = "HS512"

        return cls(
            node_env=os.getenv("NODE_ENV", "development"),
            host=os.getenv("HOST", "127.0.0.1"),
            port=env_int("PORT", 8000),
            drmtoday_merchant=os.getenv("DRMTODAY_MERCHANT", ""),
            drmtoday_environment=os.getenv("DRMTODAY_ENVIRONMENT", "staging"),
            drm_key_id=os.getenv("DRM_KEY_ID", ""),
            drm_iv=os.getenv("DRM_IV", ""),
            drm_encryption_mode=os.getenv("DRM_ENCRYPTION_MODE", "cbcs").lower(),
            drm_jwt_shared_secret=os.getenv("DRM_JWT_SHARED_SECRET") or None,
            drm_jwt_kid=os.getenv("DRM_JWT_KID") or None,
            drm_jwt_algorithm=algorithm,
            drm_jwt_token_expiry=env_int("DRM_JWT_TOKEN_EXPIRY", DEFAULT_TOKEN_EXPIRY),
            default_asset_id=os.getenv("DEFAULT_ASSET_ID", "test-key"),
            default_user_id=os.getenv("DEFAULT_USER_ID", ""),
            callback_auth_secret=os.getenv("CALLBACK_AUTH_SECRET", ""),
            admin_api_key=os.getenv("ADMIN_API_KEY", ""),
            cors_allowed_origins=split_origins(os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000")),
            prefer_playready_on_edge=env_flag("DRM_PREFER_PLAYREADY_ON_EDGE"),
            require_hardware_drm=env_flag("DRM_REQUIRE_HARDWARE"),
            settings_file=os.getenv("SETTINGS_FILE") or None,
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            log_to_file=env_flag("LOG_TO_FILE"),
            log_file=os.getenv("LOG_FILE", os.path.join(tempfile.gettempdir(), "drm_backend.log")),
        )

    @property
    def is_production(self) -> bool:
        return self.node_env.lower() == "production"

    @property
    def token_auth_available(self) -> bool:
        return bool(self.drm_jwt_kid) and _is_hex(self.drm_jwt_shared_secret)

    @property
    def drmtoday_base_url(self) -> str:
        return get_drmtoday_base_url(self.drmtoday_environment)

    def missing_required(self) -> List[str]:
        values = {"DRMTODAY_MERCHANT": self.drmtoday_merchant}
        return [name for name in REQUIRED_VARS if not values.get(name)]

    def missing_token_vars(self) -> List[str]:
        values = {
            "DRM_JWT_SHARED_SECRET": _is_hex(self.drm_jwt_shared_secret),
            "DRM_JWT_KID": self.drm_jwt_kid,
        }
        return [name for name in TOKEN_AUTH_VARS if not values.get(name)]

    def summary(self) -> dict:
        """Sanitized view of the configuration, secrets reduced to presence flags."""
        return {
            "NODE_ENV": self.node_env,
            "DRMTODAY_MERCHANT": self.drmtoday_merchant or "Not set",
            "DRMTODAY_ENVIRONMENT": self.drmtoday_environment,
            "DRMTODAY_BASE_URL": self.drmtoday_base_url,
            "DRM_KEY_ID_set": bool(self.drm_key_id),
            "DRM_IV_set": bool(self.drm_iv),
            "DRM_ENCRYPTION_MODE": self.drm_encryption_mode,
            "token_auth_available": self.token_auth_available,
            "DRM_JWT_ALGORITHM": self.drm_jwt_algorithm,
            "callback_auth_enabled": bool(self.callback_auth_secret),
            "admin_key_enabled": bool(self.admin_api_key),
            "CORS_ALLOWED_ORIGINS": self.cors_allowed_origins,
            "DRM_PREFER_PLAYREADY_ON_EDGE": self.prefer_playready_on_edge,
            "DRM_REQUIRE_HARDWARE": self.require_hardware_drm,
            "SETTINGS_FILE": self.settings_file or "Not set",
        }
