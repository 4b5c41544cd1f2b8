"""
Python client for the DRM backend HTTP API.

Extends RobustHTTPClient for session management and JSON parsing; used by
broadcaster/player tooling and operational scripts to drive the service.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from drm_backend.utils.http_utils import RobustHTTPClient

logger = logging.getLogger(__name__)


class BackendAPIError(Exception):
    """Non-2xx answer from the backend."""

    def __init__(self, status_code: int, message: str, payload: Optional[Any] = None):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class DrmBackendClient(RobustHTTPClient):
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        callback_secret: Optional[str] = None,
        timeout: int = 10,
        max_retries: int = 3,
    ):
        super().__init__(timeout=timeout, max_retries=max_retries)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.callback_secret = callback_secret

    def _prepare_headers(self, headers: Optional[Dict[str, str]] = None, admin: bool = False) -> Dict[str, str]:
        current_headers = {"Content-Type": "application/json"}
        if admin and self.api_key:
            current_headers["x-api-key"] = self.api_key
        if headers:
            current_headers.update(headers)
        return current_headers

    def _call(
        self,
        method: str,
        path: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        admin: bool = False,
    ) -> Any:
        response = self.request(
            method,
            f"{self.base_url}{path}",
            context=f"[drm-backend] {method} {path}",
            headers=self._prepare_headers(headers, admin=admin),
            params=params,
            json_data=json_data,
        )
        data = self.safe_json_parse(response, context=f"[drm-backend] {path}")
        if not response.ok:
            message = "Request failed"
            if isinstance(data, dict):
                error = data.get("error") or data.get("message")
                if isinstance(error, dict):
                    error = error.get("message")
                message = error or message
            logger.warning(f"⚠️ [drm-backend] {method} {path} -> HTTP {response.status_code}: {message}")
            raise BackendAPIError(response.status_code, message, data)
        return data

    @staticmethod
    def _key(key: str) -> str:
        return quote(key, safe="")

    # Health
    def health_check(self) -> Dict[str, Any]:
        return self._call("GET", "/health")

    # Callback (what DRMtoday would send; handy for smoke tests)
    def send_callback(self, payload: Dict[str, Any], rental: bool = False) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.callback_secret}"} if self.callback_secret else None
        path = "/api/callback/rental" if rental else "/api/callback"
        return self._call("POST", path, json_data=payload, headers=headers)

    # Broadcast sessions
    def create_broadcast_session(
        self,
        stream_id: str,
        endpoint: Optional[str] = None,
        merchant: Optional[str] = None,
        user_id_for_drm: Optional[str] = None,
        encrypted: Optional[bool] = None,
        ice_servers: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        body = {
            "streamId": stream_id,
            "endpoint": endpoint,
            "merchant": merchant,
            "userIdForDrm": user_id_for_drm,
            "encrypted": encrypted,
            "iceServers": ice_servers,
        }
        return self._call("POST", "/api/broadcast/sessions", json_data={k: v for k, v in body.items() if v is not None})

    def get_broadcast_session(self, stream_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/api/broadcast/sessions/{self._key(stream_id)}")

    def update_broadcast_session_state(self, stream_id: str, **state: Any) -> Dict[str, Any]:
        """Keyword names are the API's: connectionState, localSdp, remoteSdp, iceCandidates."""
        return self._call("PATCH", f"/api/broadcast/sessions/{self._key(stream_id)}/state", json_data=state)

    def ping_broadcast_session(self, stream_id: str) -> Dict[str, Any]:
        return self._call("POST", f"/api/broadcast/sessions/{self._key(stream_id)}/ping")

    def delete_broadcast_session(self, stream_id: str) -> Dict[str, Any]:
        return self._call("DELETE", f"/api/broadcast/sessions/{self._key(stream_id)}")

    def get_active_broadcast_sessions(self) -> Dict[str, Any]:
        return self._call("GET", "/api/broadcast/active")

    # Settings
    def get_encryption_setting(self) -> bool:
        data = self._call("GET", "/api/settings/encryption/enabled")
        return bool(data.get("enabled", True))

    def update_encryption_setting(self, enabled: bool) -> Dict[str, Any]:
        return self._call("PUT", "/api/settings/encryption/enabled", json_data={"enabled": enabled}, admin=True)

    def get_settings(self, category: Optional[str] = None, keys: Optional[List[str]] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if category:
            params["category"] = category
        if keys:
            params["keys"] = ",".join(keys)
        return self._call("GET", "/api/settings", params=params or None)["settings"]

    def get_public_settings(self) -> Dict[str, Any]:
        return self._call("GET", "/api/settings/public")["settings"]

    def get_setting(self, key: str) -> Any:
        return self._call("GET", f"/api/settings/{self._key(key)}")["value"]

    def get_settings_by_category(self, category: str) -> Dict[str, Any]:
        return self._call("GET", f"/api/settings/category/{self._key(category)}")["settings"]

    def update_setting(self, key: str, value: Any, value_type: Optional[str] = None, **metadata: Any) -> Dict[str, Any]:
        body = {"value": value, **metadata}
        if value_type:
            body["valueType"] = value_type
        return self._call("PUT", f"/api/settings/{self._key(key)}", json_data=body, admin=True)

    def update_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/api/settings", json_data={"settings": settings}, admin=True)

    def delete_setting(self, key: str) -> Dict[str, Any]:
        return self._call("DELETE", f"/api/settings/{self._key(key)}", admin=True)

    def reset_setting(self, key: str) -> Dict[str, Any]:
        return self._call("POST", f"/api/settings/{self._key(key)}/reset", admin=True)

    # Tokens
    def generate_auth_token(self, **options: Any) -> Dict[str, Any]:
        """Options use the API's names: assetId, userId, licenseType, enforce, expiresIn."""
        return self._call("POST", "/api/token/generate", json_data=options)

    def verify_auth_token(self, token: str) -> Dict[str, Any]:
        return self._call("POST", "/api/token/verify", json_data={"token": token})

    # Player
    def get_player_config(self, user_agent: Optional[str] = None, **probe: Any) -> Dict[str, Any]:
        headers = {"User-Agent": user_agent} if user_agent else None
        params = {k: (str(v).lower() if isinstance(v, bool) else v) for k, v in probe.items() if v is not None}
        return self._call("GET", "/api/player/config", params=params or None, headers=headers)

    def report_player_error(self, kind: str, message: str, name: Optional[str] = None, in_iframe: bool = False) -> Dict[str, Any]:
        body = {"kind": kind, "message": message, "name": name, "inIframe": in_iframe}
        return self._call("POST", "/api/player/errors", json_data=body)
