from tests.samples import ANDROID_CHROME_UA, IPHONE_UA, KEY_ID, WINDOWS_CHROME_UA

WIDEVINE_L3_CALLBACK = {
    "asset": "test-key",
    "variant": "sd",
    "user": "viewer-1",
    "session": "s-1",
    "client": "c-1",
    "drmScheme": "WIDEVINE_MODULAR",
    "clientInfo": {"manufacturer": "Google", "model": "Pixel", "secLevel": "3"},
    "requestMetadata": {"remoteAddr": "203.0.113.7", "userAgent": ANDROID_CHROME_UA},
}


def test_root_endpoint(client):
    """Test the root endpoint"""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["callback"] == "/api/callback"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "drm-backend"
    assert body["uptime"] >= 0


def test_debug_status_hides_secrets(make_client):
    client = make_client(callback_auth_secret="hunter2-secret")
    body = client.get("/debug/status").json()
    assert body["status"] == "running"
    assert body["environment"]["callback_auth_enabled"] is True
    assert "hunter2-secret" not in str(body)


def test_unknown_route(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": {"status": 404, "message": "Route not found: GET /api/nope"}}


def test_cors_headers(client):
    allowed = client.get("/health", headers={"Origin": "https://preview-1.vercel.app"})
    assert allowed.headers["access-control-allow-origin"] == "https://preview-1.vercel.app"

    blocked = client.get("/health", headers={"Origin": "https://evil.com"})
    assert "access-control-allow-origin" not in blocked.headers


def test_cors_preflight(client):
    response = client.options(
        "/api/callback",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "x-dt-custom-data",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


# --- callback -------------------------------------------------------------

def test_callback_widevine_l3(client):
    """Widevine L3 gets the default row: no HDCP, not enforced"""
    response = client.post("/api/callback", json=WIDEVINE_L3_CALLBACK)
    assert response.status_code == 200
    assert response.json() == {
        "profile": {"purchase": {}},
        "assetId": "test-key",
        "outputProtection": {"digital": True, "analogue": True, "enforce": False, "requireHDCP": "HDCP_NONE"},
        "storeLicense": True,
    }


def test_callback_fairplay_without_client_info(client):
    response = client.post("/api/callback", json={"asset": "a", "drmScheme": "FAIRPLAY"})
    assert response.status_code == 200
    protection = response.json()["outputProtection"]
    assert protection["enforce"] is True
    assert protection["requireHDCP"] == "HDCP_NONE"


def test_callback_widevine_hw_hd(client):
    body = dict(WIDEVINE_L3_CALLBACK, variant="hd", clientInfo={"secLevel": 1})
    protection = client.post("/api/callback", json=body).json()["outputProtection"]
    assert protection == {"digital": True, "analogue": True, "enforce": True, "requireHDCP": "HDCP_V1"}


def test_callback_scheme_defaults_to_widevine(client):
    response = client.post("/api/callback", json={"asset": "a", "clientInfo": {"secLevel": "L1"}})
    assert response.status_code == 200
    assert response.json()["outputProtection"]["enforce"] is True


def test_callback_enforcement_setting(client, store):
    store.set("drm.outputProtection.enforce", False)
    body = dict(WIDEVINE_L3_CALLBACK, clientInfo={"secLevel": "1"})
    protection = client.post("/api/callback", json=body).json()["outputProtection"]
    assert protection["enforce"] is False
    assert protection["requireHDCP"] == "HDCP_NONE"


def test_callback_rejects_non_object_body(client):
    response = client.post("/api/callback", json=["not", "an", "object"])
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_callback_rejects_unknown_scheme(client):
    response = client.post("/api/callback", json={"drmScheme": "CLEARKEY"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error.startswith("Unsupported DRM scheme: CLEARKEY")
    assert "WIDEVINE_MODULAR" in error


def test_callback_secret(make_client):
    client = make_client(callback_auth_secret="s3cret")
    assert client.post("/api/callback", json=WIDEVINE_L3_CALLBACK).status_code == 401
    wrong = client.post("/api/callback", json=WIDEVINE_L3_CALLBACK, headers={"Authorization": "Bearer nope"})
    assert wrong.json() == {"error": "Unauthorized callback request"}
    ok = client.post("/api/callback", json=WIDEVINE_L3_CALLBACK, headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200


def test_rental_callback(client):
    response = client.post("/api/callback/rental", json=dict(WIDEVINE_L3_CALLBACK, clientInfo={"secLevel": "1"}))
    assert response.status_code == 200
    crt = response.json()
    assert crt["profile"] == {"rental": {"relativeExpiration": "PT24H", "playDuration": "PT4H"}}
    assert crt["outputProtection"]["enforce"] is False


def test_error_callback(client):
    body = dict(WIDEVINE_L3_CALLBACK, error={"message": "Device revoked", "code": 42})
    response = client.post("/api/callback/error", json=body)
    assert response.status_code == 403
    assert response.json() == {"error": "License request denied", "message": "Device revoked"}


# --- settings -------------------------------------------------------------

def test_encryption_flag_read_after_write(client):
    assert client.get("/api/settings/encryption/enabled").json() == {
        "enabled": True,
        "key": "drm.encryption.enabled",
    }

    response = client.put("/api/settings/encryption/enabled", json={"enabled": False})
    assert response.status_code == 200
    assert response.json()["enabled"] is False

    assert client.get("/api/settings/encryption/enabled").json()["enabled"] is False
    assert client.get("/api/settings/public").json()["settings"]["drm.encryption.enabled"] is False


def test_encryption_flag_requires_boolean(client):
    response = client.put("/api/settings/encryption/enabled", json={"enabled": "false"})
    assert response.status_code == 400
    assert response.json() == {"error": "Enabled must be a boolean value"}


def test_admin_key_guards_writes(make_client):
    client = make_client(admin_api_key="admin-key-123")
    denied = client.put("/api/settings/stream.domain", json={"value": "x.example.com"})
    assert denied.status_code == 401
    assert denied.json() == {"error": "Invalid API key"}

    ok = client.put(
        "/api/settings/stream.domain",
        json={"value": "x.example.com"},
        headers={"x-api-key": "admin-key-123"},
    )
    assert ok.status_code == 200
    # reads stay open
    assert client.get("/api/settings/stream.domain").json() == {"key": "stream.domain", "value": "x.example.com"}


def test_setting_crud(client):
    assert client.get("/api/settings/player.volume").status_code == 404

    response = client.put("/api/settings/player.volume", json={"value": 80})
    assert response.json() == {"success": True, "setting": 80}
    assert client.get("/api/settings/player.volume").json()["value"] == 80

    assert client.delete("/api/settings/player.volume").json() == {"message": "Setting deleted successfully"}
    missing = client.delete("/api/settings/player.volume")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Setting not found"}


def test_put_setting_requires_value(client):
    response = client.put("/api/settings/stream.domain", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Value is required"}


def test_bulk_update_and_filters(client):
    response = client.post("/api/settings", json={"settings": {
        "stream.domain": {"value": "customer.example.com"},
        "drm.encryption.mode": "cenc",
    }})
    assert response.status_code == 200
    assert response.json()["count"] == 2

    by_keys = client.get("/api/settings", params={"keys": "drm.encryption.mode,stream.domain"}).json()
    assert by_keys["settings"]["drm.encryption.mode"]["value"] == "cenc"
    assert set(by_keys["settings"]) == {"drm.encryption.mode", "stream.domain"}

    by_category = client.get("/api/settings/category/stream").json()
    assert by_category["category"] == "stream"
    assert by_category["settings"]["stream.domain"]["value"] == "customer.example.com"


def test_reset_setting(client):
    client.put("/api/settings/drm.encryption.mode", json={"value": "cenc"})
    response = client.post("/api/settings/drm.encryption.mode/reset")
    assert response.json() == {"success": True, "setting": "cbcs"}
    assert client.post("/api/settings/never.set/reset").status_code == 404


# --- broadcast ------------------------------------------------------------

def test_broadcast_encryption_forced_by_setting(client, store):
    response = client.post("/api/broadcast/sessions", json={"streamId": "live-1", "encrypted": False})
    body = response.json()
    assert body["isExisting"] is False
    assert body["encryptionEnforced"] is True
    assert body["session"]["encrypted"] is True

    store.set("drm.encryption.enabled", False)
    body = client.post("/api/broadcast/sessions", json={"streamId": "live-1", "encrypted": True}).json()
    assert body["isExisting"] is True
    assert body["session"]["encrypted"] is False


def test_broadcast_requires_stream_id(client):
    response = client.post("/api/broadcast/sessions", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "streamId is required"}


def test_broadcast_lifecycle(client):
    client.post("/api/broadcast/sessions", json={"streamId": "a"})
    client.post("/api/broadcast/sessions", json={"streamId": "b"})

    state = client.patch("/api/broadcast/sessions/a/state", json={"connectionState": "connected", "localSdp": "v=0"})
    assert state.json()["session"]["connectionState"] == "connected"
    assert state.json()["session"]["localSdp"] == "v=0"

    ping = client.post("/api/broadcast/sessions/a/ping").json()
    assert ping["session"]["lastPingAt"] is not None

    active = client.get("/api/broadcast/active").json()
    assert active["count"] == 2
    assert [s["streamId"] for s in active["sessions"]] == ["a", "b"]

    client.delete("/api/broadcast/sessions/b")
    assert client.get("/api/broadcast/sessions/b").json()["session"]["isActive"] is False
    assert client.get("/api/broadcast/active").json()["count"] == 1


def test_broadcast_missing_session(client):
    response = client.get("/api/broadcast/sessions/ghost")
    assert response.status_code == 404
    assert response.json() == {"error": "Session not found"}
    assert client.post("/api/broadcast/sessions/ghost/ping").status_code == 404


# --- player ---------------------------------------------------------------

def test_player_config_android_hardware(client):
    response = client.get("/api/player/config", params={"hw": "true"}, headers={"User-Agent": ANDROID_CHROME_UA})
    assert response.status_code == 200
    body = response.json()
    assert body["platform"]["tag"] == "Android"
    assert body["capability"]["selectedDrmType"] == "Widevine"
    assert body["config"]["video"]["robustness"] == "HW"
    assert body["config"]["video"]["keyId"] == KEY_ID
    assert body["config"]["mediaBufferMs"] == 1200
    assert body["config"]["merchant"] == "test-merchant"
    assert body["encryptionEnabled"] is True


def test_player_config_iphone(client):
    body = client.get("/api/player/config", headers={"User-Agent": IPHONE_UA}).json()
    assert body["config"]["type"] == "FairPlay"
    assert "keyId" not in body["config"]["video"]


def test_player_config_follows_encryption_mode_setting(client, store):
    store.set("drm.encryption.mode", "cenc")
    body = client.get("/api/player/config", headers={"User-Agent": WINDOWS_CHROME_UA}).json()
    assert body["config"]["video"]["encryption"] == "cenc"


def test_player_config_without_eme(client):
    response = client.get(
        "/api/player/config",
        params={"emeApi": "false"},
        headers={"User-Agent": WINDOWS_CHROME_UA},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["category"] == "capability"
    assert error["retryable"] is False


def test_player_config_bad_key(make_client):
    client = make_client(drm_key_id="abcd")
    response = client.get("/api/player/config", headers={"User-Agent": WINDOWS_CHROME_UA})
    assert response.status_code == 500
    assert response.json()["error"]["message"].startswith("DRM configuration error")


def test_player_error_report(client):
    response = client.post("/api/player/errors", json={"message": "Key status output-restricted"})
    assert response.status_code == 200
    assert response.json()["category"] == "output_restricted"
    assert response.json()["fatal"] is False

    playback = client.post("/api/player/errors", json={"kind": "playback", "name": "NotAllowedError"}).json()
    assert playback["muteAndRetry"] is True


def test_callback_enforce_flag_stored_as_text(client):
    """An enforce flag written as the string 'false' still switches enforcement off"""
    client.put(
        "/api/settings/drm.outputProtection.enforce",
        json={"value": "false", "valueType": "STRING"},
    )
    body = dict(WIDEVINE_L3_CALLBACK, clientInfo={"secLevel": "1"})
    protection = client.post("/api/callback", json=body).json()["outputProtection"]
    assert protection["enforce"] is False


def test_player_config_rejects_unknown_encryption(client):
    response = client.get(
        "/api/player/config",
        params={"encryption": "foo"},
        headers={"User-Agent": ANDROID_CHROME_UA},
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("Unsupported encryption mode: foo")


def test_player_config_accepts_encryption_override(client):
    response = client.get(
        "/api/player/config",
        params={"encryption": "CENC"},
        headers={"User-Agent": ANDROID_CHROME_UA},
    )
    assert response.status_code == 200
    assert response.json()["config"]["video"]["encryption"] == "cenc"
    assert "blockReason" not in response.json()["capability"]
