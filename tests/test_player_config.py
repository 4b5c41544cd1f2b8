"""
Tests for SDK config assembly and hex key helpers.
"""

import pytest

from drm_backend.utils.drm.constants import DrmType
from drm_backend.utils.drm.keys import hex_to_bytes, normalize_hex, validate_drm_key
from drm_backend.utils.drm.platform import EmeProbeResults, UserAgentHints, detect_drm_capability, detect_platform
from drm_backend.utils.drm.player_config import build_drm_config, sdk_environment
from tests.samples import ANDROID_CHROME_UA, IPHONE_UA, IV, KEY_ID, MAC_SAFARI_UA


def capability_for(ua, hw_secure=None):
    platform = detect_platform(UserAgentHints(user_agent=ua))
    return detect_drm_capability(platform, EmeProbeResults(hw_secure=hw_secure or {}))


def config_for(ua, hw_secure=None, **kwargs):
    options = dict(merchant="m", user_id="u", environment="staging", key_id_hex=KEY_ID, iv_hex=IV)
    options.update(kwargs)
    return build_drm_config(capability_for(ua, hw_secure), **options)


class TestDrmConfig:
    @pytest.mark.parametrize("ua", [IPHONE_UA, MAC_SAFARI_UA])
    def test_fairplay_config_has_no_key_id(self, ua):
        config = config_for(ua)
        assert config["type"] == "FairPlay"
        assert "keyId" not in config["video"]
        assert "robustness" not in config["video"]
        assert config["video"] == {"codec": "H264", "encryption": "cbcs", "iv": IV}

    def test_fairplay_ignores_cenc_request(self):
        assert config_for(IPHONE_UA, encryption_mode="cenc")["video"]["encryption"] == "cbcs"

    def test_widevine_hw_config(self):
        config = config_for(ANDROID_CHROME_UA, hw_secure={DrmType.WIDEVINE: True})
        assert config == {
            "merchant": "m",
            "userId": "u",
            "environment": "Staging",
            "video": {"codec": "H264", "encryption": "cbcs", "robustness": "HW", "keyId": KEY_ID, "iv": IV},
            "audio": {"codec": "opus", "encryption": "clear"},
            "logLevel": 3,
            "mediaBufferMs": 1200,
            "type": "Widevine",
        }

    def test_keys_are_normalized(self):
        dashed = "01234567-89ab-cdef-0123-456789ABCDEF"
        config = config_for(ANDROID_CHROME_UA, key_id_hex=dashed)
        assert config["video"]["keyId"] == KEY_ID

    def test_cenc_mode(self):
        assert config_for(ANDROID_CHROME_UA, encryption_mode="cenc")["video"]["encryption"] == "cenc"

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError, match="Unsupported encryption mode"):
            config_for(ANDROID_CHROME_UA, encryption_mode="ctr")

    def test_missing_key_id_rejected(self):
        with pytest.raises(ValueError):
            config_for(ANDROID_CHROME_UA, key_id_hex="")

    @pytest.mark.parametrize("name,expected", [
        ("production", "Production"),
        ("Production", "Production"),
        ("staging", "Staging"),
        ("", "Staging"),
        (None, "Staging"),
    ])
    def test_sdk_environment(self, name, expected):
        assert sdk_environment(name) == expected


class TestHexKeys:
    def test_separators_are_stripped(self):
        assert normalize_hex("AB:cd-EF 01") == "abcdef01"

    def test_odd_length_rejected(self):
        with pytest.raises(ValueError, match="odd length"):
            hex_to_bytes("abc")

    def test_non_hex_rejected(self):
        with pytest.raises(ValueError):
            hex_to_bytes("zz")

    def test_validate_length(self):
        assert len(validate_drm_key(KEY_ID)) == 16
        with pytest.raises(ValueError, match="expected 16 bytes"):
            validate_drm_key("abcd")
