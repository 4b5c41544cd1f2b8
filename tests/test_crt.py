"""
Tests for the Customer Rights Token builders.
"""

import json

import pytest

from drm_backend.schemas.callback import CallbackRequest
from drm_backend.utils.drm.crt import (
    build_callback_response,
    build_crt_for_token,
    build_crt_with_overrides,
    build_purchase_crt,
    build_rental_crt,
    build_session_id,
    build_template_crt,
)
from drm_backend.utils.drm.output_protection import ResolutionTier


class TestCallbackResponse:
    def test_widevine_l3_gets_default_row(self):
        """Widevine secLevel 3 -> no HDCP, no enforcement"""
        crt = build_callback_response({"drmScheme": "WIDEVINE_MODULAR", "clientInfo": {"secLevel": "3"}})
        assert crt["outputProtection"] == {
            "digital": True,
            "analogue": True,
            "enforce": False,
            "requireHDCP": "HDCP_NONE",
        }

    def test_fairplay_without_resolution_data(self):
        crt = build_callback_response({"drmScheme": "FAIRPLAY"})
        assert crt["outputProtection"]["enforce"] is True
        assert crt["outputProtection"]["requireHDCP"] == "HDCP_NONE"

    def test_fairplay_hd_variant_requires_hdcp_v1(self):
        crt = build_callback_response({"drmScheme": "FAIRPLAY", "variant": "hd"})
        assert crt["outputProtection"]["requireHDCP"] == "HDCP_V1"

    def test_explicit_tier_wins_over_variant(self):
        crt = build_callback_response(
            {"drmScheme": "WIDEVINE_MODULAR", "clientInfo": {"secLevel": "1"}, "variant": "sd"},
            resolution_tier=ResolutionTier.UHD,
        )
        assert crt["outputProtection"]["requireHDCP"] == "HDCP_V2"

    def test_purchase_shape(self):
        crt = build_callback_response({"asset": "movie-1", "drmScheme": "PLAYREADY", "clientInfo": {"secLevel": 3000}})
        assert crt["profile"] == {"purchase": {}}
        assert crt["assetId"] == "movie-1"
        assert crt["storeLicense"] is True
        assert crt["outputProtection"]["requireHDCP"] == "HDCP_V1"

    def test_missing_asset_becomes_empty_string(self):
        assert build_callback_response({})["assetId"] == ""

    def test_rental_profile(self):
        crt = build_callback_response({"asset": "a"}, license_type="rental", enforce=False)
        assert crt["profile"] == {"rental": {"relativeExpiration": "PT24H", "playDuration": "PT4H"}}
        assert crt["outputProtection"]["enforce"] is False

    def test_enforce_false_disables_hardware_row(self):
        """A caller switching enforcement off gets the default row even for L1"""
        crt = build_callback_response(
            {"drmScheme": "WIDEVINE_MODULAR", "clientInfo": {"secLevel": "1"}},
            enforce=False,
        )
        assert crt["outputProtection"]["enforce"] is False
        assert crt["outputProtection"]["requireHDCP"] == "HDCP_NONE"

    def test_digital_and_analogue_flags_pass_through(self):
        crt = build_callback_response({"drmScheme": "FAIRPLAY"}, digital=False, analogue=False)
        assert crt["outputProtection"]["digital"] is False
        assert crt["outputProtection"]["analogue"] is False

    def test_accepts_pydantic_payload(self):
        payload = CallbackRequest.model_validate(
            {"asset": "x", "drmScheme": "WIDEVINE_MODULAR", "clientInfo": {"secLevel": 1}}
        )
        crt = build_callback_response(payload)
        assert crt["assetId"] == "x"
        assert crt["outputProtection"]["enforce"] is True

    @pytest.mark.parametrize("body", [
        {"drmScheme": "WIDEVINE_MODULAR", "clientInfo": {"secLevel": "1"}, "variant": "uhd"},
        {"drmScheme": "PLAYREADY", "clientInfo": {"secLevel": "2000"}},
        {"drmScheme": "FAIRPLAY", "variant": "hd"},
        {"drmScheme": "OMADRM"},
    ])
    def test_round_trip_is_stable(self, body):
        """Serializing and re-parsing the CRT keeps outputProtection and rebuilding is deterministic"""
        crt = build_callback_response(body)
        reparsed = json.loads(json.dumps(crt))
        assert reparsed["outputProtection"] == crt["outputProtection"]
        assert build_callback_response(body) == crt


class TestOtherBuilders:
    def test_purchase_default_protection(self):
        crt = build_purchase_crt("a")
        assert crt["outputProtection"]["requireHDCP"] == "HDCP_NONE"

    def test_rental_custom_windows(self):
        crt = build_rental_crt("a", relative_expiration="PT1H", play_duration="PT30M")
        assert crt["profile"]["rental"] == {"relativeExpiration": "PT1H", "playDuration": "PT30M"}

    def test_template(self):
        assert build_template_crt("gold") == {"ref": [":gold"]}
        assert build_template_crt("gold", "asset-1") == {"ref": [":gold"], "assetId": "asset-1"}

    def test_overrides_only_when_present(self):
        crt = build_crt_with_overrides("a", {"ref": [":t"]})
        assert crt == {"assetId": "a", "ref": [":t"]}
        crt = build_crt_with_overrides("a", {"ref": [":t"]}, {"storeLicense": False})
        assert crt["overrides"] == {"storeLicense": False}

    def test_token_crt(self):
        crt = build_crt_for_token(asset_id="k", license_type="rental", enforce=True)
        assert "rental" in crt["profile"]
        assert crt["outputProtection"] == {
            "digital": True,
            "analogue": True,
            "enforce": True,
            "requireHDCP": "HDCP_NONE",
        }

    def test_session_id(self):
        crt = build_purchase_crt("a")
        session_id = build_session_id(crt)
        assert session_id.startswith("crtjson:")
        assert json.loads(session_id[len("crtjson:"):]) == crt
