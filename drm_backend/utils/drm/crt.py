"""
Customer Rights Token (CRT) builders.

Pure functions: the same inputs always give the same CRT, nothing here
touches the network, the settings store or the clock.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from drm_backend.schemas.type_defs import CustomerRightsToken, OutputProtection
from drm_backend.utils.drm.constants import HdcpVersion, LicenseType
from drm_backend.utils.drm.output_protection import (
    DEFAULT_POLICY_ROW,
    OutputProtectionPolicy,
    ResolutionTier,
    build_output_protection,
    resolution_tier_from_variant,
    resolve_output_protection,
)

logger = logging.getLogger(__name__)

DEFAULT_RELATIVE_EXPIRATION = "PT24H"
DEFAULT_PLAY_DURATION = "PT4H"


def _default_output_protection() -> OutputProtection:
    return build_output_protection(
        OutputProtectionPolicy(require_hdcp=DEFAULT_POLICY_ROW.sd, enforce=False)
    )


def build_purchase_crt(
    asset_id: str,
    output_protection: Optional[OutputProtection] = None,
    store_license: bool = True,
) -> CustomerRightsToken:
    return {
        "profile": {"purchase": {}},
        "assetId": asset_id,
        "outputProtection": output_protection or _default_output_protection(),
        "storeLicense": store_license,
    }


def build_rental_crt(
    asset_id: str,
    relative_expiration: str = DEFAULT_RELATIVE_EXPIRATION,
    play_duration: str = DEFAULT_PLAY_DURATION,
    output_protection: Optional[OutputProtection] = None,
    store_license: bool = True,
) -> CustomerRightsToken:
    return {
        "profile": {
            "rental": {
                "relativeExpiration": relative_expiration,
                "playDuration": play_duration,
            }
        },
        "assetId": asset_id,
        "outputProtection": output_protection or _default_output_protection(),
        "storeLicense": store_license,
    }


def build_template_crt(template_id: str, asset_id: Optional[str] = None) -> CustomerRightsToken:
    """CRT that references a template configured in the DRMtoday dashboard."""
    crt: CustomerRightsToken = {"ref": [f":{template_id}"]}
    if asset_id:
        crt["assetId"] = asset_id
    return crt


def build_crt_with_overrides(
    asset_id: str,
    base_crt: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    crt: Dict[str, Any] = {"assetId": asset_id}
    crt.update(base_crt or {})
    if overrides:
        crt["overrides"] = dict(overrides)
    return crt


def _payload_dict(payload: Any) -> Dict[str, Any]:
    if payload is None:
        return {}
    if hasattr(payload, "model_dump"):
        return payload.model_dump(exclude_none=True)
    return dict(payload)


def build_callback_response(
    payload: Any,
    license_type: Union[LicenseType, str] = LicenseType.PURCHASE,
    relative_expiration: Optional[str] = None,
    play_duration: Optional[str] = None,
    enforce: bool = True,
    digital: bool = True,
    analogue: bool = True,
    resolution_tier: Optional[ResolutionTier] = None,
) -> CustomerRightsToken:
    """
    Build the CRT returned to DRMtoday for a callback request.

    The outputProtection block comes from the policy table using the
    request's drmScheme, clientInfo.secLevel and resolution tier (explicit, or
    derived from the variant). ``enforce=False`` switches enforcement off and
    falls back to the default row.
    """
    data = _payload_dict(payload)
    asset_id = data.get("asset") or ""
    client_info = data.get("clientInfo") or {}
    tier = resolution_tier or resolution_tier_from_variant(data.get("variant"))

    if enforce:
        policy = resolve_output_protection(data.get("drmScheme"), client_info.get("secLevel"), tier)
    else:
        policy = OutputProtectionPolicy(require_hdcp=DEFAULT_POLICY_ROW.hdcp_for(tier), enforce=False)

    output_protection = build_output_protection(policy, digital=digital, analogue=analogue)

    if LicenseType(license_type) == LicenseType.RENTAL:
        return build_rental_crt(
            asset_id,
            relative_expiration=relative_expiration or DEFAULT_RELATIVE_EXPIRATION,
            play_duration=play_duration or DEFAULT_PLAY_DURATION,
            output_protection=output_protection,
        )
    return build_purchase_crt(asset_id, output_protection=output_protection)


def build_crt_for_token(
    asset_id: str = "test-key",
    license_type: Union[LicenseType, str] = LicenseType.PURCHASE,
    relative_expiration: Optional[str] = None,
    play_duration: Optional[str] = None,
    enforce: bool = False,
    digital: bool = True,
    analogue: bool = True,
    store_license: bool = True,
) -> CustomerRightsToken:
    """CRT embedded in an upfront token, where the client's scheme is not known yet."""
    output_protection = build_output_protection(
        OutputProtectionPolicy(require_hdcp=HdcpVersion.NONE, enforce=enforce),
        digital=digital,
        analogue=analogue,
    )
    if LicenseType(license_type) == LicenseType.RENTAL:
        return build_rental_crt(
            asset_id,
            relative_expiration=relative_expiration or DEFAULT_RELATIVE_EXPIRATION,
            play_duration=play_duration or DEFAULT_PLAY_DURATION,
            output_protection=output_protection,
            store_license=store_license,
        )
    return build_purchase_crt(asset_id, output_protection=output_protection, store_license=store_license)


def build_session_id(crt: Mapping[str, Any]) -> str:
    """x-dt-custom-data session id carrying the CRT inline. Test Dummy merchants only."""
    logger.warning("⚠️ crtjson session ids only work with Test Dummy merchants, use token auth in production")
    return "crtjson:" + json.dumps(crt, separators=(",", ":"))
