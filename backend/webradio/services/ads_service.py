"""
Ad configuration for exported player documents.

iOS players consume VMAP ad rules; Android and Home Assistant players consume
VAST pre-roll tags. Both are derived from the same three placements stored on
a player app (preroll, midroll, rewarded), renamed into the ad-unit
convention each client family expects. Nothing here raises on bad input:
unusable placements come out disabled.
"""
import enum
import math
import re
from typing import Any

from pydantic import BaseModel

from webradio.core.text import normalize_platform_key
from webradio.schemas.catalog import Placements, PlayerApp

IOS_VMAP_URL = (
    "https://pubads.g.doubleclick.net/gampad/ads?iu={iu}&env=vp&gdfp_req=1&output=vmap&ad_rule=1"
    "&description_url={encoded_page_url}&cust_params={encoded_cust_params}"
    "&npa={npa}&tfcd={tfcd}&us_privacy={us_privacy}"
)
ANDROID_VAST_TEMPLATE = (
    "https://pubads.g.doubleclick.net/gampad/ads?iu={iu}&env=vp&gdfp_req=1&unviewed_position_start=1"
    "&output=vast&sz={size}&description_url={encoded_page_url}&cust_params={encoded_cust_params}"
    "&npa={npa}&tfcd={tfcd}&us_privacy={us_privacy}"
)

AD_PLATFORMS = ("ios", "android", "homeassistant")
VAST_PLATFORMS = ("android", "homeassistant")

DEFAULT_VIDEO_SIZE = "640x480"
AUDIO_SIZE = "1x1"
DEFAULT_US_PRIVACY = "1YNN"
DEFAULT_AD_LOCK_SECONDS = 300
DEFAULT_AD_LOCK_SCOPE = "rolling"

_NETWORK_CODE = re.compile(r"/(\d{3,})\b")
_IOS_SUFFIX = re.compile(r"_(?:preroll|midroll)\b", re.I)
_ADRULES = re.compile(r"_adrules\b", re.I)
_ANDROID_SUFFIX = re.compile(r"_(?:adrules|midroll)\b", re.I)
_PREROLL = re.compile(r"_preroll\b", re.I)
_RADIO_SEGMENT = re.compile(r"/radio/", re.I)


def extract_network_code(iu: Any) -> str | None:
    if not isinstance(iu, str):
        return None
    match = _NETWORK_CODE.search(iu.strip())
    return match.group(1) if match else None


def resolve_network_code(raw: Any, placements: Placements | None, default: str = "") -> str:
    """Explicit code, else the first code embedded in preroll/midroll/rewarded, else ``default``."""
    explicit = str(raw or "").strip()
    if explicit:
        return explicit
    if placements is not None:
        for candidate in (placements.preroll, placements.midroll, placements.rewarded):
            extracted = extract_network_code(candidate)
            if extracted:
                return extracted
    return default


def _split_unit(path: str) -> tuple[str, str]:
    prefix, sep, leaf = path.rpartition("/")
    if not sep:
        return "", path
    return prefix + sep, leaf


def normalize_ios_placement(raw: Any, fallback: str) -> str:
    base = str(raw or "").strip() or fallback
    if not base:
        return ""
    normalized = _IOS_SUFFIX.sub("_adrules", base)
    if _ADRULES.search(normalized) and _RADIO_SEGMENT.search(normalized):
        normalized = _RADIO_SEGMENT.sub("/webradio/", normalized, count=1)
    return normalized


def normalize_android_placement(raw: Any, fallback: str, expected: str | None = None) -> str:
    fallback = fallback.strip()
    source = str(raw or "").strip() or fallback
    if not source:
        return ""

    prefix, leaf = _split_unit(source)
    if not leaf:
        # Trailing slash: the whole value is the prefix
        leaf = source
        prefix = ""
    leaf = _ANDROID_SUFFIX.sub("_preroll", leaf)

    if expected:
        if leaf.lower() != expected.lower():
            leaf = expected
    elif not _PREROLL.search(leaf):
        leaf = "preroll"

    if not prefix and fallback:
        fallback_prefix, _ = _split_unit(fallback)
        if fallback_prefix:
            prefix = fallback_prefix

    normalized = f"{prefix}{leaf}"
    if _PREROLL.search(leaf) and _RADIO_SEGMENT.search(normalized):
        normalized = _RADIO_SEGMENT.sub("/webradio/", normalized)
    return normalized


def _fallback_unit(network_code: str, leaf: str) -> str:
    return f"/{network_code}/webradio/{leaf}" if network_code else ""


def default_privacy() -> dict[str, Any]:
    return {"npa": 0, "tfcd": 0, "us_privacy": DEFAULT_US_PRIVACY}


def default_ad_lock() -> dict[str, Any]:
    return {
        "enabled": True,
        "seconds": DEFAULT_AD_LOCK_SECONDS,
        "scope": DEFAULT_AD_LOCK_SCOPE,
        "exempt_placements": [],
    }


def _compose(
    platform: str,
    network_code: str,
    placements: Placements,
    video_size: str,
    privacy: dict[str, Any],
    ad_lock: dict[str, Any],
) -> dict[str, Any] | None:
    base = {
        "network_code": network_code,
        "privacy_defaults": privacy,
        "ad_lock": ad_lock,
    }
    video_source = placements.midroll or placements.rewarded

    if platform == "ios":
        audio = normalize_ios_placement(placements.preroll, _fallback_unit(network_code, "audio_adrules"))
        video = normalize_ios_placement(video_source, _fallback_unit(network_code, "video_adrules"))
        return {
            **base,
            "mode": "vmap",
            "vmap_url": IOS_VMAP_URL,
            "placements": {
                "audio_rules": {"iu": audio or None, "enabled": bool(audio)},
                "video_rules": {"iu": video or None, "enabled": bool(video)},
            },
            "route": {"audio": "audio_rules", "video": "video_rules", "no": None},
        }

    if platform in VAST_PLATFORMS:
        audio = normalize_android_placement(
            placements.preroll, _fallback_unit(network_code, "audio_preroll"), "audio_preroll"
        )
        video = normalize_android_placement(
            video_source, _fallback_unit(network_code, "video_preroll"), "video_preroll"
        )
        return {
            **base,
            "mode": "vast",
            "ad_tag_template": ANDROID_VAST_TEMPLATE,
            "placements": {
                "audio_preroll": {"iu": audio or None, "default_size": AUDIO_SIZE, "enabled": bool(audio)},
                "video_preroll": {"iu": video or None, "default_size": video_size, "enabled": bool(video)},
            },
            "route": {"audio": "audio_preroll", "video": "video_preroll", "no": None},
        }

    return None


def build_ads(player: PlayerApp | None, platform: str | None, default_network_code: str = "") -> dict[str, Any] | None:
    """Ads block for ``platform`` from the player app's stored placements, or None."""
    if player is None or not player.ads_enabled:
        return None
    key = normalize_platform_key(platform)
    if key not in AD_PLATFORMS:
        return None
    placements = player.placements
    network_code = resolve_network_code(player.network_code, placements, default_network_code)
    return _compose(
        key,
        network_code,
        placements,
        player.video_preroll_default_size or DEFAULT_VIDEO_SIZE,
        default_privacy(),
        default_ad_lock(),
    )


# --- Rebuilding from a previously generated ads block ---------------------


class PlacementKind(str, enum.Enum):
    ABSENT = "absent"
    PLAIN = "plain"
    STRUCTURED = "structured"


class StoredPlacement(BaseModel):
    model_config = {"frozen": True}

    kind: PlacementKind = PlacementKind.ABSENT
    iu: str = ""

    @classmethod
    def parse(cls, value: Any) -> "StoredPlacement":
        if isinstance(value, str) and value:
            return cls(kind=PlacementKind.PLAIN, iu=value)
        if isinstance(value, dict) and isinstance(value.get("iu"), str) and value["iu"]:
            return cls(kind=PlacementKind.STRUCTURED, iu=value["iu"])
        return cls()


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _as_number(value: Any):
    numeric = float(value)
    return int(numeric) if numeric.is_integer() else numeric


def coerce_privacy_defaults(existing: Any) -> dict[str, Any]:
    defaults = existing if isinstance(existing, dict) else {}
    us_privacy = defaults.get("us_privacy")
    return {
        "npa": _as_number(defaults["npa"]) if _is_number(defaults.get("npa")) else 0,
        "tfcd": _as_number(defaults["tfcd"]) if _is_number(defaults.get("tfcd")) else 0,
        "us_privacy": us_privacy.strip() if isinstance(us_privacy, str) and us_privacy.strip() else DEFAULT_US_PRIVACY,
    }


def coerce_ad_lock(existing: Any) -> dict[str, Any]:
    lock = existing if isinstance(existing, dict) else {}
    scope = lock.get("scope")
    exempt = lock.get("exempt_placements")
    return {
        "enabled": lock.get("enabled") is not False,
        "seconds": _as_number(lock["seconds"]) if _is_number(lock.get("seconds")) else DEFAULT_AD_LOCK_SECONDS,
        "scope": scope.strip() if isinstance(scope, str) and scope.strip() else DEFAULT_AD_LOCK_SCOPE,
        "exempt_placements": [item for item in exempt if isinstance(item, str) and item.strip()]
        if isinstance(exempt, list) else [],
    }


class StoredAds(BaseModel):
    """An ads block from an earlier build, parsed once into typed placements."""

    model_config = {"frozen": True}

    network_code: str = ""
    audio: StoredPlacement = StoredPlacement()
    video: StoredPlacement = StoredPlacement()
    rewarded: StoredPlacement = StoredPlacement()
    privacy_defaults: dict[str, Any] = {}
    ad_lock: dict[str, Any] = {}

    @classmethod
    def from_document(cls, ads: Any) -> "StoredAds":
        ads = ads if isinstance(ads, dict) else {}
        placements = ads.get("placements") if isinstance(ads.get("placements"), dict) else {}

        def first(*keys: str) -> StoredPlacement:
            for key in keys:
                parsed = StoredPlacement.parse(placements.get(key))
                if parsed.kind is not PlacementKind.ABSENT:
                    return parsed
            return StoredPlacement()

        return cls(
            network_code=str(ads.get("network_code") or "").strip(),
            audio=first("audio_preroll", "audio_rules"),
            video=first("video_preroll", "video_rules"),
            rewarded=first("rewarded"),
            privacy_defaults=coerce_privacy_defaults(ads.get("privacy_defaults")),
            ad_lock=coerce_ad_lock(ads.get("ad_lock")),
        )

    def as_placements(self) -> Placements:
        return Placements(preroll=self.audio.iu, midroll=self.video.iu, rewarded=self.rewarded.iu)


def build_fallback_ads(stored: StoredAds, platform: str | None, default_network_code: str = "") -> dict[str, Any] | None:
    """Renormalize a stored ads block for another platform."""
    key = normalize_platform_key(platform)
    if key not in AD_PLATFORMS:
        return None
    placements = stored.as_placements()
    network_code = resolve_network_code(stored.network_code, placements, default_network_code)
    return _compose(
        key,
        network_code,
        placements,
        DEFAULT_VIDEO_SIZE,
        dict(stored.privacy_defaults),
        {**stored.ad_lock, "exempt_placements": list(stored.ad_lock.get("exempt_placements", []))},
    )
