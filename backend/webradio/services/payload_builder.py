"""
Per-platform export documents.

``build_export_context`` does the initial build for the player app's primary
platform; ``build_payload_for_platform`` derives every other platform's
document from it, and ``write_export_files`` writes one JSON file per
platform the player app declares.
"""
import copy
import json
import logging
import math
import os
from typing import Any

from webradio.core.text import normalize_platform_key, slugify
from webradio.schemas.catalog import ExportProfile, PlayerApp
from webradio.schemas.export import ExportContext, ExportedFile
from webradio.services.ads_service import AD_PLATFORMS, StoredAds, build_ads, build_fallback_ads
from webradio.services.catalog_service import CatalogSnapshot
from webradio.services.selector import select_stations

logger = logging.getLogger(__name__)

GENERIC_PLATFORM = "generic"
HOME_ASSISTANT = "homeassistant"


def determine_platforms(player: PlayerApp | None) -> list[str]:
    """Normalized platform keys in declared order, without duplicates."""
    if player is None:
        return []
    platforms: list[str] = []
    for value in player.platforms:
        key = normalize_platform_key(value)
        if key and key not in platforms:
            platforms.append(key)
    return platforms


def determine_platform(player: PlayerApp | None) -> str | None:
    platforms = determine_platforms(player)
    return platforms[0] if platforms else None


def build_home_assistant_settings(player: PlayerApp | None, ads: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "autoplay": False,
        "volume_default": 0.7,
        "ads_enabled": bool(ads) and (player is None or player.ads_enabled),
        "ui_theme": "dark",
    }


def app_descriptor_id(player: PlayerApp) -> str:
    return slugify(player.name, fallback=player.id) or "app"


def build_export_context(profile: ExportProfile, snapshot: CatalogSnapshot) -> ExportContext:
    stations = select_stations(profile, snapshot)
    player = snapshot.player_for(profile)
    platform = determine_platform(player)

    payload: dict[str, Any] = {"stations": stations}
    if player is not None and platform in AD_PLATFORMS:
        payload["app"] = {"id": app_descriptor_id(player), "platform": platform, "version": 1}
        ads = build_ads(player, platform, snapshot.default_network_code)
        if ads:
            payload["ads"] = ads
        if platform == HOME_ASSISTANT:
            payload["settings"] = build_home_assistant_settings(player, payload.get("ads"))

    return ExportContext(profile=profile, stations=stations, player=player, platform=platform, payload=payload)


def _carried_version(app: Any) -> int | float:
    version = app.get("version") if isinstance(app, dict) else None
    if isinstance(version, bool) or version is None:
        return 1
    try:
        numeric = float(version)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(numeric) or numeric == 0:
        return 1
    return int(numeric) if numeric.is_integer() else numeric


def build_payload_for_platform(
    context: ExportContext,
    platform: str | None,
    default_network_code: str = "",
) -> dict[str, Any]:
    key = normalize_platform_key(platform) or GENERIC_PLATFORM
    initial = context.payload
    payload: dict[str, Any] = {"stations": copy.deepcopy(initial.get("stations", []))}

    player = context.player
    if player is None:
        if initial.get("app"):
            payload["app"] = dict(initial["app"])
        if initial.get("ads"):
            payload["ads"] = copy.deepcopy(initial["ads"])
        return payload

    payload["app"] = {
        "id": app_descriptor_id(player),
        "platform": key,
        "version": _carried_version(initial.get("app")),
    }

    if key in AD_PLATFORMS:
        ads = build_ads(player, key, default_network_code)
        if not ads and player.ads_enabled and initial.get("ads"):
            ads = build_fallback_ads(StoredAds.from_document(initial["ads"]), key, default_network_code)
        if ads:
            payload["ads"] = ads
        if key == HOME_ASSISTANT:
            payload["settings"] = build_home_assistant_settings(player, ads)
    elif initial.get("ads"):
        payload["ads"] = copy.deepcopy(initial["ads"])

    return payload


def export_platforms(context: ExportContext) -> list[str]:
    platforms = determine_platforms(context.player)
    if not platforms and context.platform:
        platforms = [context.platform.strip().lower()]
    return platforms or [GENERIC_PLATFORM]


def platforms_for_player(player: PlayerApp | None) -> list[str]:
    """Platform keys whose files a profile using ``player`` owns."""
    return determine_platforms(player) or [GENERIC_PLATFORM]


def write_export_files(
    profile: ExportProfile,
    context: ExportContext,
    output_dir: str,
    default_network_code: str = "",
) -> list[ExportedFile]:
    """Write ``{slug}-{platform}.json`` for every target platform, in declared order."""
    os.makedirs(output_dir, exist_ok=True)
    slug = slugify(profile.name, fallback=profile.id)
    written: list[ExportedFile] = []

    for platform in export_platforms(context):
        payload = build_payload_for_platform(context, platform, default_network_code)
        file_name = f"{slug}-{platform}.json"
        output_path = os.path.join(output_dir, file_name)
        with open(output_path, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
        written.append(ExportedFile(platform=platform, file_name=file_name, output_path=output_path))

    logger.info("Wrote %d export files for profile %s", len(written), profile.id)
    return written
