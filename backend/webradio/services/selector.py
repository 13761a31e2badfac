"""
Station selection for an export profile.

A station is eligible when its genre, any of its sub-genres, or its id is
named by the profile. Inactive stations only make it in when listed by id.
The result is a list of wire-ready station documents sorted by name.
"""
import locale
import logging
import re
from typing import Any

from webradio.config import settings
from webradio.schemas.catalog import ExportProfile, Station
from webradio.services.catalog_service import CatalogSnapshot

logger = logging.getLogger(__name__)

LEGACY_LOGO_PATTERNS = [
    re.compile(r"https?://raw\.githubusercontent\.com/hastla007/webradioadminpanel/refs/heads/main/webradio_logo\.png", re.I),
    re.compile(r"https?://github\.com/hastla007/webradioadminpanel/blob/main/webradio_logo\.png(?:\?raw=true)?", re.I),
]
PLACEHOLDER_LOGO_PATTERNS = [
    re.compile(r"picsum\.photos", re.I),
    re.compile(r"images\.unsplash\.com", re.I),
    re.compile(r"placehold", re.I),
    re.compile(r"placeholder", re.I),
    re.compile(r"dummyimage\.com", re.I),
]

_TOKEN = re.compile(r"[a-z0-9]+", re.I)


def _first_token(value: str | None) -> str | None:
    if not value:
        return None
    match = _TOKEN.search(value)
    return match.group(0).lower() if match else None


def resolve_ad_section(tags: list[str] | None, genre_key: str | None) -> str | None:
    """Pick the ad section for a station from its tags and genre key.

    Tag containing the genre wins, then the first tag, then the genre itself.
    """
    lowered_genre = genre_key.lower() if genre_key else None
    tag_list = tags or []

    if lowered_genre:
        for tag in tag_list:
            if lowered_genre in tag.lower():
                return _first_token(tag) or lowered_genre

    if tag_list:
        token = _first_token(tag_list[0])
        if token:
            return token

    return lowered_genre


def is_placeholder_logo(url: str | None) -> bool:
    value = (url or "").strip()
    if not value:
        return True
    if any(pattern.search(value) for pattern in LEGACY_LOGO_PATTERNS):
        return True
    return any(pattern.search(value) for pattern in PLACEHOLDER_LOGO_PATTERNS)


def resolve_logo(url: str | None) -> str:
    if is_placeholder_logo(url):
        return settings.PLACEHOLDER_LOGO
    return url.strip()


def _collation_configured() -> bool:
    return locale.getlocale(locale.LC_COLLATE)[0] is not None


def station_sort_key(name: str):
    if _collation_configured():
        return locale.strxfrm(name)
    return (name.casefold(), name)


def _genre_key(station: Station, snapshot: CatalogSnapshot) -> str | None:
    if station.genre_id:
        return station.genre_id
    genre = snapshot.genre_for(station)
    if genre and genre.name:
        return genre.name.lower()
    return None


def to_export_document(station: Station, snapshot: CatalogSnapshot) -> dict[str, Any]:
    genre_key = _genre_key(station, snapshot)
    doc: dict[str, Any] = {
        "id": station.id,
        "name": station.name,
        "genre": genre_key,
        "url": station.stream_url,
        "logo": resolve_logo(station.logo_url),
        "description": station.description,
        "bitrate": station.bitrate,
        "language": station.language,
        "region": station.region,
        "tags": list(station.tags),
        "subGenres": list(station.sub_genres),
        "isPlaying": False,
        "isFavorite": station.is_favorite,
        "imaAdType": station.ad_type.value,
    }
    section = resolve_ad_section(station.tags, genre_key)
    if section:
        doc["adMeta"] = {"section": section}
    return doc


def select_stations(profile: ExportProfile, snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    genre_ids = set(profile.genre_ids)
    station_ids = set(profile.station_ids)
    sub_genre_filter = {sub.lower() for sub in profile.sub_genres}

    seen: set[str] = set()
    selected: list[dict[str, Any]] = []
    for station in snapshot.stations.values():
        explicit = station.id in station_ids
        matches_genre = station.genre_id in genre_ids
        matches_sub_genre = any(sub.lower() in sub_genre_filter for sub in station.sub_genres)
        if not (explicit or matches_genre or matches_sub_genre):
            continue
        if not explicit and not station.is_active:
            continue
        if station.id in seen:
            continue
        seen.add(station.id)
        selected.append(to_export_document(station, snapshot))

    selected.sort(key=lambda doc: station_sort_key(doc["name"]))
    logger.debug("Profile %s selected %d stations", profile.id, len(selected))
    return selected
