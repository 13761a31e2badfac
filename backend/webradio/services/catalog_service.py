"""
Catalog snapshot and the normalization rules that keep the catalog consistent.

The export pipeline never touches the tables directly: it works on a
``CatalogSnapshot`` loaded once per export, so the catalog cannot change under
a running export.
"""
import json
import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from webradio import models
from webradio.config import settings
from webradio.core.exceptions import NotFoundError
from webradio.core.text import unique_strings
from webradio.schemas.catalog import ExportProfile, Genre, PlayerApp, Station

logger = logging.getLogger(__name__)


def normalize_station_sub_genres(raw: Iterable | None, genre: Genre | None) -> list[str]:
    """Keep only sub-genres the station's genre declares, in the genre's spelling."""
    if genre is None:
        return []
    allowed = {sub.lower(): sub for sub in genre.sub_genres}
    if not allowed:
        return []
    seen: set[str] = set()
    result: list[str] = []
    for value in raw or []:
        if not isinstance(value, str):
            continue
        canonical = allowed.get(value.strip().lower())
        if not canonical or canonical.lower() in seen:
            continue
        seen.add(canonical.lower())
        result.append(canonical)
    return result


def collect_allowed_sub_genres(genres: Iterable) -> set[str]:
    allowed: set[str] = set()
    for genre in genres:
        for sub in genre.sub_genres or []:
            normalized = str(sub or "").strip().lower()
            if normalized:
                allowed.add(normalized)
    return allowed


def derive_default_network_code(apps: Iterable[PlayerApp]) -> str:
    """The one network code every app agrees on, or '' when there are zero or several."""
    codes = {app.network_code for app in apps if app.network_code}
    if len(codes) == 1:
        return next(iter(codes))
    return ""


@lru_cache(maxsize=4)
def load_default_catalog(path: str | None = None) -> dict[str, Any]:
    """Read the bundled catalog JSON. A missing file yields an empty catalog."""
    path = path or settings.DEFAULT_CATALOG_PATH
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        logger.warning("Default catalog not found at %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def default_catalog_network_code(path: str | None = None) -> str:
    apps = load_default_catalog(path).get("player_apps") or []
    return derive_default_network_code(PlayerApp.model_validate(app) for app in apps if isinstance(app, dict))


def _validated(model, items: Iterable) -> list:
    return [item if isinstance(item, model) else model.model_validate(item) for item in items or []]


class CatalogSnapshot:
    """Immutable view of the catalog: read-only id -> record mappings."""

    def __init__(
        self,
        genres: Mapping[str, Genre],
        stations: Mapping[str, Station],
        player_apps: Mapping[str, PlayerApp],
        export_profiles: Mapping[str, ExportProfile],
        default_network_code: str = "",
    ):
        self._genres = MappingProxyType(dict(genres))
        self._stations = MappingProxyType(dict(stations))
        self._player_apps = MappingProxyType(dict(player_apps))
        self._export_profiles = MappingProxyType(dict(export_profiles))
        self._default_network_code = default_network_code

    @property
    def genres(self) -> Mapping[str, Genre]:
        return self._genres

    @property
    def stations(self) -> Mapping[str, Station]:
        return self._stations

    @property
    def player_apps(self) -> Mapping[str, PlayerApp]:
        return self._player_apps

    @property
    def export_profiles(self) -> Mapping[str, ExportProfile]:
        return self._export_profiles

    @property
    def default_network_code(self) -> str:
        return self._default_network_code

    @classmethod
    def build(
        cls,
        genres: Iterable = (),
        stations: Iterable = (),
        player_apps: Iterable = (),
        export_profiles: Iterable = (),
        default_network_code: str | None = None,
    ) -> "CatalogSnapshot":
        """Validate raw records (dicts or records) and apply the sub-genre invariant.

        When ``default_network_code`` is None it is derived from the bundled
        default catalog, or from ``player_apps`` when that catalog has no apps.
        """
        genre_list = _validated(Genre, genres)
        genre_map = {genre.id: genre for genre in genre_list}

        station_map: dict[str, Station] = {}
        for station in _validated(Station, stations):
            sub_genres = normalize_station_sub_genres(station.sub_genres, genre_map.get(station.genre_id))
            station_map[station.id] = station.model_copy(update={"sub_genres": sub_genres})

        app_list = _validated(PlayerApp, player_apps)
        if default_network_code is None:
            if load_default_catalog().get("player_apps"):
                default_network_code = default_catalog_network_code()
            else:
                default_network_code = derive_default_network_code(app_list)

        return cls(
            genres=genre_map,
            stations=station_map,
            player_apps={app.id: app for app in app_list},
            export_profiles={profile.id: profile for profile in _validated(ExportProfile, export_profiles)},
            default_network_code=default_network_code,
        )

    def genre_for(self, station: Station) -> Genre | None:
        return self._genres.get(station.genre_id) if station.genre_id else None

    def player_for(self, profile: ExportProfile) -> PlayerApp | None:
        return self._player_apps.get(profile.player_id) if profile.player_id else None


_BOOKKEEPING_COLUMNS = frozenset({"created_at", "updated_at"})


def _row_to_dict(row) -> dict[str, Any]:
    return {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in _BOOKKEEPING_COLUMNS
    }


async def _fetch_rows(db: AsyncSession, model) -> list[dict[str, Any]]:
    result = await db.execute(select(model).order_by(model.created_at, model.id))
    return [_row_to_dict(row) for row in result.scalars().all()]


async def load_catalog_snapshot(db: AsyncSession, default_network_code: str | None = None) -> CatalogSnapshot:
    snapshot = CatalogSnapshot.build(
        genres=await _fetch_rows(db, models.Genre),
        stations=await _fetch_rows(db, models.Station),
        player_apps=await _fetch_rows(db, models.PlayerApp),
        export_profiles=await _fetch_rows(db, models.ExportProfile),
        default_network_code=default_network_code,
    )
    logger.debug(
        "Loaded catalog snapshot: %d genres, %d stations, %d apps, %d profiles",
        len(snapshot.genres), len(snapshot.stations),
        len(snapshot.player_apps), len(snapshot.export_profiles),
    )
    return snapshot


# --- Catalog maintenance -------------------------------------------------
# Edits to one record ripple into the records that reference it.


async def _all(db: AsyncSession, model, *criteria) -> list:
    result = await db.execute(select(model).where(*criteria))
    return list(result.scalars().all())


async def update_genre(db: AsyncSession, genre_id: str, name: str, sub_genres: Iterable | None) -> models.Genre:
    """Rename a genre / replace its sub-genres, then prune stale station and profile sub-genres."""
    genre = await db.get(models.Genre, genre_id)
    if not genre:
        raise NotFoundError("Genre not found")

    genre.name = str(name or "").strip()
    genre.sub_genres = unique_strings(sub_genres)
    record = Genre.model_validate(_row_to_dict(genre))

    for station in await _all(db, models.Station, models.Station.genre_id == genre_id):
        station.sub_genres = normalize_station_sub_genres(station.sub_genres, record)

    allowed = collect_allowed_sub_genres(await _all(db, models.Genre))
    for profile in await _all(db, models.ExportProfile):
        profile.sub_genres = [sub for sub in profile.sub_genres or [] if sub.lower() in allowed]

    await db.flush()
    logger.info("Genre %s updated", genre_id)
    return genre


async def delete_genre(db: AsyncSession, genre_id: str) -> None:
    genre = await db.get(models.Genre, genre_id)
    if not genre:
        raise NotFoundError("Genre not found")
    removed = {str(sub).lower() for sub in genre.sub_genres or []}

    for station in await _all(db, models.Station, models.Station.genre_id == genre_id):
        station.genre_id = ""
        station.sub_genres = []

    for profile in await _all(db, models.ExportProfile):
        profile.genre_ids = [gid for gid in profile.genre_ids or [] if gid != genre_id]
        if removed:
            profile.sub_genres = [sub for sub in profile.sub_genres or [] if sub.lower() not in removed]

    await db.delete(genre)
    await db.flush()
    logger.info("Genre %s deleted", genre_id)


async def delete_station(db: AsyncSession, station_id: str) -> None:
    station = await db.get(models.Station, station_id)
    if not station:
        raise NotFoundError("Station not found")
    for profile in await _all(db, models.ExportProfile):
        if station_id in (profile.station_ids or []):
            profile.station_ids = [sid for sid in profile.station_ids if sid != station_id]
    await db.delete(station)
    await db.flush()
    logger.info("Station %s deleted", station_id)


async def delete_player_app(db: AsyncSession, player_id: str) -> None:
    app = await db.get(models.PlayerApp, player_id)
    if not app:
        raise NotFoundError("Player app not found")
    for profile in await _all(db, models.ExportProfile, models.ExportProfile.player_id == player_id):
        profile.player_id = None
    await db.delete(app)
    await db.flush()
    logger.info("Player app %s deleted", player_id)


async def assign_player(db: AsyncSession, profile_id: str, player_id: str | None) -> models.ExportProfile:
    """Attach a player app to a profile; any other profile holding it lets go."""
    profile = await db.get(models.ExportProfile, profile_id)
    if not profile:
        raise NotFoundError("Export profile not found")

    player_id = (player_id or "").strip() or None
    if player_id:
        if not await db.get(models.PlayerApp, player_id):
            raise NotFoundError("Player app not found")
        others = await _all(
            db, models.ExportProfile,
            models.ExportProfile.player_id == player_id,
            models.ExportProfile.id != profile_id,
        )
        for other in others:
            other.player_id = None

    profile.player_id = player_id
    await db.flush()
    return profile
