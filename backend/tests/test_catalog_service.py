import json

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from webradio import models
from webradio.core.exceptions import NotFoundError
from webradio.core.text import normalize_platform_key, slugify, unique_strings
from webradio.schemas.catalog import ExportProfile, Genre, PlayerApp, Station
from webradio.services.catalog_service import (
    CatalogSnapshot,
    assign_player,
    default_catalog_network_code,
    delete_genre,
    delete_player_app,
    delete_station,
    derive_default_network_code,
    load_catalog_snapshot,
    load_default_catalog,
    normalize_station_sub_genres,
    update_genre,
)


def test_slugify():
    assert slugify("Chillout Essentials") == "chillout-essentials"
    assert slugify("  --Jazz & Blues!!  ") == "jazz-blues"
    assert slugify("!!!", fallback="ep-1") == "ep-1"
    assert slugify(None, fallback="x") == "x"


def test_normalize_platform_key():
    assert normalize_platform_key(" Home Assistant ") == "homeassistant"
    assert normalize_platform_key("iOS") == "ios"
    assert normalize_platform_key(None) == ""
    assert normalize_platform_key(42) == ""


def test_unique_strings_keeps_first_spelling():
    assert unique_strings([" Rock", "rock", "", "  ", "Jazz", None, "ROCK"]) == ["Rock", "Jazz"]
    assert unique_strings(None) == []


def test_player_app_merges_legacy_platform():
    app = PlayerApp.model_validate({
        "id": "p1",
        "platform": " Android ",
        "platforms": ["iOS", "android", "ANDROID", "  ", "Home Assistant"],
    })
    assert app.platforms == ["Android", "iOS", "Home Assistant"]
    assert app.primary_platform == "Android"


def test_player_app_defaults():
    app = PlayerApp.model_validate({"id": "p1", "ftp_server": "sftp://files.example.com", "ftp_timeout": "abc"})
    assert app.platforms == ["web"]
    assert app.ads_enabled is True
    assert app.video_preroll_default_size == "640x480"
    assert app.ftp_protocol == "sftp"
    assert app.ftp_timeout == 30000


def test_station_coercions():
    station = Station.model_validate({
        "id": "s1",
        "name": " Radio ",
        "bitrate": "not-a-number",
        "language": "",
        "region": None,
        "tags": [" a ", "", "b"],
        "ad_type": "VIDEO",
    })
    assert station.name == "Radio"
    assert station.bitrate == 128
    assert station.language == "en"
    assert station.region == "Global"
    assert station.tags == ["a", "b"]
    assert station.ad_type == models.AdType.VIDEO
    assert Station.model_validate({"ad_type": "banner"}).ad_type == models.AdType.NO


def test_export_profile_defaults():
    profile = ExportProfile.model_validate({
        "name": "Test",
        "genre_ids": ["jazz", "Jazz", " "],
        "player_id": "  ",
        "auto_export": {"interval": "hourly", "time": ""},
    })
    assert profile.id.startswith("ep-")
    assert profile.genre_ids == ["jazz"]
    assert profile.player_id is None
    assert profile.auto_export.interval == "daily"
    assert profile.auto_export.time == "09:00"


def test_normalize_station_sub_genres_uses_genre_spelling():
    genre = Genre(id="jazz", name="Jazz", sub_genres=["Smooth Jazz", "Bebop"])
    assert normalize_station_sub_genres(["smooth jazz", "SMOOTH JAZZ", "Swing", "bebop"], genre) == [
        "Smooth Jazz",
        "Bebop",
    ]
    assert normalize_station_sub_genres(["Bebop"], None) == []


def test_derive_default_network_code():
    same = [PlayerApp(id="a", network_code="111"), PlayerApp(id="b", network_code="111"), PlayerApp(id="c")]
    assert derive_default_network_code(same) == "111"
    mixed = [PlayerApp(id="a", network_code="111"), PlayerApp(id="b", network_code="222")]
    assert derive_default_network_code(mixed) == ""
    assert derive_default_network_code([]) == ""


def test_default_catalog_network_code(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"player_apps": [{"id": "a", "network_code": "999"}]}))
    assert default_catalog_network_code(str(path)) == "999"
    assert load_default_catalog(str(tmp_path / "missing.json")) == {}


def test_bundled_catalog_has_single_network_code():
    assert default_catalog_network_code() == "1234567"


def test_snapshot_prunes_station_sub_genres():
    snapshot = CatalogSnapshot.build(
        genres=[{"id": "rock", "name": "Rock", "sub_genres": ["Classic Rock"]}],
        stations=[{"id": "s1", "name": "One", "genre_id": "rock", "sub_genres": ["classic rock", "Grunge"]}],
        default_network_code="",
    )
    assert snapshot.stations["s1"].sub_genres == ["Classic Rock"]


def test_snapshot_mappings_are_read_only():
    snapshot = CatalogSnapshot.build(genres=[{"id": "rock", "name": "Rock"}], default_network_code="")
    with pytest.raises(TypeError):
        snapshot.genres["pop"] = Genre(id="pop", name="Pop")


def test_snapshot_default_network_code_explicit():
    snapshot = CatalogSnapshot.build(player_apps=[{"id": "a", "network_code": "555"}], default_network_code="777")
    assert snapshot.default_network_code == "777"


@pytest.mark.asyncio
async def test_load_catalog_snapshot(db_session: AsyncSession, chillout_catalog):
    snapshot = await load_catalog_snapshot(db_session, default_network_code="")

    assert set(snapshot.stations) == {"groove-salad", "drone-zone"}
    assert snapshot.genres["chillout"].sub_genres == ["Downtempo", "Ambient"]
    player = snapshot.player_apps["player-chillout"]
    assert player.platforms == ["iOS", "Android", "Home Assistant"]
    assert player.placements.preroll == "/1234567/radio/audio_preroll"
    assert snapshot.stations["groove-salad"].ad_type == models.AdType.AUDIO
    assert snapshot.export_profiles["ep-chillout"].player_id == "player-chillout"


@pytest.mark.asyncio
async def test_update_genre_prunes_stations_and_profiles(db_session: AsyncSession, chillout_catalog):
    await update_genre(db_session, "chillout", "Chillout", ["Ambient", "Lounge"])
    await db_session.commit()

    groove = await db_session.get(models.Station, "groove-salad")
    drone = await db_session.get(models.Station, "drone-zone")
    profile = await db_session.get(models.ExportProfile, "ep-chillout")
    assert groove.sub_genres == []
    assert drone.sub_genres == ["Ambient"]
    assert profile.sub_genres == []


@pytest.mark.asyncio
async def test_update_genre_missing(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await update_genre(db_session, "nope", "Nope", [])


@pytest.mark.asyncio
async def test_delete_genre_detaches_stations(db_session: AsyncSession, chillout_catalog):
    await delete_genre(db_session, "chillout")
    await db_session.commit()

    groove = await db_session.get(models.Station, "groove-salad")
    profile = await db_session.get(models.ExportProfile, "ep-chillout")
    assert groove.genre_id == ""
    assert groove.sub_genres == []
    assert profile.genre_ids == []
    assert profile.sub_genres == []
    assert await db_session.get(models.Genre, "chillout") is None


@pytest.mark.asyncio
async def test_delete_station_removes_profile_reference(db_session: AsyncSession, chillout_catalog):
    await assign_player(db_session, "ep-chillout", "player-chillout")
    profile = await db_session.get(models.ExportProfile, "ep-chillout")
    profile.station_ids = ["drone-zone", "groove-salad"]
    await db_session.commit()

    await delete_station(db_session, "drone-zone")
    await db_session.commit()

    profile = await db_session.get(models.ExportProfile, "ep-chillout")
    assert profile.station_ids == ["groove-salad"]


@pytest.mark.asyncio
async def test_delete_player_app_clears_profiles(db_session: AsyncSession, chillout_catalog):
    await delete_player_app(db_session, "player-chillout")
    await db_session.commit()

    profile = await db_session.get(models.ExportProfile, "ep-chillout")
    assert profile.player_id is None


@pytest.mark.asyncio
async def test_assign_player_is_exclusive(db_session: AsyncSession, chillout_catalog):
    other = models.ExportProfile(id="ep-other", name="Other", genre_ids=[], station_ids=[], sub_genres=[])
    db_session.add(other)
    await db_session.commit()

    await assign_player(db_session, "ep-other", "player-chillout")
    await db_session.commit()

    first = await db_session.get(models.ExportProfile, "ep-chillout")
    second = await db_session.get(models.ExportProfile, "ep-other")
    assert first.player_id is None
    assert second.player_id == "player-chillout"


@pytest.mark.asyncio
async def test_assign_unknown_player(db_session: AsyncSession, chillout_catalog):
    with pytest.raises(NotFoundError):
        await assign_player(db_session, "ep-chillout", "missing")
