from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from webradio import models
from webradio.config import settings
from webradio.db.base import Base
from webradio.db.session import get_db
from webradio.main import create_app

# Use in-memory SQLite for testing (no PostgreSQL needed)
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# SQLite compatibility: compile PostgreSQL types to SQLite equivalents
from sqlalchemy.dialects.postgresql import JSONB, ENUM as PG_ENUM  # noqa: E402


def _register_sqlite_compilers():
    """Register SQLite-compatible compilers for PG types."""
    from sqlalchemy.ext.compiler import compiles

    @compiles(JSONB, "sqlite")
    def compile_jsonb(type_, compiler, **kw):
        return "TEXT"

    @compiles(PG_ENUM, "sqlite")
    def compile_enum(type_, compiler, **kw):
        return "VARCHAR(50)"


_register_sqlite_compilers()


@pytest.fixture
def export_dir(tmp_path, monkeypatch) -> str:
    path = tmp_path / "exports"
    path.mkdir()
    monkeypatch.setattr(settings, "EXPORT_OUTPUT_DIR", str(path))
    return str(path)


@pytest_asyncio.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, export_dir: str) -> AsyncIterator[AsyncClient]:
    app = create_app()

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def chillout_catalog(db_session: AsyncSession) -> dict:
    """One genre, two stations, a three-platform player app and a profile using it."""
    genre = models.Genre(id="chillout", name="Chillout", sub_genres=["Downtempo", "Ambient"])
    stations = [
        models.Station(
            id="groove-salad",
            name="SomaFM Groove Salad",
            stream_url="https://ice1.somafm.com/groovesalad-256-mp3",
            genre_id="chillout",
            sub_genres=["Downtempo"],
            tags=["chillout vibes", "ambient"],
            ad_type=models.AdType.AUDIO,
        ),
        models.Station(
            id="drone-zone",
            name="Drone Zone",
            stream_url="https://ice1.somafm.com/dronezone-256-mp3",
            genre_id="chillout",
            sub_genres=["Ambient"],
            tags=[],
            ad_type=models.AdType.NO,
            is_active=False,
        ),
    ]
    player = models.PlayerApp(
        id="player-chillout",
        name="Chillout Essentials",
        platforms=["iOS", "Android", "Home Assistant"],
        network_code="1234567",
        video_preroll_default_size="854x480",
        placements={
            "preroll": "/1234567/radio/audio_preroll",
            "midroll": "/1234567/radio/video_preroll",
            "rewarded": "",
        },
    )
    profile = models.ExportProfile(
        id="ep-chillout",
        name="Chillout Essentials Multi",
        genre_ids=["chillout"],
        station_ids=[],
        sub_genres=["Downtempo"],
        player_id="player-chillout",
    )
    db_session.add_all([genre, *stations, player, profile])
    await db_session.commit()
    return {"genre": genre, "stations": stations, "player": player, "profile": profile}
