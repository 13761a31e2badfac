"""Import the bundled default catalog into an empty database."""
import asyncio
import logging
import sys

from sqlalchemy import func, select

from webradio import models
from webradio.config import settings
from webradio.db.session import session_scope
from webradio.main import configure_logging, ensure_tables
from webradio.services.catalog_service import CatalogSnapshot, load_default_catalog

logger = logging.getLogger("seed")


async def seed(path: str | None = None) -> int:
    await ensure_tables()
    catalog = load_default_catalog(path)
    snapshot = CatalogSnapshot.build(
        genres=catalog.get("genres", []),
        stations=catalog.get("stations", []),
        player_apps=catalog.get("player_apps", []),
        export_profiles=catalog.get("export_profiles", []),
    )

    async with session_scope() as db:
        existing = await db.scalar(select(func.count()).select_from(models.Genre))
        if existing:
            logger.info("Catalog already has %d genres, skipping seed", existing)
            return 0

        for genre in snapshot.genres.values():
            db.add(models.Genre(**genre.model_dump()))
        for station in snapshot.stations.values():
            db.add(models.Station(**station.model_dump()))
        for app in snapshot.player_apps.values():
            db.add(models.PlayerApp(**app.model_dump()))
        for profile in snapshot.export_profiles.values():
            db.add(models.ExportProfile(**profile.model_dump()))

    total = (
        len(snapshot.genres) + len(snapshot.stations)
        + len(snapshot.player_apps) + len(snapshot.export_profiles)
    )
    logger.info("Seeded %d catalog records from %s", total, path or settings.DEFAULT_CATALOG_PATH)
    return total


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed(sys.argv[1] if len(sys.argv) > 1 else None))
