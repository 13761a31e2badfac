import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from webradio.config import settings
from webradio.core.middleware import setup_middleware

logger = logging.getLogger(__name__)

_tables_created = False


async def ensure_tables():
    """Create the catalog tables on first use."""
    global _tables_created
    if _tables_created:
        return
    try:
        from webradio.db.base import Base
        from webradio.db.engine import engine
        import webradio.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        _tables_created = True
    except Exception as e:
        logger.warning("Table creation skipped: %s", e)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await ensure_tables()
    os.makedirs(settings.EXPORT_OUTPUT_DIR, exist_ok=True)
    logger.info("Export files will be written to %s", settings.EXPORT_OUTPUT_DIR)
    yield


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="WebRadio Export API",
        version="0.1.0",
        description="Station catalog exports for web radio player apps",
        debug=settings.APP_DEBUG,
        lifespan=lifespan,
    )

    setup_middleware(app)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    from webradio.api.v1 import router as api_v1_router
    app.include_router(api_v1_router, prefix="/api/v1")

    return app


app = create_app()
