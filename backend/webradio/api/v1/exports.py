import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from webradio.db.session import get_db
from webradio.schemas.export import ExportSummary
from webradio.services.export_service import build_download, run_export

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export-profiles", tags=["exports"])


@router.post("/{profile_id}/export", response_model=ExportSummary)
async def export(profile_id: str, db: AsyncSession = Depends(get_db)):
    """Generate the profile's per-platform documents and upload them when the player app allows it."""
    return await run_export(db, profile_id)


@router.get("/{profile_id}/download")
async def download(profile_id: str, db: AsyncSession = Depends(get_db)):
    slug, archive = await build_download(db, profile_id)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{slug}.zip"'},
    )
