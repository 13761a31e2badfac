import logging

from sqlalchemy.ext.asyncio import AsyncSession

from webradio.config import settings
from webradio.core.exceptions import EmptyExportError, NotFoundError, TransferError
from webradio.core.text import slugify
from webradio.schemas.catalog import ExportProfile, PlayerApp
from webradio.schemas.export import ExportedFileSummary, ExportSummary
from webradio.services import transfer_service
from webradio.services.archive_service import collect_profile_files, create_zip_archive
from webradio.services.catalog_service import CatalogSnapshot, load_catalog_snapshot
from webradio.services.payload_builder import build_export_context, platforms_for_player, write_export_files

logger = logging.getLogger(__name__)


def transfer_settings_from_player(player: PlayerApp | None) -> transfer_service.TransferSettings | None:
    """Upload settings for a player app, or None when uploads are off or incomplete."""
    if player is None or not player.ftp_enabled:
        return None
    if not player.ftp_server or not player.ftp_username or not player.ftp_password:
        return None
    return transfer_service.normalize_transfer_settings(
        player.ftp_server,
        player.ftp_username,
        player.ftp_password,
        protocol=player.ftp_protocol,
        timeout_ms=player.ftp_timeout,
    )


def _get_profile(snapshot: CatalogSnapshot, profile_id: str) -> ExportProfile:
    profile = snapshot.export_profiles.get(profile_id)
    if not profile:
        raise NotFoundError("Export profile not found")
    return profile


async def export_profile(snapshot: CatalogSnapshot, profile_id: str, output_dir: str | None = None) -> ExportSummary:
    """Write every platform document for a profile and deliver them if the player app has uploads on.

    Upload failures are logged and reported per file; they never fail the export.
    """
    profile = _get_profile(snapshot, profile_id)
    output_dir = output_dir or settings.EXPORT_OUTPUT_DIR

    context = build_export_context(profile, snapshot)
    if context.station_count == 0:
        raise EmptyExportError()

    files = write_export_files(profile, context, output_dir, snapshot.default_network_code)

    uploaded: set[str] = set()
    try:
        transfer = transfer_settings_from_player(context.player)
        if transfer is not None:
            remote_subdirectory = slugify(profile.name, fallback=profile.id)
            uploaded = set(await transfer_service.upload_files(transfer, files, remote_subdirectory))
            logger.info("Uploaded %d export files for profile %s", len(uploaded), profile.id)
    except TransferError as e:
        uploaded = set(e.uploaded)
        logger.error(
            "Failed to upload export files for profile %s (%d delivered before the failure)",
            profile.id, len(uploaded), exc_info=True,
        )

    for file in files:
        file.uploaded = file.file_name in uploaded

    summary = ExportSummary(
        profile_id=profile.id,
        profile_name=profile.name,
        station_count=context.station_count,
        output_directory=output_dir,
        files=[
            ExportedFileSummary(
                platform=file.platform,
                file_name=file.file_name,
                output_path=file.output_path,
                station_count=context.station_count,
                ftp_uploaded=file.uploaded,
            )
            for file in files
        ],
    )
    logger.info(
        "Export profile %s generated: %d stations, %d files",
        profile.id, summary.station_count, len(summary.files),
    )
    return summary


async def run_export(db: AsyncSession, profile_id: str, output_dir: str | None = None) -> ExportSummary:
    snapshot = await load_catalog_snapshot(db)
    return await export_profile(snapshot, profile_id, output_dir)


async def build_download(db: AsyncSession, profile_id: str, output_dir: str | None = None) -> tuple[str, bytes]:
    """ZIP every export file previously written for the profile. Returns (slug, archive bytes)."""
    snapshot = await load_catalog_snapshot(db)
    profile = _get_profile(snapshot, profile_id)
    output_dir = output_dir or settings.EXPORT_OUTPUT_DIR

    slug = slugify(profile.name, fallback=profile.id)
    entries = collect_profile_files(output_dir, slug, platforms_for_player(snapshot.player_for(profile)))
    if not entries:
        raise NotFoundError("No export files found for this profile.")

    archive = create_zip_archive(entries)
    logger.info("Packaged %d export files for profile %s", len(entries), profile.id)
    return slug, archive
