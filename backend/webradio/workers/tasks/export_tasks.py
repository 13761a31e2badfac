import asyncio
import logging
from datetime import datetime, timezone

from webradio.schemas.catalog import AutoExport
from webradio.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run a coroutine to completion from a sync celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def is_export_due(schedule: AutoExport, now: datetime) -> bool:
    """True when ``now`` falls on the minute the schedule names.

    Weekly exports run on Mondays, monthly exports on the first of the month.
    """
    if not schedule.enabled:
        return False
    try:
        hour, minute = (int(part) for part in schedule.time.split(":", 1))
    except ValueError:
        logger.warning("Ignoring malformed auto-export time %r", schedule.time)
        return False
    if (now.hour, now.minute) != (hour, minute):
        return False
    if schedule.interval == "weekly":
        return now.weekday() == 0
    if schedule.interval == "monthly":
        return now.day == 1
    return True


@celery_app.task(name="task_run_export", bind=True)
def task_run_export(self, profile_id: str):
    """Generate (and upload) one profile's export files."""
    from webradio.db.session import session_scope
    from webradio.services.export_service import run_export

    async def _run():
        async with session_scope() as db:
            summary = await run_export(db, profile_id)
        return summary.model_dump()

    return _run_async(_run())


@celery_app.task(name="task_run_scheduled_exports", bind=True)
def task_run_scheduled_exports(self):
    """Queue an export for every profile whose auto-export schedule is due."""
    from webradio.db.session import session_scope
    from webradio.services.catalog_service import load_catalog_snapshot

    async def _due_profiles() -> list[str]:
        async with session_scope() as db:
            snapshot = await load_catalog_snapshot(db)
        now = datetime.now(timezone.utc)
        return [
            profile.id
            for profile in snapshot.export_profiles.values()
            if is_export_due(profile.auto_export, now)
        ]

    due = _run_async(_due_profiles())
    for profile_id in due:
        task_run_export.delay(profile_id)
    if due:
        logger.info("Queued %d scheduled exports", len(due))
    return due
