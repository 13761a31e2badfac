from webradio.config import settings


class _NoOpCelery:
    """Stand-in when Redis is not configured; tasks stay plain callables."""

    def task(self, *args, **kwargs):
        def decorator(func):
            func.delay = lambda *a, **k: None
            func.apply_async = lambda *a, **k: None
            return func
        return decorator


if settings.redis_enabled:
    from celery import Celery
    from celery.schedules import crontab

    celery_app = Celery(
        "webradio",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["webradio.workers.tasks.export_tasks"],
    )

    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_routes={
            "task_run_export": {"queue": "exports"},
            "task_run_scheduled_exports": {"queue": "exports"},
        },
        # Profiles are checked at the top of every minute against their auto-export time
        beat_schedule={
            "run-scheduled-exports": {
                "task": "task_run_scheduled_exports",
                "schedule": crontab(),
            },
        },
        worker_prefetch_multiplier=1,
        task_acks_late=True,
    )
else:
    celery_app = _NoOpCelery()
