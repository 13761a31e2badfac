"""Start the Celery worker (and beat scheduler) for profile exports."""
import logging
import sys

from webradio.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

if not settings.redis_enabled:
    print("ERROR: REDIS_URL not set. Cannot start Celery worker without Redis.")
    sys.exit(1)

from webradio.workers.celery_app import celery_app  # noqa: E402

if __name__ == "__main__":
    celery_app.worker_main([
        "worker",
        "--beat",
        f"--loglevel={settings.LOG_LEVEL.lower()}",
        "--queues=exports",
        "--concurrency=1",
    ])
