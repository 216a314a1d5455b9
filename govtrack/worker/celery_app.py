"""Celery app configuration."""

from celery import Celery

from govtrack.core.config import settings

celery_app = Celery(
    "govtrack.worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "govtrack.worker.tasks.sync_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_hijack_root_logger=False,
    # Overlap guard state is per process; keep one worker process
    worker_concurrency=1,
    worker_prefetch_multiplier=1,
)

if settings.ENABLE_CRON_JOBS:
    celery_app.conf.beat_schedule = {
        "sync-all-proposals": {
            "task": "sync_all_proposals",
            "schedule": float(settings.PROPOSAL_SYNC_INTERVAL_SECONDS),
            "options": {"expires": float(settings.PROPOSAL_SYNC_INTERVAL_SECONDS)},
        },
        "sync-voter-power": {
            "task": "sync_voter_power",
            "schedule": float(settings.VOTER_POWER_SYNC_INTERVAL_SECONDS),
            "options": {"expires": float(settings.VOTER_POWER_SYNC_INTERVAL_SECONDS)},
        },
    }
