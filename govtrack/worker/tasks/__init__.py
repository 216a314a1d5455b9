"""Tasks package."""

# Import all tasks so they're registered with Celery
from govtrack.worker.tasks import sync_tasks

__all__ = ["sync_tasks"]
