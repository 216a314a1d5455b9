"""Periodic batch sync with an overlap guard."""

import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from govtrack.core.config import settings
from govtrack.core.constants import PROPOSAL_SYNC_JOB
from govtrack.services.sync.state import SyncState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchSyncScheduler(Generic[T]):
    """Runs one sync job per tick, skipping ticks that overlap a running pass."""

    def __init__(
        self,
        state: SyncState,
        run_sync: Callable[[], Awaitable[T]],
        enabled: Optional[bool] = None,
        job_name: str = PROPOSAL_SYNC_JOB,
    ):
        self.state = state
        self.run_sync = run_sync
        self.enabled = settings.ENABLE_CRON_JOBS if enabled is None else enabled
        self.job_name = job_name

    async def tick(self) -> Optional[T]:
        """Run the job once.

        Returns:
            The job's result, or None when the tick was skipped or the job failed
        """
        if not self.enabled:
            logger.info(f"Scheduled jobs disabled; skipping {self.job_name}")
            return None
        if not self.state.try_start_job(self.job_name):
            logger.warning(f"{self.job_name} is still running; skipping this tick")
            return None

        started = self.state.now()
        try:
            result = await self.run_sync()
        except Exception as e:
            logger.error(f"{self.job_name} failed: {e}", exc_info=True)
            return None
        finally:
            self.state.finish_job(self.job_name)

        logger.info(f"{self.job_name} finished in {self.state.now() - started:.1f}s")
        return result
