"""Fire-and-forget syncs launched from the read path."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from govtrack.core.config import settings
from govtrack.core.constants import OVERVIEW_SCOPE, PROPOSAL_SCOPE_PREFIX
from govtrack.services.sync.state import SyncState

logger = logging.getLogger(__name__)


class ReadPathSyncTrigger:
    """Launches background syncs when data is read, at most one per scope and cooldown.

    Must be called from inside a running event loop. Triggers return at once;
    the sync itself runs as a task and its failures are only logged.
    """

    def __init__(
        self,
        state: SyncState,
        overview_sync: Callable[[], Awaitable[Any]],
        detail_sync: Callable[[str], Awaitable[Any]],
        overview_cooldown: Optional[float] = None,
        detail_cooldown: Optional[float] = None,
    ):
        self.state = state
        self.overview_sync = overview_sync
        self.detail_sync = detail_sync
        self.overview_cooldown = (
            settings.OVERVIEW_SYNC_COOLDOWN_SECONDS if overview_cooldown is None else overview_cooldown
        )
        self.detail_cooldown = (
            settings.PROPOSAL_SYNC_COOLDOWN_SECONDS if detail_cooldown is None else detail_cooldown
        )
        self._tasks: Set[asyncio.Task] = set()

    def trigger_overview_sync(self) -> bool:
        """Start an overview sync unless one is running or ran recently. Returns whether it started."""
        return self._launch(OVERVIEW_SCOPE, self.overview_cooldown, self.overview_sync)

    def trigger_proposal_detail_sync(self, identifier: str) -> bool:
        """Start a detail sync for one proposal. Returns whether it started."""
        scope = f"{PROPOSAL_SCOPE_PREFIX}{identifier}"
        return self._launch(scope, self.detail_cooldown, lambda: self.detail_sync(identifier))

    def _launch(self, scope: str, cooldown: float, sync: Callable[[], Awaitable[Any]]) -> bool:
        if self.state.is_in_flight(scope):
            logger.debug(f"Sync for {scope} already in flight")
            return False
        if self.state.cooling_down(scope, cooldown):
            logger.debug(f"Sync for {scope} is cooling down")
            return False

        self.state.mark_started(scope)
        task = asyncio.create_task(self._run(scope, sync), name=f"sync:{scope}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Started background sync for {scope}")
        return True

    async def _run(self, scope: str, sync: Callable[[], Awaitable[Any]]) -> None:
        try:
            await sync()
        except Exception as e:
            logger.error(f"Background sync for {scope} failed: {e}", exc_info=True)
        finally:
            self.state.mark_finished(scope)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every background sync launched so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
