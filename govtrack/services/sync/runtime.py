"""Process-wide wiring: one SyncState, the default schedulers and the read-path trigger."""

import logging
from typing import Optional

from govtrack.core.constants import PROPOSAL_SYNC_JOB, VOTER_POWER_SYNC_JOB
from govtrack.db.session import get_async_session
from govtrack.schemas.sync import SyncAllResult, VoterPowerSyncResult
from govtrack.services.ingestion.service import IngestionService
from govtrack.services.sync.on_read import OnReadSyncService
from govtrack.services.sync.scheduler import BatchSyncScheduler
from govtrack.services.sync.state import SyncState
from govtrack.services.sync.trigger import ReadPathSyncTrigger

logger = logging.getLogger(__name__)

sync_state = SyncState()

_read_path_trigger: Optional[ReadPathSyncTrigger] = None


async def run_proposal_sync() -> SyncAllResult:
    """Batch pass over proposals, then the yearly treasury withdrawal total."""
    async with get_async_session() as session:
        service = IngestionService(session)
        try:
            result = await service.sync_all_proposals()
            try:
                ncl = await service.update_net_change_limit()
                logger.info(
                    f"NCL {ncl.year} at epoch {ncl.epoch}: {ncl.current_value} lovelace "
                    f"from {ncl.proposals_included} proposals"
                )
            except Exception as e:
                await session.rollback()
                logger.error(f"NCL update failed: {e}")
            return result
        finally:
            await service.close()


async def run_voter_power_sync() -> VoterPowerSyncResult:
    async with get_async_session() as session:
        service = IngestionService(session)
        try:
            return await service.refresh_voter_power()
        finally:
            await service.close()


async def run_overview_sync() -> int:
    async with get_async_session() as session:
        service = IngestionService(session)
        try:
            return await OnReadSyncService(service).overview_sync()
        finally:
            await service.close()


async def run_proposal_detail_sync(identifier: str) -> bool:
    async with get_async_session() as session:
        service = IngestionService(session)
        try:
            return await OnReadSyncService(service).proposal_detail_sync(identifier)
        finally:
            await service.close()


proposal_sync_scheduler = BatchSyncScheduler(sync_state, run_proposal_sync, job_name=PROPOSAL_SYNC_JOB)
voter_power_scheduler = BatchSyncScheduler(sync_state, run_voter_power_sync, job_name=VOTER_POWER_SYNC_JOB)


def get_read_path_trigger() -> ReadPathSyncTrigger:
    """Trigger shared by every read handler in this process."""
    global _read_path_trigger
    if _read_path_trigger is None:
        _read_path_trigger = ReadPathSyncTrigger(sync_state, run_overview_sync, run_proposal_detail_sync)
    return _read_path_trigger
