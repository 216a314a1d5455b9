"""Celery tasks for governance sync."""

import asyncio
import logging
from typing import Any, Coroutine, Optional

from govtrack.db.session import get_async_session
from govtrack.services.ingestion.service import IngestionService
from govtrack.services.sync.runtime import proposal_sync_scheduler, voter_power_scheduler
from govtrack.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = None
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@celery_app.task(name="sync_all_proposals")
def sync_all_proposals() -> Optional[dict]:
    """Scheduled pass over every non-terminal proposal.

    Returns:
        SyncAllResult as a dict, or None when the tick was skipped
    """
    logger.info("Starting scheduled proposal sync")
    result = _run(proposal_sync_scheduler.tick())
    return result.model_dump() if result is not None else None


@celery_app.task(name="sync_voter_power")
def sync_voter_power() -> Optional[dict]:
    """Scheduled refresh of stored DRep and pool voting power."""
    logger.info("Starting scheduled voter power sync")
    result = _run(voter_power_scheduler.tick())
    return result.model_dump() if result is not None else None


async def _ingest_proposal(proposal_id: str) -> dict:
    async with get_async_session() as session:
        service = IngestionService(session)
        try:
            result = await service.ingest_proposal(proposal_id)
        finally:
            await service.close()
    return result.model_dump()


@celery_app.task(name="ingest_proposal")
def ingest_proposal(proposal_id: str) -> dict:
    """Ingest one proposal on demand.

    Args:
        proposal_id: Governance action id or ``<tx_hash>#<index>``

    Returns:
        ProposalIngestionResult as a dict
    """
    logger.info(f"Starting ingestion task for proposal {proposal_id}")
    result = _run(_ingest_proposal(proposal_id))
    logger.info(f"Completed ingestion for proposal {proposal_id}")
    return result
