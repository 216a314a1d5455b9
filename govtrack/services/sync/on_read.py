"""Sync work performed in the background when proposals are read."""

import logging
from typing import Optional

from govtrack.core.errors import NotFoundError
from govtrack.db.models.proposal import Proposal, ProposalStatus
from govtrack.schemas.koios import KoiosVotingSummary
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.ingestion.service import IngestionService, split_tx_reference
from govtrack.services.ingestion.votes import is_ingestible

logger = logging.getLogger(__name__)

# (summary field, stored proposal column) pairs compared by the detail sync
SUMMARY_POWER_FIELDS = (
    ("drep_active_yes_vote_power", "drep_active_yes_vote_power"),
    ("drep_active_no_vote_power", "drep_active_no_vote_power"),
    ("drep_active_abstain_vote_power", "drep_active_abstain_vote_power"),
    ("pool_active_yes_vote_power", "spo_active_yes_vote_power"),
    ("pool_active_no_vote_power", "spo_active_no_vote_power"),
    ("pool_active_abstain_vote_power", "spo_active_abstain_vote_power"),
)


def power_differs(summary: Optional[KoiosVotingSummary], proposal: Proposal) -> bool:
    if summary is None:
        return False
    for summary_field, column in SUMMARY_POWER_FIELDS:
        if getattr(summary, summary_field) != (getattr(proposal, column) or 0):
            return True
    return False


class OnReadSyncService:
    """Cheap convergence checks for the overview list and the proposal detail view."""

    def __init__(self, service: IngestionService):
        self.service = service
        self.store = service.store
        self.client = service.client

    async def overview_sync(self) -> int:
        """Ingest proposals the index has and the store does not.

        Returns:
            Number of proposals ingested
        """
        externals = await self.client.list_proposals()
        local_count = await self.store.count_proposals()
        if len(externals) <= local_count:
            logger.debug(f"Overview in sync ({local_count} proposals)")
            return 0

        known = await self.store.proposal_statuses()
        missing = [p for p in externals if p.proposal_id not in known]
        missing.sort(key=lambda p: p.proposed_epoch if p.proposed_epoch is not None else -1)
        logger.info(f"Overview sync: {len(missing)} new proposals")

        context = SyncContext()
        ingested = 0
        for external in missing:
            try:
                await self.service.ingest_external_proposal(external, context, use_shared_cache=False)
                ingested += 1
            except Exception as e:
                await self.service.db.rollback()
                logger.error(f"Overview sync could not ingest {external.proposal_id}: {e}")
        return ingested

    async def resolve_local(self, identifier: str) -> Optional[Proposal]:
        """Find a stored proposal by governance action id, row id or transaction reference."""
        if identifier.isdigit():
            return await self.store.get_proposal_by_row_id(int(identifier))
        tx_reference = split_tx_reference(identifier)
        if tx_reference:
            return await self.store.get_proposal_by_tx(*tx_reference)
        proposal = await self.store.get_proposal(identifier)
        if proposal is None:
            proposal = await self.store.get_proposal_by_tx(identifier)
        return proposal

    async def proposal_detail_sync(self, identifier: str) -> bool:
        """Re-ingest one proposal when the index disagrees with the store.

        Returns:
            True when anything was (re)ingested
        """
        context = SyncContext()
        proposal = await self.resolve_local(identifier)

        if proposal is None:
            if identifier.isdigit():
                logger.info(f"No stored proposal with id {identifier}")
                return False
            try:
                await self.service.ingest_proposal(identifier, context)
            except NotFoundError as e:
                logger.warning(str(e))
                return False
            return True

        if proposal.status != ProposalStatus.ACTIVE:
            logger.debug(f"Proposal {proposal.proposal_id} is {proposal.status.value}; no detail sync")
            return False

        votes = await self.client.list_votes(proposal_id=proposal.proposal_id)
        stored_votes = await self.store.count_votes(proposal.proposal_id)
        try:
            summary = await self.client.get_proposal_voting_summary(proposal.proposal_id)
        except Exception as e:
            logger.warning(f"Voting summary unavailable for {proposal.proposal_id}: {e}")
            summary = None

        ingestible = sum(1 for vote in votes if is_ingestible(vote))
        if ingestible == stored_votes and not power_differs(summary, proposal):
            logger.debug(f"Proposal {proposal.proposal_id} is up to date")
            return False

        logger.info(
            f"Refreshing {proposal.proposal_id}: {ingestible} votes in index, {stored_votes} stored"
        )
        await self.service.vote_ingestor.ingest_votes(
            proposal.proposal_id, context, use_shared_cache=False, votes=votes
        )
        await self.service.update_power(proposal, context)
        return True
