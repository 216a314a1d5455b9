"""Vote ingestion for one proposal at a time."""

import logging
from typing import List, Optional

from govtrack.core.utils import block_time_to_datetime
from govtrack.db.models.vote import VoteChoice, VoterType
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import KoiosVote
from govtrack.schemas.sync import VoteIngestionStats
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.ingestion.voters import VOTER_ROLES, VoterRegistry, map_voter_role
from govtrack.services.koios.client import KoiosClient

logger = logging.getLogger(__name__)

VOTE_CHOICES = {
    "Yes": VoteChoice.YES,
    "No": VoteChoice.NO,
    "Abstain": VoteChoice.ABSTAIN,
}


def is_ingestible(vote: KoiosVote) -> bool:
    """Whether the vote has a known voter role and choice."""
    return vote.voter_role in VOTER_ROLES and vote.vote in VOTE_CHOICES


class VoteIngestor:
    """Upserts the votes cast on a proposal, registering unseen voters on the way."""

    def __init__(self, store: GovernanceStore, client: KoiosClient, registry: VoterRegistry):
        self.store = store
        self.client = client
        self.registry = registry

    async def fetch_votes(
        self,
        proposal_id: str,
        context: SyncContext,
        min_epoch: Optional[int] = None,
        use_shared_cache: bool = True,
    ) -> List[KoiosVote]:
        if use_shared_cache:
            catalog = await context.get_all_votes(self.client, min_epoch=min_epoch)
            return [vote for vote in catalog if vote.proposal_id == proposal_id]
        return await self.client.list_votes(proposal_id=proposal_id)

    async def ingest_votes(
        self,
        proposal_id: str,
        context: SyncContext,
        min_epoch: Optional[int] = None,
        use_shared_cache: bool = True,
        votes: Optional[List[KoiosVote]] = None,
    ) -> VoteIngestionStats:
        """Ingest every vote on a proposal.

        Args:
            proposal_id: Governance action id
            context: Per-run context holding the shared vote catalog
            min_epoch: Lower epoch bound when the shared catalog is loaded
            use_shared_cache: Filter the run-wide catalog instead of asking the index for this proposal only
            votes: Votes already fetched by the caller

        Returns:
            Counts of created/updated votes and voters
        """
        if votes is None:
            votes = await self.fetch_votes(proposal_id, context, min_epoch, use_shared_cache)

        stats = VoteIngestionStats()
        for vote in votes:
            choice = VOTE_CHOICES.get(vote.vote)
            try:
                voter_class = map_voter_role(vote.voter_role)
            except ValueError as e:
                logger.warning(f"Skipping vote {vote.vote_tx_hash}: {e}")
                continue
            if choice is None:
                logger.warning(f"Skipping vote {vote.vote_tx_hash}: unknown choice {vote.vote}")
                continue

            member_name = vote.author_name() if voter_class == VoterType.CC else None
            ensured = await self.registry.ensure_exists(voter_class, vote.voter_id, context, member_name=member_name)
            if ensured.created:
                stats.voters_created.bump(voter_class.value)
            elif ensured.updated:
                stats.voters_updated.bump(voter_class.value)

            _, created = await self.store.upsert_vote(
                vote.vote_tx_hash,
                proposal_id,
                voter_class,
                vote.voter_id,
                {
                    "vote": choice,
                    "voting_power": await self.registry.voting_power(voter_class, vote.voter_id),
                    "anchor_url": vote.meta_url,
                    "anchor_hash": vote.meta_hash,
                    "epoch_no": vote.epoch_no,
                    "voted_at": block_time_to_datetime(vote.block_time),
                },
            )
            stats.votes_ingested += 1
            if created:
                stats.votes_created += 1
            else:
                stats.votes_updated += 1

        logger.info(
            f"Ingested {stats.votes_ingested} votes for {proposal_id} "
            f"({stats.votes_created} new, {stats.votes_updated} updated)"
        )
        return stats
