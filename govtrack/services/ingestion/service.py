"""Ingestion entry points shared by the scheduler, the read-path trigger, workers and scripts."""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from govtrack.core.errors import NotFoundError, PartialBatchFailure, UnsupportedOperationError
from govtrack.db.models.proposal import Proposal, ProposalStatus
from govtrack.db.models.vote import VoterType
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import KoiosProposal, KoiosVote
from govtrack.schemas.sync import (
    EnsureVoterResult,
    NetChangeLimitResult,
    ProposalIngestionResult,
    SyncAllResult,
    SyncError,
    VoterPowerSyncResult,
)
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.ingestion.metadata import MetadataFetcher
from govtrack.services.ingestion.ncl import NetChangeLimitService
from govtrack.services.ingestion.proposals import ProposalReconciler
from govtrack.services.ingestion.voters import VoterRegistry
from govtrack.services.ingestion.votes import VoteIngestor
from govtrack.services.koios.client import KoiosClient
from govtrack.services.voting_power.aggregator import VotingPowerAggregator, VotingPowerResult

logger = logging.getLogger(__name__)


def split_tx_reference(identifier: str) -> Optional[tuple]:
    """Split ``<tx_hash>#<index>`` or ``<tx_hash>:<index>`` into its parts."""
    for separator in ("#", ":"):
        if separator in identifier:
            tx_hash, _, index = identifier.partition(separator)
            if tx_hash and index.isdigit():
                return tx_hash, index
    return None


class IngestionService:
    """Single code path for bringing proposals, votes and voters up to date."""

    def __init__(
        self,
        db_session: AsyncSession,
        client: Optional[KoiosClient] = None,
        metadata_fetcher: Optional[MetadataFetcher] = None,
    ):
        """Initialize the service.

        Args:
            db_session: SQLAlchemy async session, owned by the caller
            client: Koios client (a default one is built from settings)
            metadata_fetcher: Anchor document fetcher
        """
        self.db = db_session
        self.store = GovernanceStore(db_session)
        self.client = client or KoiosClient()
        self.metadata_fetcher = metadata_fetcher or MetadataFetcher()
        self.registry = VoterRegistry(self.store, self.client, self.metadata_fetcher)
        self.reconciler = ProposalReconciler(self.store, self.metadata_fetcher)
        self.vote_ingestor = VoteIngestor(self.store, self.client, self.registry)
        self.aggregator = VotingPowerAggregator(self.store, self.client)
        self.net_change_limit = NetChangeLimitService(self.store, self.client)

    async def close(self) -> None:
        await self.client.close()
        await self.metadata_fetcher.close()

    async def find_external_proposal(self, identifier: str) -> KoiosProposal:
        """Look a proposal up in the index by governance action id or transaction reference.

        Raises:
            NotFoundError: When nothing in the index matches
        """
        tx_reference = split_tx_reference(identifier)
        for external in await self.client.list_proposals():
            if external.proposal_id == identifier:
                return external
            if tx_reference and (external.proposal_tx_hash, str(external.proposal_index)) == tx_reference:
                return external
            if not tx_reference and external.proposal_tx_hash == identifier:
                return external
        raise NotFoundError(f"Proposal {identifier} not found in the ledger index")

    async def update_power(self, proposal: Proposal, context: SyncContext) -> VotingPowerResult:
        result = await self.aggregator.compute_power(proposal, context)
        await self.store.update_proposal(proposal, result.power_fields())
        return result

    async def ingest_external_proposal(
        self,
        external: KoiosProposal,
        context: SyncContext,
        use_shared_cache: bool = False,
        min_epoch: Optional[int] = None,
        votes: Optional[List[KoiosVote]] = None,
    ) -> ProposalIngestionResult:
        """Reconcile a proposal, then its votes, then its voting power."""
        current_epoch = await context.get_current_epoch(self.client)
        proposal, created = await self.reconciler.reconcile(external, current_epoch)
        stats = await self.vote_ingestor.ingest_votes(
            proposal.proposal_id,
            context,
            min_epoch=min_epoch,
            use_shared_cache=use_shared_cache,
            votes=votes,
        )
        await self.update_power(proposal, context)
        return ProposalIngestionResult(
            proposal_id=proposal.proposal_id,
            created=created,
            status=proposal.status.value,
            votes=stats,
        )

    async def ingest_proposal(self, external_id: str, context: Optional[SyncContext] = None) -> ProposalIngestionResult:
        """Ingest one proposal on demand, fetching only its own votes."""
        context = context or SyncContext()
        external = await self.find_external_proposal(external_id)
        return await self.ingest_external_proposal(external, context, use_shared_cache=False)

    async def ingest_vote(self, tx_hash: str) -> None:
        # A bare vote transaction hash cannot be mapped to its proposal through the index
        raise UnsupportedOperationError(
            f"Ingesting vote {tx_hash} by transaction hash is not supported; ingest its proposal instead"
        )

    async def ingest_voter(self, voter_class: VoterType, voter_id: str) -> EnsureVoterResult:
        return await self.registry.ensure_exists(voter_class, voter_id, SyncContext())

    async def sync_all_proposals(self, strict: bool = False) -> SyncAllResult:
        """Bring every non-terminal proposal up to date.

        Proposals that are new or ACTIVE locally are processed oldest first;
        terminal ones are skipped. One failing proposal never stops the pass.

        Args:
            strict: Raise PartialBatchFailure when any proposal failed

        Returns:
            Totals and the per-proposal errors
        """
        context = SyncContext()
        await context.get_current_epoch(self.client)
        externals = await self.client.list_proposals()
        statuses = await self.store.proposal_statuses()

        pending = [
            external for external in externals
            if statuses.get(external.proposal_id, ProposalStatus.ACTIVE) == ProposalStatus.ACTIVE
        ]
        pending.sort(key=lambda p: p.proposed_epoch if p.proposed_epoch is not None else -1)
        submission_epochs = [p.proposed_epoch for p in pending if p.proposed_epoch is not None]
        min_epoch = min(submission_epochs) if submission_epochs else None

        result = SyncAllResult(total=len(pending), skipped=len(externals) - len(pending))
        logger.info(f"Syncing {result.total} proposals ({result.skipped} terminal skipped)")

        for external in pending:
            try:
                await self.ingest_external_proposal(external, context, use_shared_cache=True, min_epoch=min_epoch)
                result.success += 1
            except Exception as e:
                await self.db.rollback()
                logger.error(f"Failed to sync proposal {external.proposal_id}: {e}")
                result.failed += 1
                result.errors.append(SyncError(proposal_id=external.proposal_id, error=str(e)))

        logger.info(f"Proposal sync finished: {result.success} ok, {result.failed} failed")
        if strict and result.errors:
            raise PartialBatchFailure([error.model_dump() for error in result.errors], result.total)
        return result

    async def refresh_voter_power(self, epoch: Optional[int] = None) -> VoterPowerSyncResult:
        return await self.registry.refresh_voting_power(epoch)

    async def update_net_change_limit(self, context: Optional[SyncContext] = None) -> NetChangeLimitResult:
        return await self.net_change_limit.update(context)
