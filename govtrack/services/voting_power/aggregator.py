"""Voting-power tallies for a proposal at its reference epoch."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Set

from govtrack.core.config import settings
from govtrack.core.constants import (
    AUTO_DREP_IDS,
    DREP_ACTIVITY_WINDOW_EPOCHS,
    DREP_ALWAYS_ABSTAIN_ID,
    DREP_ALWAYS_NO_CONFIDENCE_ID,
    DREP_INACTIVITY_START_EPOCH,
)
from govtrack.core.utils import epoch_for_block_time
from govtrack.db.models.proposal import Proposal, ProposalStatus
from govtrack.db.models.vote import OnchainVote, VoteChoice, VoterType
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import KoiosVotingSummary
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.koios.client import KoiosClient
from govtrack.services.voting_power.formulas import (
    CommitteeTally,
    SpoFormula,
    StakeTally,
    VotingThreshold,
    passes,
    spo_formula_for_epoch,
    thresholds_for,
)

logger = logging.getLogger(__name__)


def select_reference_epoch(proposal: Proposal, current_epoch: int) -> int:
    """Epoch whose stake distribution decides the proposal.

    Active proposals are tallied live. Ratified or enacted ones freeze at
    ratification; the rest at the epoch they expired or were dropped.
    """
    if proposal.status == ProposalStatus.ACTIVE:
        return current_epoch
    if proposal.status in (ProposalStatus.RATIFIED, ProposalStatus.ENACTED) and proposal.ratified_epoch is not None:
        return proposal.ratified_epoch
    for epoch in (proposal.expired_epoch, proposal.dropped_epoch, proposal.expiration_epoch):
        if epoch is not None:
            return epoch
    return current_epoch


@dataclass
class VotingPowerResult:
    proposal_id: str
    epoch: int
    spo_epoch: int
    drep: StakeTally
    spo: StakeTally
    cc: CommitteeTally
    spo_formula: SpoFormula
    threshold: VotingThreshold
    passed: bool = False

    def power_fields(self) -> Dict[str, Any]:
        """Proposal columns to persist."""
        return {
            "drep_total_vote_power": self.drep.total,
            "drep_active_yes_vote_power": self.drep.yes,
            "drep_active_no_vote_power": self.drep.no,
            "drep_active_abstain_vote_power": self.drep.abstain,
            "drep_always_abstain_vote_power": self.drep.always_abstain,
            "drep_always_no_confidence_vote_power": self.drep.always_no_confidence,
            "drep_inactive_vote_power": self.drep.inactive,
            "spo_total_vote_power": self.spo.total,
            "spo_active_yes_vote_power": self.spo.yes,
            "spo_active_no_vote_power": self.spo.no,
            "spo_active_abstain_vote_power": self.spo.abstain,
            "spo_always_abstain_vote_power": self.spo.always_abstain,
            "spo_always_no_confidence_vote_power": self.spo.always_no_confidence,
        }


def _sum_power(votes: Iterable[OnchainVote], snapshot: Dict[str, int], choice: VoteChoice) -> int:
    return sum(snapshot.get(vote.voter_id, 0) for vote in votes if vote.vote == choice)


def _count(votes: Iterable[OnchainVote], choice: VoteChoice) -> int:
    return sum(1 for vote in votes if vote.vote == choice)


class VotingPowerAggregator:
    """Computes DRep, SPO and committee tallies and the pass/fail outcome."""

    def __init__(self, store: GovernanceStore, client: KoiosClient, cc_seats: Optional[int] = None):
        self.store = store
        self.client = client
        self.cc_seats = cc_seats or settings.CC_SEAT_COUNT

    async def compute_power(self, proposal: Proposal, context: SyncContext) -> VotingPowerResult:
        """Tally a proposal from each voter's latest stored vote.

        Failed power lookups count as zero, so the result is always
        computable and re-running it changes nothing.
        """
        current_epoch = await context.get_current_epoch(self.client)
        epoch = select_reference_epoch(proposal, current_epoch)
        spo_epoch = epoch - 1

        votes = await self.store.latest_votes(proposal.proposal_id)
        by_class: Dict[VoterType, list] = {voter_type: [] for voter_type in VoterType}
        for vote in votes:
            by_class[vote.voter_type].append(vote)

        drep_snapshot = await context.get_power_snapshot(self.client, VoterType.DREP, epoch)
        spo_snapshot = await context.get_power_snapshot(self.client, VoterType.SPO, spo_epoch)
        summary = await self._voting_summary(proposal.proposal_id)

        drep_votes = by_class[VoterType.DREP]
        drep = StakeTally(
            total=sum(drep_snapshot.values()),
            yes=_sum_power(drep_votes, drep_snapshot, VoteChoice.YES),
            no=_sum_power(drep_votes, drep_snapshot, VoteChoice.NO),
            abstain=_sum_power(drep_votes, drep_snapshot, VoteChoice.ABSTAIN),
            always_abstain=drep_snapshot.get(DREP_ALWAYS_ABSTAIN_ID, 0),
            always_no_confidence=drep_snapshot.get(DREP_ALWAYS_NO_CONFIDENCE_ID, 0),
            inactive=await self._inactive_drep_power(proposal, epoch, drep_votes, drep_snapshot, context),
        )

        spo_formula = spo_formula_for_epoch(epoch)
        spo_votes = by_class[VoterType.SPO]
        spo = StakeTally(
            total=sum(spo_snapshot.values()),
            yes=_sum_power(spo_votes, spo_snapshot, VoteChoice.YES),
            no=_sum_power(spo_votes, spo_snapshot, VoteChoice.NO),
            abstain=_sum_power(spo_votes, spo_snapshot, VoteChoice.ABSTAIN),
            always_abstain=summary.pool_passive_always_abstain_vote_power if summary else 0,
            always_no_confidence=summary.pool_passive_always_no_confidence_vote_power if summary else 0,
            include_not_voted=spo_formula == SpoFormula.STANDARD,
        )

        cc_votes = by_class[VoterType.CC]
        cc = CommitteeTally(
            seats=self.cc_seats,
            yes=_count(cc_votes, VoteChoice.YES),
            no=_count(cc_votes, VoteChoice.NO),
            abstain=_count(cc_votes, VoteChoice.ABSTAIN),
        )

        threshold = thresholds_for(proposal.governance_action_type)
        result = VotingPowerResult(
            proposal_id=proposal.proposal_id,
            epoch=epoch,
            spo_epoch=spo_epoch,
            drep=drep,
            spo=spo,
            cc=cc,
            spo_formula=spo_formula,
            threshold=threshold,
            passed=passes(threshold, drep.yes_ratio, spo.yes_ratio, cc.yes_ratio),
        )
        logger.info(
            f"Power for {proposal.proposal_id} at epoch {epoch}: "
            f"DRep yes {drep.yes_percent}%, SPO yes {spo.yes_percent}%, CC {cc.verdict}"
        )
        return result

    async def _voting_summary(self, proposal_id: str) -> Optional[KoiosVotingSummary]:
        try:
            return await self.client.get_proposal_voting_summary(proposal_id)
        except Exception as e:
            logger.warning(f"Voting summary unavailable for {proposal_id}: {e}")
            return None

    async def _inactive_drep_power(
        self,
        proposal: Proposal,
        epoch: int,
        drep_votes: list,
        snapshot: Dict[str, int],
        context: SyncContext,
    ) -> int:
        if epoch < DREP_INACTIVITY_START_EPOCH:
            return 0

        voted = {vote.voter_id for vote in drep_votes}
        candidates = [
            drep_id for drep_id, amount in snapshot.items()
            if amount > 0 and drep_id not in voted and drep_id not in AUTO_DREP_IDS
        ]
        if not candidates:
            return 0

        try:
            if proposal.status == ProposalStatus.ACTIVE:
                infos = await self.client.get_voter_info(VoterType.DREP, candidates)
                return sum(info.amount for info in infos if info.active is False)

            active = await self._dreps_active_in_window(epoch, context)
            return sum(snapshot[drep_id] for drep_id in candidates if drep_id not in active)
        except Exception as e:
            logger.warning(f"Inactive DRep power unavailable for {proposal.proposal_id}: {e}")
            return 0

    async def _dreps_active_in_window(self, epoch: int, context: SyncContext) -> Set[str]:
        """DReps that voted or updated their certificate in the activity window ending at ``epoch``."""
        first_epoch = epoch - DREP_ACTIVITY_WINDOW_EPOCHS + 1
        active = await self.store.drep_ids_voted_between(first_epoch, epoch)
        for update in await context.get_drep_updates(self.client):
            if update.block_time is None:
                continue
            if first_epoch <= epoch_for_block_time(update.block_time) <= epoch:
                active.add(update.drep_id)
        return active
