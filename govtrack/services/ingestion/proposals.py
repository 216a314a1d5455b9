"""Proposal upsert and lifecycle status derivation."""

import json
import logging
from typing import Any, Dict, Optional, Tuple

from govtrack.core.constants import DEFAULT_PROPOSAL_TITLE
from govtrack.db.models.proposal import GovernanceType, Proposal, ProposalStatus
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import KoiosProposal
from govtrack.services.ingestion.metadata import MetadataFetcher

logger = logging.getLogger(__name__)

KOIOS_PROPOSAL_TYPES = {
    "ParameterChange": GovernanceType.PROTOCOL_PARAMETER_CHANGE,
    "HardForkInitiation": GovernanceType.HARD_FORK_INITIATION,
    "TreasuryWithdrawals": GovernanceType.TREASURY_WITHDRAWALS,
    "NoConfidence": GovernanceType.NO_CONFIDENCE,
    "NewCommittee": GovernanceType.UPDATE_COMMITTEE,
    "NewConstitution": GovernanceType.NEW_CONSTITUTION,
    "InfoAction": GovernanceType.INFO_ACTION,
}


def map_governance_type(proposal_type: Optional[str]) -> Optional[GovernanceType]:
    if not proposal_type:
        return None
    mapped = KOIOS_PROPOSAL_TYPES.get(proposal_type)
    if mapped is None:
        logger.warning(f"Unknown proposal type from Koios: {proposal_type}")
    return mapped


def _reached(epoch: Optional[int], current_epoch: int) -> bool:
    return epoch is not None and epoch <= current_epoch


def derive_proposal_status(
    proposal: Any,
    current_epoch: int,
    action_type: Optional[GovernanceType],
) -> ProposalStatus:
    """Lifecycle status from the proposal's epoch fields.

    Checked in order: enacted, ratified, then expired or dropped. Info
    actions can never be ratified, so the ledger dropping one closes it
    rather than expiring it.
    """
    if _reached(proposal.enacted_epoch, current_epoch):
        return ProposalStatus.ENACTED
    if _reached(proposal.ratified_epoch, current_epoch):
        return ProposalStatus.RATIFIED
    if _reached(proposal.expired_epoch, current_epoch) or _reached(proposal.dropped_epoch, current_epoch):
        if action_type == GovernanceType.INFO_ACTION:
            return ProposalStatus.CLOSED
        return ProposalStatus.EXPIRED
    return ProposalStatus.ACTIVE


class ProposalReconciler:
    """Creates or refreshes the local copy of one governance action."""

    def __init__(self, store: GovernanceStore, metadata_fetcher: MetadataFetcher):
        self.store = store
        self.metadata_fetcher = metadata_fetcher

    async def reconcile(self, external: KoiosProposal, current_epoch: int) -> Tuple[Proposal, bool]:
        """Upsert a proposal by its governance action id.

        Args:
            external: Proposal as returned by the index
            current_epoch: Epoch used for status derivation

        Returns:
            Tuple of the stored proposal and whether it was created
        """
        existing = await self.store.get_proposal(external.proposal_id)

        action_type = map_governance_type(external.proposal_type)
        if action_type is None and existing is not None:
            action_type = existing.governance_action_type

        fields: Dict[str, Any] = {
            "tx_hash": external.proposal_tx_hash,
            "cert_index": str(external.proposal_index),
            "governance_action_type": action_type,
            "status": derive_proposal_status(external, current_epoch, action_type),
            "submission_epoch": external.proposed_epoch,
            "ratified_epoch": external.ratified_epoch,
            "enacted_epoch": external.enacted_epoch,
            "dropped_epoch": external.dropped_epoch,
            "expired_epoch": external.expired_epoch,
            "expiration_epoch": external.expiration,
        }

        if existing is None or existing.title == DEFAULT_PROPOSAL_TITLE:
            metadata = await self.metadata_fetcher.proposal_metadata(external.meta_json, external.meta_url)
            fields.update(
                title=metadata.title,
                description=metadata.description,
                rationale=metadata.rationale,
                metadata_json=json.dumps(metadata.document) if metadata.document else None,
            )

        proposal, created = await self.store.upsert_proposal(external.proposal_id, fields)
        logger.info(
            f"{'Created' if created else 'Updated'} proposal {proposal.proposal_id} "
            f"({proposal.governance_action_type}, {proposal.status.value})"
        )
        return proposal, created
