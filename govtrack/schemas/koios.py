"""Pydantic schemas for Koios ledger-index payloads.

Only the fields the ingestion core reads are declared; everything else the
index returns is ignored. Lovelace amounts arrive as strings and are coerced
to ``int``.
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# Koios sends lovelace as strings and uses null for "nothing yet"
Lovelace = Annotated[int, BeforeValidator(lambda v: 0 if v in (None, "") else v)]


class KoiosModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class KoiosProposal(KoiosModel):
    """Entry of ``GET /proposal_list``."""

    proposal_id: str = Field(..., description="Bech32 governance action id (gov_action1...)")
    proposal_tx_hash: str = Field(..., description="Transaction that submitted the action")
    proposal_index: int = Field(0, description="Certificate index inside the transaction")
    proposal_type: Optional[str] = Field(None, description="PascalCase action type, e.g. InfoAction")
    proposed_epoch: Optional[int] = None
    ratified_epoch: Optional[int] = None
    enacted_epoch: Optional[int] = None
    dropped_epoch: Optional[int] = None
    expired_epoch: Optional[int] = None
    expiration: Optional[int] = Field(None, description="Epoch after which the action can no longer be ratified")
    meta_url: Optional[str] = None
    meta_hash: Optional[str] = None
    meta_json: Optional[Dict[str, Any]] = None
    block_time: Optional[int] = None
    withdrawal: Optional[Any] = Field(None, description="TreasuryWithdrawals only: {stake_address, amount} or a list of them")


class KoiosVote(KoiosModel):
    """Entry of ``GET /vote_list``."""

    vote_tx_hash: str
    proposal_id: str
    voter_role: str = Field(..., description="DRep, SPO or ConstitutionalCommittee")
    voter_id: str
    vote: str = Field(..., description="Yes, No or Abstain")
    epoch_no: Optional[int] = None
    block_time: Optional[int] = None
    meta_url: Optional[str] = None
    meta_hash: Optional[str] = None
    meta_json: Optional[Dict[str, Any]] = None

    def author_name(self) -> Optional[str]:
        """First author name from the rationale document, used for CC member names."""
        authors = (self.meta_json or {}).get("authors") or []
        if authors and isinstance(authors[0], dict):
            name = authors[0].get("name")
            if isinstance(name, str) and name.strip():
                return name.strip()
        return None


class KoiosVotingSummary(KoiosModel):
    """Entry of ``GET /proposal_voting_summary``."""

    proposal_id: Optional[str] = None
    epoch_no: Optional[int] = None
    drep_yes_votes_cast: Lovelace = 0
    drep_no_votes_cast: Lovelace = 0
    drep_abstain_votes_cast: Lovelace = 0
    drep_active_yes_vote_power: Lovelace = 0
    drep_active_no_vote_power: Lovelace = 0
    drep_active_abstain_vote_power: Lovelace = 0
    drep_always_abstain_vote_power: Lovelace = 0
    drep_always_no_confidence_vote_power: Lovelace = 0
    pool_yes_votes_cast: Lovelace = 0
    pool_no_votes_cast: Lovelace = 0
    pool_abstain_votes_cast: Lovelace = 0
    pool_active_yes_vote_power: Lovelace = 0
    pool_active_no_vote_power: Lovelace = 0
    pool_active_abstain_vote_power: Lovelace = 0
    pool_passive_always_abstain_vote_power: Lovelace = 0
    pool_passive_always_no_confidence_vote_power: Lovelace = 0
    committee_yes_votes_cast: Lovelace = 0
    committee_no_votes_cast: Lovelace = 0
    committee_abstain_votes_cast: Lovelace = 0


class VoterPower(KoiosModel):
    """Normalised row of ``/drep_voting_power_history`` or ``/pool_voting_power_history``."""

    voter_id: str
    epoch_no: int
    amount: Lovelace = 0


class DrepInfo(KoiosModel):
    """Entry of ``POST /drep_info``."""

    drep_id: str
    registered: Optional[bool] = None
    active: Optional[bool] = None
    amount: Lovelace = 0
    expires_epoch_no: Optional[int] = None
    meta_url: Optional[str] = None


class PoolInfo(KoiosModel):
    """Entry of ``POST /pool_info``."""

    pool_id_bech32: str
    meta_url: Optional[str] = None
    meta_json: Optional[Dict[str, Any]] = None
    active_stake: Optional[Lovelace] = None
    voting_power: Optional[Lovelace] = None


class DrepUpdate(KoiosModel):
    """Entry of ``GET /drep_updates`` - a registration, update or retirement certificate."""

    drep_id: str
    update_tx_hash: Optional[str] = None
    block_time: Optional[int] = None
    action: Optional[str] = None
    meta_json: Optional[Dict[str, Any]] = None

    def metadata_body(self) -> Dict[str, Any]:
        body = (self.meta_json or {}).get("body")
        return body if isinstance(body, dict) else {}


class CommitteeMemberInfo(KoiosModel):
    cc_hot_id: Optional[str] = None
    cc_cold_id: Optional[str] = None
    expiration_epoch: Optional[int] = None
    status: Optional[str] = None


class CommitteeInfo(KoiosModel):
    """Entry of ``GET /committee_info``."""

    proposal_id: Optional[str] = None
    members: List[CommitteeMemberInfo] = Field(default_factory=list)
