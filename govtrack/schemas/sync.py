"""Result objects returned by the ingestion and reconciliation services."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class VoterClassCounts(BaseModel):
    drep: int = 0
    spo: int = 0
    cc: int = 0

    def bump(self, voter_class: str) -> None:
        key = voter_class.lower()
        setattr(self, key, getattr(self, key) + 1)


class EnsureVoterResult(BaseModel):
    voter_id: str
    created: bool = False
    updated: bool = False


class VoteIngestionStats(BaseModel):
    """Outcome of ingesting the votes of one proposal."""

    votes_ingested: int = 0
    votes_created: int = 0
    votes_updated: int = 0
    voters_created: VoterClassCounts = Field(default_factory=VoterClassCounts)
    voters_updated: VoterClassCounts = Field(default_factory=VoterClassCounts)


class ProposalIngestionResult(BaseModel):
    proposal_id: str
    created: bool
    status: str
    votes: VoteIngestionStats = Field(default_factory=VoteIngestionStats)


class SyncError(BaseModel):
    proposal_id: str
    error: str


class SyncAllResult(BaseModel):
    """Outcome of one batch sync pass over every non-terminal proposal."""

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[SyncError] = Field(default_factory=list)


class VoterPowerSyncResult(BaseModel):
    epoch: Optional[int] = None
    updated: Dict[str, int] = Field(default_factory=dict)
    failed: int = 0
    errors: List[Dict[str, str]] = Field(default_factory=list)


class NetChangeLimitResult(BaseModel):
    """Outcome of recomputing the yearly treasury withdrawal total."""

    year: int
    epoch: int
    current_value: int = Field(..., description="Lovelace withdrawn by ratified or enacted actions this year")
    proposals_included: int = 0
    updated: bool = True
