from govtrack.db.models.net_change_limit import NetChangeLimit
from govtrack.db.models.proposal import GovernanceType, Proposal, ProposalStatus, TERMINAL_STATUSES
from govtrack.db.models.vote import OnchainVote, VoteChoice, VoterType
from govtrack.db.models.voter import CommitteeMember, Drep, Spo

# These imports are required to ensure all models are discovered by SQLAlchemy
__all__ = [
    "NetChangeLimit",
    "Proposal",
    "ProposalStatus",
    "GovernanceType",
    "TERMINAL_STATUSES",
    "OnchainVote",
    "VoteChoice",
    "VoterType",
    "Drep",
    "Spo",
    "CommitteeMember",
]
