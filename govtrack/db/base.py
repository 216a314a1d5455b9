# Import all models so that Base.metadata has every table before create_all
from govtrack.db.base_class import Base
from govtrack.db.models.net_change_limit import NetChangeLimit
from govtrack.db.models.proposal import Proposal
from govtrack.db.models.vote import OnchainVote
from govtrack.db.models.voter import CommitteeMember, Drep, Spo

__all__ = ["Base", "NetChangeLimit", "Proposal", "OnchainVote", "Drep", "Spo", "CommitteeMember"]
