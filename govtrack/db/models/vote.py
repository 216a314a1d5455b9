from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, Enum as SQLAlchemyEnum, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from govtrack.db.base_class import Base


class VoteChoice(str, Enum):
    YES = "YES"
    NO = "NO"
    ABSTAIN = "ABSTAIN"


class VoterType(str, Enum):
    DREP = "DREP"
    SPO = "SPO"
    CC = "CC"


class OnchainVote(Base):
    """One vote transaction. A voter that changes its mind gets a new row per transaction."""

    __table_args__ = (
        UniqueConstraint("tx_hash", "proposal_id", "voter_type", "voter_id", name="uq_onchain_vote_identity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    tx_hash: Mapped[str] = mapped_column(String(64), index=True)
    proposal_id: Mapped[str] = mapped_column(String(128), ForeignKey("proposal.proposal_id"), index=True)
    voter_type: Mapped[VoterType] = mapped_column(SQLAlchemyEnum(VoterType), index=True)
    voter_id: Mapped[str] = mapped_column(String(128), index=True)

    vote: Mapped[VoteChoice] = mapped_column(SQLAlchemyEnum(VoteChoice))
    voting_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    anchor_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    anchor_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    epoch_no: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    voted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    proposal = relationship("Proposal", back_populates="votes")
