from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import BigInteger, DateTime, Enum as SQLAlchemyEnum, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from govtrack.db.base_class import Base


class ProposalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RATIFIED = "RATIFIED"
    ENACTED = "ENACTED"
    EXPIRED = "EXPIRED"
    CLOSED = "CLOSED"


TERMINAL_STATUSES = frozenset(
    {ProposalStatus.RATIFIED, ProposalStatus.ENACTED, ProposalStatus.EXPIRED, ProposalStatus.CLOSED}
)


class GovernanceType(str, Enum):
    INFO_ACTION = "INFO_ACTION"
    TREASURY_WITHDRAWALS = "TREASURY_WITHDRAWALS"
    NEW_CONSTITUTION = "NEW_CONSTITUTION"
    HARD_FORK_INITIATION = "HARD_FORK_INITIATION"
    PROTOCOL_PARAMETER_CHANGE = "PROTOCOL_PARAMETER_CHANGE"
    NO_CONFIDENCE = "NO_CONFIDENCE"
    UPDATE_COMMITTEE = "UPDATE_COMMITTEE"


class Proposal(Base):
    """An on-chain governance action and its latest voting-power tally.

    Power columns hold lovelace. They are rewritten on every reconciliation
    pass while the proposal is ACTIVE and left alone once it is terminal.
    """

    __table_args__ = (UniqueConstraint("tx_hash", "cert_index", name="uq_proposal_tx_cert"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    proposal_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    tx_hash: Mapped[str] = mapped_column(String(64), index=True)
    cert_index: Mapped[str] = mapped_column(String(16))

    title: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rationale: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    governance_action_type: Mapped[Optional[GovernanceType]] = mapped_column(
        SQLAlchemyEnum(GovernanceType), nullable=True
    )
    status: Mapped[ProposalStatus] = mapped_column(
        SQLAlchemyEnum(ProposalStatus), default=ProposalStatus.ACTIVE, index=True
    )

    # Epochs
    submission_epoch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ratified_epoch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    enacted_epoch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dropped_epoch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expired_epoch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expiration_epoch: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # DRep voting power
    drep_total_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    drep_active_yes_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    drep_active_no_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    drep_active_abstain_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    drep_always_abstain_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    drep_always_no_confidence_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    drep_inactive_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # SPO voting power
    spo_total_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    spo_active_yes_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    spo_active_no_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    spo_active_abstain_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    spo_always_abstain_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    spo_always_no_confidence_vote_power: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    votes: Mapped[List["OnchainVote"]] = relationship("OnchainVote", back_populates="proposal")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
