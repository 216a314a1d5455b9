"""
Storage contract for the ingestion core.

Every write is an upsert by natural key that commits on its own, so an
interrupted pass can simply be re-run.
"""
import logging
from typing import Any, Dict, List, Optional, Set, Tuple, Type, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from govtrack.db.models.net_change_limit import NetChangeLimit
from govtrack.db.models.proposal import Proposal, ProposalStatus
from govtrack.db.models.vote import OnchainVote, VoterType
from govtrack.db.models.voter import CommitteeMember, Drep, Spo

logger = logging.getLogger(__name__)

Voter = Union[Drep, Spo, CommitteeMember]

VOTER_MODELS: Dict[VoterType, Tuple[Type[Any], str]] = {
    VoterType.DREP: (Drep, "drep_id"),
    VoterType.SPO: (Spo, "pool_id"),
    VoterType.CC: (CommitteeMember, "cc_id"),
}


class GovernanceStore:
    """Natural-key reads and upserts over proposals, votes and voters."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def _first(self, model: Type[Any], **keys: Any) -> Optional[Any]:
        query = select(model).filter_by(**keys)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def _upsert(self, model: Type[Any], keys: Dict[str, Any], fields: Dict[str, Any]) -> Tuple[Any, bool]:
        """Insert or update one row identified by ``keys``.

        A concurrent insert of the same key loses the race on the unique
        constraint; the loser rolls back and updates the winner's row.
        """
        row = await self._first(model, **keys)
        created = row is None
        if created:
            row = model(**keys, **fields)
            self.db.add(row)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.info(f"{model.__name__} {keys} was created concurrently; updating instead")
                row = await self._first(model, **keys)
                if row is None:
                    raise
                created = False
            else:
                await self.db.refresh(row)
                return row, True

        return await self._save(row, fields), created

    async def _save(self, row: Any, fields: Dict[str, Any]) -> Any:
        self._apply(row, fields)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(row)
        return row

    @staticmethod
    def _apply(row: Any, fields: Dict[str, Any]) -> None:
        for name, value in fields.items():
            setattr(row, name, value)

    # Proposals

    async def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        return await self._first(Proposal, proposal_id=proposal_id)

    async def get_proposal_by_row_id(self, row_id: int) -> Optional[Proposal]:
        return await self._first(Proposal, id=row_id)

    async def get_proposal_by_tx(self, tx_hash: str, cert_index: Optional[str] = None) -> Optional[Proposal]:
        keys: Dict[str, Any] = {"tx_hash": tx_hash}
        if cert_index is not None:
            keys["cert_index"] = cert_index
        query = select(Proposal).filter_by(**keys).order_by(Proposal.cert_index)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def upsert_proposal(self, proposal_id: str, fields: Dict[str, Any]) -> Tuple[Proposal, bool]:
        return await self._upsert(Proposal, {"proposal_id": proposal_id}, fields)

    async def update_proposal(self, proposal: Proposal, fields: Dict[str, Any]) -> Proposal:
        return await self._save(proposal, fields)

    async def proposal_statuses(self) -> Dict[str, ProposalStatus]:
        """Map of every stored proposal id to its status."""
        result = await self.db.execute(select(Proposal.proposal_id, Proposal.status))
        return {proposal_id: status for proposal_id, status in result.all()}

    async def count_proposals(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Proposal))
        return result.scalar_one()

    # Votes

    async def upsert_vote(
        self,
        tx_hash: str,
        proposal_id: str,
        voter_type: VoterType,
        voter_id: str,
        fields: Dict[str, Any],
    ) -> Tuple[OnchainVote, bool]:
        keys = {
            "tx_hash": tx_hash,
            "proposal_id": proposal_id,
            "voter_type": voter_type,
            "voter_id": voter_id,
        }
        return await self._upsert(OnchainVote, keys, fields)

    async def count_votes(self, proposal_id: str) -> int:
        query = select(func.count()).select_from(OnchainVote).where(OnchainVote.proposal_id == proposal_id)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def latest_votes(self, proposal_id: str) -> List[OnchainVote]:
        """Each voter's most recent vote on a proposal."""
        query = (
            select(OnchainVote)
            .where(OnchainVote.proposal_id == proposal_id)
            .order_by(OnchainVote.epoch_no, OnchainVote.voted_at, OnchainVote.created_at)
        )
        result = await self.db.execute(query)
        latest: Dict[Tuple[VoterType, str], OnchainVote] = {}
        for vote in result.scalars().all():
            latest[(vote.voter_type, vote.voter_id)] = vote
        return list(latest.values())

    async def drep_ids_voted_between(self, first_epoch: int, last_epoch: int) -> Set[str]:
        """DReps with at least one stored vote cast in ``[first_epoch, last_epoch]``."""
        query = (
            select(OnchainVote.voter_id)
            .where(OnchainVote.voter_type == VoterType.DREP)
            .where(OnchainVote.epoch_no >= first_epoch)
            .where(OnchainVote.epoch_no <= last_epoch)
            .distinct()
        )
        result = await self.db.execute(query)
        return set(result.scalars().all())

    # Voters

    async def get_voter(self, voter_class: VoterType, voter_id: str) -> Optional[Voter]:
        model, key = VOTER_MODELS[voter_class]
        return await self._first(model, **{key: voter_id})

    async def create_voter(self, voter_class: VoterType, voter_id: str) -> Tuple[Voter, bool]:
        """Insert a bare voter row; returns the existing row when it is already there."""
        model, key = VOTER_MODELS[voter_class]
        existing = await self._first(model, **{key: voter_id})
        if existing is not None:
            return existing, False
        return await self._upsert(model, {key: voter_id}, {})

    async def update_voter(self, voter: Voter, fields: Dict[str, Any]) -> Voter:
        return await self._save(voter, fields)

    async def list_voters(self, voter_class: VoterType) -> List[Voter]:
        model, _ = VOTER_MODELS[voter_class]
        result = await self.db.execute(select(model))
        return list(result.scalars().all())

    # Net change limit

    async def get_net_change_limit(self, year: int) -> Optional[NetChangeLimit]:
        return await self._first(NetChangeLimit, year=year)

    async def upsert_net_change_limit(self, year: int, epoch: int, current: int) -> Tuple[NetChangeLimit, bool]:
        """Record the yearly withdrawal total; a new row starts with ``limit`` 0."""
        return await self._upsert(NetChangeLimit, {"year": year}, {"epoch": epoch, "current": current})
