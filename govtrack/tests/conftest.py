"""Test fixtures for the governance ingestion core."""

from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from govtrack.core.config import settings
from govtrack.db.base import Base
from govtrack.db.models.vote import VoterType
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import (
    CommitteeInfo,
    DrepInfo,
    DrepUpdate,
    KoiosProposal,
    KoiosVote,
    KoiosVotingSummary,
    PoolInfo,
    VoterPower,
)
from govtrack.services.ingestion.metadata import MetadataFetcher


@pytest_asyncio.fixture(scope="function")
async def session_factory():
    """Session factory bound to a fresh in-memory database."""
    # StaticPool keeps the single in-memory connection alive across sessions
    engine = create_async_engine(
        settings.TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    """Create a clean database session for a test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session):
    return GovernanceStore(db_session)


class FakeKoiosClient:
    """In-memory stand-in for KoiosClient with the same async surface."""

    def __init__(
        self,
        current_epoch: int = 550,
        proposals: Optional[List[KoiosProposal]] = None,
        votes: Optional[List[KoiosVote]] = None,
        power: Optional[Dict[tuple, Dict[str, int]]] = None,
        summaries: Optional[Dict[str, KoiosVotingSummary]] = None,
        drep_info: Optional[Dict[str, DrepInfo]] = None,
        pool_info: Optional[Dict[str, PoolInfo]] = None,
        drep_updates: Optional[List[DrepUpdate]] = None,
        committee: Optional[CommitteeInfo] = None,
    ):
        self.current_epoch = current_epoch
        self.proposals = proposals or []
        self.votes = votes or []
        self.power = power or {}
        self.summaries = summaries or {}
        self.drep_info = drep_info or {}
        self.pool_info = pool_info or {}
        self.drep_updates = drep_updates or []
        self.committee = committee
        self.calls: List[tuple] = []

    async def get_current_epoch(self) -> int:
        self.calls.append(("get_current_epoch",))
        return self.current_epoch

    async def list_proposals(self) -> List[KoiosProposal]:
        self.calls.append(("list_proposals",))
        return list(self.proposals)

    async def list_votes(self, proposal_id: Optional[str] = None, min_epoch: Optional[int] = None) -> List[KoiosVote]:
        self.calls.append(("list_votes", proposal_id, min_epoch))
        return [
            vote for vote in self.votes
            if (proposal_id is None or vote.proposal_id == proposal_id)
            and (min_epoch is None or (vote.epoch_no or 0) >= min_epoch)
        ]

    async def get_proposal_voting_summary(self, proposal_id: str) -> Optional[KoiosVotingSummary]:
        self.calls.append(("get_proposal_voting_summary", proposal_id))
        return self.summaries.get(proposal_id)

    async def get_voter_power_history(
        self, voter_class: VoterType, voter_id: Optional[str] = None, epoch: Optional[int] = None
    ) -> List[VoterPower]:
        self.calls.append(("get_voter_power_history", voter_class, voter_id, epoch))
        snapshot = self.power.get((voter_class, epoch), {})
        return [
            VoterPower(voter_id=vid, epoch_no=epoch, amount=amount)
            for vid, amount in snapshot.items()
            if voter_id is None or vid == voter_id
        ]

    async def get_voter_info(self, voter_class: VoterType, ids: List[str]) -> List[Any]:
        self.calls.append(("get_voter_info", voter_class, list(ids)))
        source = self.drep_info if voter_class == VoterType.DREP else self.pool_info
        return [source[i] for i in ids if i in source]

    async def list_drep_updates(self, drep_id: Optional[str] = None) -> List[DrepUpdate]:
        self.calls.append(("list_drep_updates", drep_id))
        return [u for u in self.drep_updates if drep_id is None or u.drep_id == drep_id]

    async def get_committee_info(self) -> Optional[CommitteeInfo]:
        self.calls.append(("get_committee_info",))
        return self.committee

    async def close(self) -> None:
        pass

    def called(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


def build_proposal(proposal_id: str = "gov_action1abc", **overrides: Any) -> KoiosProposal:
    data = {
        "proposal_id": proposal_id,
        "proposal_tx_hash": f"tx_{proposal_id}",
        "proposal_index": 0,
        "proposal_type": "TreasuryWithdrawals",
        "proposed_epoch": 540,
        "expiration": 546,
        "meta_json": {"body": {"title": f"Title of {proposal_id}", "abstract": "Abstract", "rationale": "Because"}},
    }
    data.update(overrides)
    return KoiosProposal.model_validate(data)


def build_vote(
    tx_hash: str,
    voter_id: str,
    vote: str = "Yes",
    proposal_id: str = "gov_action1abc",
    voter_role: str = "DRep",
    **overrides: Any,
) -> KoiosVote:
    data = {
        "vote_tx_hash": tx_hash,
        "proposal_id": proposal_id,
        "voter_role": voter_role,
        "voter_id": voter_id,
        "vote": vote,
        "epoch_no": 541,
        "block_time": 1730000000,
    }
    data.update(overrides)
    return KoiosVote.model_validate(data)


@pytest.fixture
def make_proposal():
    return build_proposal


@pytest.fixture
def make_vote():
    return build_vote


@pytest.fixture
def fake_client_class():
    return FakeKoiosClient


@pytest.fixture
def fake_client():
    return FakeKoiosClient()


@pytest_asyncio.fixture
async def offline_metadata():
    """MetadataFetcher whose every request fails with 404."""
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    fetcher = MetadataFetcher(http_client=httpx.AsyncClient(transport=transport))
    yield fetcher
    await fetcher.client.aclose()
