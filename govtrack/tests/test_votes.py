import pytest
import pytest_asyncio

from govtrack.core.errors import UnsupportedOperationError
from govtrack.db.models.vote import VoteChoice, VoterType
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.ingestion.proposals import ProposalReconciler
from govtrack.services.ingestion.service import IngestionService
from govtrack.services.ingestion.voters import VoterRegistry
from govtrack.services.ingestion.votes import VoteIngestor

PROPOSAL_ID = "gov_action1abc"


@pytest_asyncio.fixture
async def ingestor(store, fake_client, offline_metadata, make_proposal):
    await ProposalReconciler(store, offline_metadata).reconcile(make_proposal(PROPOSAL_ID), 542)
    registry = VoterRegistry(store, fake_client, offline_metadata)
    return VoteIngestor(store, fake_client, registry)


@pytest.mark.asyncio
async def test_same_transaction_is_stored_once(ingestor, store, fake_client, make_vote):
    fake_client.votes = [make_vote("tx1", "drep1", "Yes")]

    first = await ingestor.ingest_votes(PROPOSAL_ID, SyncContext(), use_shared_cache=False)
    second = await ingestor.ingest_votes(PROPOSAL_ID, SyncContext(), use_shared_cache=False)

    assert first.votes_created == 1
    assert second.votes_created == 0
    assert second.votes_updated == 1
    assert await store.count_votes(PROPOSAL_ID) == 1


@pytest.mark.asyncio
async def test_changed_vote_keeps_both_rows_and_latest_wins(ingestor, store, fake_client, make_vote):
    fake_client.votes = [
        make_vote("tx1", "drep1", "Yes", epoch_no=541, block_time=1730000000),
        make_vote("tx2", "drep1", "No", epoch_no=543, block_time=1731000000),
    ]

    stats = await ingestor.ingest_votes(PROPOSAL_ID, SyncContext(), use_shared_cache=False)
    latest = await store.latest_votes(PROPOSAL_ID)

    assert stats.votes_created == 2
    assert stats.voters_created.drep == 1
    assert await store.count_votes(PROPOSAL_ID) == 2
    assert [(v.voter_id, v.vote) for v in latest] == [("drep1", VoteChoice.NO)]


@pytest.mark.asyncio
async def test_shared_cache_is_fetched_once_per_run(ingestor, fake_client, make_vote):
    fake_client.votes = [
        make_vote("tx1", "drep1", proposal_id=PROPOSAL_ID),
        make_vote("tx2", "drep2", proposal_id="gov_action1other"),
    ]
    context = SyncContext()

    stats = await ingestor.ingest_votes(PROPOSAL_ID, context, min_epoch=540)
    await ingestor.fetch_votes("gov_action1other", context)

    assert stats.votes_ingested == 1
    assert fake_client.called("list_votes") == [("list_votes", None, 540)]
    assert len(context.vote_cache) == 2


@pytest.mark.asyncio
async def test_committee_vote_records_member_name(ingestor, store, fake_client, make_vote):
    fake_client.votes = [
        make_vote(
            "tx1", "cc_hot1abc", "Yes", voter_role="ConstitutionalCommittee",
            meta_json={"authors": [{"name": "Alice Member"}]},
        )
    ]

    stats = await ingestor.ingest_votes(PROPOSAL_ID, SyncContext(), use_shared_cache=False)
    member = await store.get_voter(VoterType.CC, "cc_hot1abc")
    vote = (await store.latest_votes(PROPOSAL_ID))[0]

    assert stats.voters_created.cc == 1
    assert member.member_name == "Alice Member"
    assert vote.voting_power is None


@pytest.mark.asyncio
async def test_vote_snapshots_known_power(ingestor, store, fake_client, make_vote):
    fake_client.power = {(VoterType.SPO, 550): {"pool1x": 5_000_000_000}}
    fake_client.votes = [make_vote("tx1", "pool1x", "Abstain", voter_role="SPO")]

    await ingestor.ingest_votes(PROPOSAL_ID, SyncContext(), use_shared_cache=False)
    vote = (await store.latest_votes(PROPOSAL_ID))[0]

    assert vote.voter_type == VoterType.SPO
    assert vote.vote == VoteChoice.ABSTAIN
    assert vote.voting_power == 5_000_000_000


@pytest.mark.asyncio
async def test_ingest_vote_by_hash_is_unsupported(db_session, fake_client, offline_metadata):
    service = IngestionService(db_session, client=fake_client, metadata_fetcher=offline_metadata)

    with pytest.raises(UnsupportedOperationError):
        await service.ingest_vote("deadbeef")
