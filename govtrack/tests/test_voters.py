import pytest
from unittest.mock import AsyncMock

from govtrack.core.errors import RetryExhaustedError, TransientNetworkError
from govtrack.db.models.vote import VoterType
from govtrack.schemas.koios import CommitteeInfo, DrepInfo, DrepUpdate, PoolInfo
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.ingestion.voters import VoterRegistry


@pytest.mark.asyncio
async def test_new_drep_is_enriched(store, fake_client, offline_metadata):
    fake_client.power = {(VoterType.DREP, 550): {"drep1a": 42_000_000}}
    fake_client.drep_updates = [
        DrepUpdate(drep_id="drep1a", block_time=1, meta_json={"body": {"givenName": "Old"}}),
        DrepUpdate(
            drep_id="drep1a",
            block_time=2,
            meta_json={"body": {"givenName": "Ada DRep", "image": {"contentUrl": "https://img/x.png"}}},
        ),
    ]
    registry = VoterRegistry(store, fake_client, offline_metadata)

    result = await registry.ensure_exists(VoterType.DREP, "drep1a", SyncContext())
    drep = await store.get_voter(VoterType.DREP, "drep1a")

    assert result.created is True
    assert drep.name == "Ada DRep"
    assert drep.icon_url == "https://img/x.png"
    assert drep.voting_power == 42_000_000


@pytest.mark.asyncio
async def test_existing_voter_is_not_refreshed(store, fake_client, offline_metadata):
    registry = VoterRegistry(store, fake_client, offline_metadata)
    await registry.ensure_exists(VoterType.SPO, "pool1a", SyncContext())
    fake_client.calls.clear()

    result = await registry.ensure_exists(VoterType.SPO, "pool1a", SyncContext())

    assert result.created is False
    assert result.updated is False
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_enrichment_failures_degrade(store, fake_client, offline_metadata):
    failure = RetryExhaustedError(5, TransientNetworkError("down"))
    fake_client.get_voter_info = AsyncMock(side_effect=failure)
    fake_client.get_voter_power_history = AsyncMock(side_effect=failure)
    registry = VoterRegistry(store, fake_client, offline_metadata)

    result = await registry.ensure_exists(VoterType.SPO, "pool1down", SyncContext())
    pool = await store.get_voter(VoterType.SPO, "pool1down")

    assert result.created is True
    assert pool.pool_name is None
    assert pool.voting_power == 0


@pytest.mark.asyncio
async def test_pool_metadata_and_committee_credentials(store, fake_client, offline_metadata):
    fake_client.pool_info = {
        "pool1a": PoolInfo(pool_id_bech32="pool1a", meta_json={"name": "Alpha Pool", "ticker": "ALPH"}),
    }
    fake_client.committee = CommitteeInfo.model_validate(
        {"members": [{"cc_hot_id": "cc_hot1a", "cc_cold_id": "cc_cold1a", "status": "authorized"}]}
    )
    registry = VoterRegistry(store, fake_client, offline_metadata)
    context = SyncContext()

    await registry.ensure_exists(VoterType.SPO, "pool1a", context)
    await registry.ensure_exists(VoterType.CC, "cc_hot1a", context)
    pool = await store.get_voter(VoterType.SPO, "pool1a")
    member = await store.get_voter(VoterType.CC, "cc_hot1a")

    assert (pool.pool_name, pool.ticker) == ("Alpha Pool", "ALPH")
    assert (member.cold_credential, member.status) == ("cc_cold1a", "authorized")


@pytest.mark.asyncio
async def test_repeated_creation_resolves_to_one_row(store):
    first, created_first = await store.create_voter(VoterType.DREP, "drep1race")
    second, created_second = await store.create_voter(VoterType.DREP, "drep1race")

    assert created_first is True
    assert created_second is False
    assert first.id == second.id
    assert len(await store.list_voters(VoterType.DREP)) == 1


@pytest.mark.asyncio
async def test_refresh_voting_power(store, fake_client, offline_metadata):
    registry = VoterRegistry(store, fake_client, offline_metadata)
    await store.create_voter(VoterType.DREP, "drep1a")
    await store.create_voter(VoterType.DREP, "drep1b")
    await store.create_voter(VoterType.SPO, "pool1a")
    fake_client.power = {
        (VoterType.DREP, 560): {"drep1a": 100, "drep1b": 0},
        (VoterType.SPO, 560): {"pool1a": 900},
    }
    fake_client.drep_info = {"drep1a": DrepInfo(drep_id="drep1a", active=False)}

    result = await registry.refresh_voting_power(epoch=560)
    drep = await store.get_voter(VoterType.DREP, "drep1a")

    assert result.epoch == 560
    assert result.updated == {"drep": 1, "spo": 1}
    assert result.failed == 0
    assert drep.voting_power == 100
    assert drep.active is False


@pytest.mark.asyncio
async def test_refresh_voting_power_collects_failures(store, fake_client, offline_metadata):
    registry = VoterRegistry(store, fake_client, offline_metadata)
    await store.create_voter(VoterType.SPO, "pool1a")
    fake_client.get_voter_power_history = AsyncMock(side_effect=TransientNetworkError("down"))

    result = await registry.refresh_voting_power(epoch=560)

    assert result.failed == 2
    assert {error["voter_id"] for error in result.errors} == {"*drep", "*spo"}
