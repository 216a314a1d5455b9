from unittest.mock import AsyncMock, patch

from govtrack.schemas.sync import ProposalIngestionResult, SyncAllResult, SyncError
from govtrack.worker.celery_app import celery_app
from govtrack.worker.tasks.sync_tasks import ingest_proposal, sync_all_proposals, sync_voter_power


def test_sync_all_proposals_task_returns_result():
    result = SyncAllResult(total=2, success=1, failed=1, errors=[SyncError(proposal_id="p", error="e")])

    with patch("govtrack.worker.tasks.sync_tasks.proposal_sync_scheduler") as scheduler:
        scheduler.tick = AsyncMock(return_value=result)
        payload = sync_all_proposals()

    assert payload["failed"] == 1
    assert payload["errors"] == [{"proposal_id": "p", "error": "e"}]


def test_skipped_tick_returns_none():
    with patch("govtrack.worker.tasks.sync_tasks.voter_power_scheduler") as scheduler:
        scheduler.tick = AsyncMock(return_value=None)
        assert sync_voter_power() is None


def test_ingest_proposal_task():
    result = ProposalIngestionResult(proposal_id="gov_action1a", created=True, status="ACTIVE")

    with patch("govtrack.worker.tasks.sync_tasks._ingest_proposal", AsyncMock(return_value=result.model_dump())):
        payload = ingest_proposal("gov_action1a")

    assert payload["proposal_id"] == "gov_action1a"
    assert payload["created"] is True


def test_worker_runs_a_single_process():
    assert celery_app.conf.worker_concurrency == 1
    assert celery_app.conf.worker_prefetch_multiplier == 1


def test_scheduled_ticks_expire_after_one_interval():
    for entry in celery_app.conf.beat_schedule.values():
        assert entry["options"]["expires"] == entry["schedule"]
