"""Lazy creation and enrichment of DRep, SPO and committee records."""

import logging
from typing import Any, Dict, List, Optional

from govtrack.db.models.vote import VoterType
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import DrepUpdate
from govtrack.schemas.sync import EnsureVoterResult, VoterPowerSyncResult
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.ingestion.metadata import MetadataFetcher, text_value
from govtrack.services.koios.client import KoiosClient

logger = logging.getLogger(__name__)

VOTER_ROLES = {
    "DRep": VoterType.DREP,
    "SPO": VoterType.SPO,
    "ConstitutionalCommittee": VoterType.CC,
}


def map_voter_role(role: str) -> VoterType:
    try:
        return VOTER_ROLES[role]
    except KeyError:
        raise ValueError(f"Unknown voter role: {role}") from None


def _latest_with_metadata(updates: List[DrepUpdate], drep_id: str) -> Optional[DrepUpdate]:
    candidates = [u for u in updates if u.drep_id == drep_id and u.metadata_body()]
    if not candidates:
        return None
    return max(candidates, key=lambda u: u.block_time or 0)


class VoterRegistry:
    """Resolves voters referenced by votes, creating them on first sight."""

    def __init__(self, store: GovernanceStore, client: KoiosClient, metadata_fetcher: MetadataFetcher):
        self.store = store
        self.client = client
        self.metadata_fetcher = metadata_fetcher

    async def ensure_exists(
        self,
        voter_class: VoterType,
        voter_id: str,
        context: SyncContext,
        member_name: Optional[str] = None,
    ) -> EnsureVoterResult:
        """Make sure a voter row exists.

        Existing voters are returned as they are; the only refresh is a
        committee member's name taken from a newer vote rationale. New voters
        get a best-effort pass over metadata and current power.
        """
        voter = await self.store.get_voter(voter_class, voter_id)
        if voter is not None:
            if voter_class == VoterType.CC and member_name and voter.member_name != member_name:
                await self.store.update_voter(voter, {"member_name": member_name})
                return EnsureVoterResult(voter_id=voter_id, updated=True)
            return EnsureVoterResult(voter_id=voter_id)

        voter, created = await self.store.create_voter(voter_class, voter_id)
        if not created:
            return EnsureVoterResult(voter_id=voter_id)

        fields = await self._describe(voter_class, voter_id, context)
        if member_name:
            fields["member_name"] = member_name
        if fields:
            await self.store.update_voter(voter, fields)
        logger.info(f"Registered {voter_class.value} {voter_id}")
        return EnsureVoterResult(voter_id=voter_id, created=True)

    async def voting_power(self, voter_class: VoterType, voter_id: str) -> Optional[int]:
        """Stored power of a voter. Committee members vote one seat each, so None."""
        if voter_class == VoterType.CC:
            return None
        voter = await self.store.get_voter(voter_class, voter_id)
        return voter.voting_power if voter is not None else 0

    async def _describe(self, voter_class: VoterType, voter_id: str, context: SyncContext) -> Dict[str, Any]:
        if voter_class == VoterType.DREP:
            fields = await self._drep_metadata(voter_id, context)
        elif voter_class == VoterType.SPO:
            fields = await self._pool_metadata(voter_id)
        else:
            return await self._committee_metadata(voter_id, context)
        fields["voting_power"] = await self._current_power(voter_class, voter_id, context)
        return fields

    async def _current_power(self, voter_class: VoterType, voter_id: str, context: SyncContext) -> int:
        try:
            epoch = await context.get_current_epoch(self.client)
            snapshot = context.power_snapshots.get((voter_class, epoch))
            if snapshot is not None:
                return snapshot.get(voter_id, 0)
            rows = await self.client.get_voter_power_history(voter_class, voter_id=voter_id, epoch=epoch)
        except Exception as e:
            logger.warning(f"Could not load power for {voter_class.value} {voter_id}: {e}")
            return 0
        return rows[0].amount if rows else 0

    async def _drep_metadata(self, drep_id: str, context: SyncContext) -> Dict[str, Any]:
        try:
            if context.drep_updates is not None:
                updates = context.drep_updates
            else:
                updates = await self.client.list_drep_updates(drep_id)
        except Exception as e:
            logger.warning(f"Could not load updates for DRep {drep_id}: {e}")
            return {}

        update = _latest_with_metadata(updates, drep_id)
        if update is None:
            return {}
        body = update.metadata_body()
        image = body.get("image")
        return {
            "name": text_value(body.get("givenName")),
            "payment_address": text_value(body.get("paymentAddress")),
            "icon_url": text_value(image.get("contentUrl")) if isinstance(image, dict) else None,
        }

    async def _pool_metadata(self, pool_id: str) -> Dict[str, Any]:
        try:
            infos = await self.client.get_voter_info(VoterType.SPO, [pool_id])
        except Exception as e:
            logger.warning(f"Could not load info for pool {pool_id}: {e}")
            return {}
        if not infos:
            return {}

        info = infos[0]
        document = info.meta_json
        if not document and info.meta_url:
            try:
                document = await self.metadata_fetcher.fetch_json(info.meta_url)
            except Exception as e:
                logger.info(f"Pool metadata unavailable for {pool_id}: {e}")
        document = document or {}

        fields: Dict[str, Any] = {
            "pool_name": text_value(document.get("name")),
            "ticker": text_value(document.get("ticker")),
        }
        extended_url = text_value(document.get("extended"))
        if extended_url:
            try:
                extended = await self.metadata_fetcher.fetch_json(extended_url)
                extended_info = extended.get("info")
                if isinstance(extended_info, dict):
                    fields["icon_url"] = text_value(extended_info.get("url_png_icon_64x64"))
            except Exception as e:
                logger.info(f"Extended pool metadata unavailable for {pool_id}: {e}")
        return fields

    async def _committee_metadata(self, cc_id: str, context: SyncContext) -> Dict[str, Any]:
        try:
            committee = await context.get_committee(self.client)
        except Exception as e:
            logger.warning(f"Could not load committee info: {e}")
            return {}
        if committee is None:
            return {}
        for member in committee.members:
            if member.cc_hot_id == cc_id:
                return {
                    "hot_credential": member.cc_hot_id,
                    "cold_credential": member.cc_cold_id,
                    "status": member.status,
                }
        return {}

    async def refresh_voting_power(self, epoch: Optional[int] = None) -> VoterPowerSyncResult:
        """Rewrite stored DRep and pool power from an epoch snapshot.

        Per-voter failures are collected in the result; only a failure to
        learn the current epoch propagates.
        """
        context = SyncContext()
        if epoch is None:
            epoch = await context.get_current_epoch(self.client)
        result = VoterPowerSyncResult(epoch=epoch)

        for voter_class in (VoterType.DREP, VoterType.SPO):
            label = voter_class.value.lower()
            result.updated[label] = 0
            try:
                rows = await self.client.get_voter_power_history(voter_class, epoch=epoch)
            except Exception as e:
                logger.error(f"Power snapshot for {label} at epoch {epoch} failed: {e}")
                result.failed += 1
                result.errors.append({"voter_id": f"*{label}", "error": str(e)})
                continue
            snapshot = {row.voter_id: row.amount for row in rows}

            for voter in await self.store.list_voters(voter_class):
                voter_id = voter.drep_id if voter_class == VoterType.DREP else voter.pool_id
                power = snapshot.get(voter_id, 0)
                if voter.voting_power == power:
                    continue
                try:
                    await self.store.update_voter(voter, {"voting_power": power})
                    result.updated[label] += 1
                except Exception as e:
                    logger.error(f"Could not update power of {voter_id}: {e}")
                    result.failed += 1
                    result.errors.append({"voter_id": voter_id, "error": str(e)})

        await self._refresh_drep_activity(result)
        logger.info(f"Voter power refresh for epoch {epoch}: {result.updated}, {result.failed} failures")
        return result

    async def _refresh_drep_activity(self, result: VoterPowerSyncResult) -> None:
        dreps = {drep.drep_id: drep for drep in await self.store.list_voters(VoterType.DREP)}
        if not dreps:
            return
        try:
            infos = await self.client.get_voter_info(VoterType.DREP, list(dreps))
        except Exception as e:
            logger.error(f"DRep info refresh failed: {e}")
            result.failed += 1
            result.errors.append({"voter_id": "*drep_info", "error": str(e)})
            return
        for info in infos:
            drep = dreps.get(info.drep_id)
            if drep is None or drep.active == info.active:
                continue
            try:
                await self.store.update_voter(drep, {"active": info.active})
            except Exception as e:
                logger.error(f"Could not update activity of {info.drep_id}: {e}")
                result.failed += 1
                result.errors.append({"voter_id": info.drep_id, "error": str(e)})
