"""Per-run state shared by the ingestion services.

One ``SyncContext`` lives for exactly one scheduler pass or one on-demand
sync. It memoises the current epoch and the expensive catalog fetches so a
pass over many proposals hits the index once per catalog.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from govtrack.db.models.vote import VoterType
from govtrack.schemas.koios import CommitteeInfo, DrepUpdate, KoiosVote
from govtrack.services.koios.client import KoiosClient

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    current_epoch: Optional[int] = None
    vote_cache: Optional[List[KoiosVote]] = None
    power_snapshots: Dict[Tuple[VoterType, int], Dict[str, int]] = field(default_factory=dict)
    drep_updates: Optional[List[DrepUpdate]] = None
    committee: Optional[CommitteeInfo] = None
    committee_loaded: bool = False

    async def get_current_epoch(self, client: KoiosClient) -> int:
        if self.current_epoch is None:
            self.current_epoch = await client.get_current_epoch()
        return self.current_epoch

    async def get_all_votes(self, client: KoiosClient, min_epoch: Optional[int] = None) -> List[KoiosVote]:
        """The vote catalog, fetched once per run.

        Fetch failures propagate; a half-filled cache is never stored.
        """
        if self.vote_cache is None:
            self.vote_cache = await client.list_votes(min_epoch=min_epoch)
            logger.info(f"Cached {len(self.vote_cache)} votes for this sync run")
        return self.vote_cache

    async def get_power_snapshot(self, client: KoiosClient, voter_class: VoterType, epoch: int) -> Dict[str, int]:
        """voter id -> lovelace for a whole epoch. Failures degrade to an empty snapshot."""
        key = (voter_class, epoch)
        if key not in self.power_snapshots:
            try:
                rows = await client.get_voter_power_history(voter_class, epoch=epoch)
            except Exception as e:
                logger.warning(f"Could not load {voter_class.value} power for epoch {epoch}: {e}")
                return {}
            self.power_snapshots[key] = {row.voter_id: row.amount for row in rows}
        return self.power_snapshots[key]

    async def get_drep_updates(self, client: KoiosClient) -> List[DrepUpdate]:
        if self.drep_updates is None:
            self.drep_updates = await client.list_drep_updates()
        return self.drep_updates

    async def get_committee(self, client: KoiosClient) -> Optional[CommitteeInfo]:
        if not self.committee_loaded:
            self.committee = await client.get_committee_info()
            self.committee_loaded = True
        return self.committee
