"""Net Change Limit: treasury withdrawals ratified or enacted per calendar year."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Tuple

from govtrack.core.utils import epoch_start_datetime
from govtrack.db.store import GovernanceStore
from govtrack.schemas.koios import KoiosProposal
from govtrack.schemas.sync import NetChangeLimitResult
from govtrack.services.ingestion.context import SyncContext
from govtrack.services.koios.client import KoiosClient

logger = logging.getLogger(__name__)

LOVELACE_PER_ADA = 1_000_000


def withdrawal_amount(withdrawal: Any) -> int:
    """Lovelace requested by a ``withdrawal`` entry, a single object or a list of them."""
    if not withdrawal:
        return 0
    entries = withdrawal if isinstance(withdrawal, list) else [withdrawal]
    total = 0
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("amount") in (None, ""):
            continue
        try:
            total += int(entry["amount"])
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed withdrawal amount {entry['amount']!r}")
    return total


def approval_epoch(proposal: KoiosProposal) -> Optional[int]:
    """Epoch the withdrawal was enacted in, or ratified in when not enacted yet."""
    if proposal.enacted_epoch is not None:
        return proposal.enacted_epoch
    return proposal.ratified_epoch


def treasury_withdrawals_for_year(proposals: Iterable[KoiosProposal], year: int) -> Tuple[int, int]:
    """Sum the withdrawals approved in ``year``.

    Returns:
        (total lovelace, number of proposals included)
    """
    total = 0
    count = 0
    for proposal in proposals:
        if proposal.proposal_type != "TreasuryWithdrawals":
            continue
        epoch = approval_epoch(proposal)
        if epoch is None or epoch_start_datetime(epoch).year != year:
            continue
        total += withdrawal_amount(proposal.withdrawal)
        count += 1
    return total, count


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NetChangeLimitService:
    """Keeps the stored yearly withdrawal total in step with the ledger index."""

    def __init__(
        self,
        store: GovernanceStore,
        client: KoiosClient,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.client = client
        self.clock = clock

    async def update(
        self,
        context: Optional[SyncContext] = None,
        proposals: Optional[Iterable[KoiosProposal]] = None,
    ) -> NetChangeLimitResult:
        """Recompute the current year's total and store it.

        A year seen for the first time gets a row with ``limit`` 0, to be set
        by an administrator. An existing ``limit`` is never touched.

        Args:
            context: Per-run context for the current epoch
            proposals: Proposal list already fetched by the caller

        Returns:
            The year, epoch, stored total and number of proposals counted
        """
        context = context or SyncContext()
        year = self.clock().year
        current_epoch = await context.get_current_epoch(self.client)
        if proposals is None:
            proposals = await self.client.list_proposals()

        total, count = treasury_withdrawals_for_year(proposals, year)
        logger.info(
            f"[NCL] {count} treasury withdrawals approved in {year}: "
            f"{total / LOVELACE_PER_ADA:,.0f} ADA ({total} lovelace)"
        )

        existing = await self.store.get_net_change_limit(year)
        previous = existing.current if existing is not None else None
        row, created = await self.store.upsert_net_change_limit(year, current_epoch, total)
        if created:
            logger.info(f"[NCL] Created record for {year} with limit 0; the limit must be set manually")

        return NetChangeLimitResult(
            year=year,
            epoch=current_epoch,
            current_value=row.current,
            proposals_included=count,
            updated=created or previous != total,
        )
