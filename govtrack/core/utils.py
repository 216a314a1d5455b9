"""Small ledger helpers shared by the ingestion services."""

from datetime import datetime, timezone
from typing import Optional

from govtrack.core.config import settings
from govtrack.core.constants import EPOCH_LENGTH_SECONDS, SHELLEY_START_EPOCH, SHELLEY_START_TIME


def epoch_for_block_time(block_time: int) -> int:
    """Epoch containing a POSIX block time (mainnet Shelley geometry)."""
    return SHELLEY_START_EPOCH + (block_time - SHELLEY_START_TIME) // EPOCH_LENGTH_SECONDS


def block_time_to_datetime(block_time: Optional[int]) -> Optional[datetime]:
    if block_time is None:
        return None
    return datetime.fromtimestamp(block_time, tz=timezone.utc)


def resolve_document_url(url: Optional[str]) -> Optional[str]:
    """Translate ``ipfs://`` anchors to the configured HTTP gateway."""
    if not url:
        return None
    url = url.strip()
    if url.startswith("ipfs://"):
        gateway = settings.IPFS_GATEWAY_URL
        if not gateway.endswith("/"):
            gateway += "/"
        return gateway + url[len("ipfs://"):].lstrip("/")
    return url


def epoch_start_datetime(epoch: int) -> datetime:
    """UTC start of an epoch (mainnet Shelley geometry)."""
    return datetime.fromtimestamp(
        SHELLEY_START_TIME + (epoch - SHELLEY_START_EPOCH) * EPOCH_LENGTH_SECONDS, tz=timezone.utc
    )
