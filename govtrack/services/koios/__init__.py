from govtrack.services.koios.client import KoiosClient
from govtrack.services.koios.retry import RetryExecutor

__all__ = ["KoiosClient", "RetryExecutor"]
