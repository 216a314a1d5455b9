"""
Async HTTP client for the Koios ledger index.

Every call goes through a RetryExecutor; list endpoints are paged with fixed
``limit``/``offset`` windows until a short page comes back.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from govtrack.core.config import settings
from govtrack.core.errors import PermanentClientError, RateLimitedError, TransientNetworkError
from govtrack.db.models.vote import VoterType
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
from govtrack.services.koios.retry import RetryExecutor, parse_retry_after

logger = logging.getLogger(__name__)


class KoiosClient:
    """
    Client for the subset of the Koios API the ingestion core needs.

    Provides methods to:
    - List governance proposals and votes
    - Read a proposal's voting summary
    - Read DRep / pool voting-power snapshots and info records
    - Read DRep certificate updates and the committee composition
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        batch_size: Optional[int] = None,
        executor: Optional[RetryExecutor] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Koios client.

        Args:
            base_url: API root (default KOIOS_BASE_URL)
            api_key: Optional bearer token (default KOIOS_API_KEY)
            timeout: Request timeout in seconds (default KOIOS_TIMEOUT)
            page_size: Rows per page for list endpoints (default KOIOS_PAGE_SIZE)
            batch_size: Max ids per POST to the info endpoints (default KOIOS_INFO_BATCH_SIZE)
            executor: Retry policy (default built from the KOIOS_RETRY_* settings)
            http_client: Pre-built httpx client, mainly for tests
        """
        self.base_url = (base_url or settings.KOIOS_BASE_URL).rstrip("/")
        self.page_size = page_size or settings.KOIOS_PAGE_SIZE
        self.batch_size = batch_size or settings.KOIOS_INFO_BATCH_SIZE
        self.executor = executor or RetryExecutor(
            max_retries=settings.KOIOS_MAX_RETRIES,
            base_delay=settings.KOIOS_RETRY_BASE_DELAY,
            max_delay=settings.KOIOS_RETRY_MAX_DELAY,
        )
        api_key = api_key if api_key is not None else settings.KOIOS_API_KEY
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.KOIOS_TIMEOUT,
            headers=headers,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "KoiosClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _handle_response(self, response: httpx.Response) -> Any:
        """
        Map an HTTP response to parsed JSON or to the error taxonomy.

        Raises:
            RateLimitedError: On 429
            TransientNetworkError: On 5xx
            PermanentClientError: On any other 4xx
        """
        status = response.status_code
        if status == 429:
            raise RateLimitedError(
                "Rate limited by Koios",
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status >= 500:
            raise TransientNetworkError(f"Koios server error {status}", status_code=status)
        if status >= 400:
            try:
                data = response.json()
            except ValueError:
                data = {"raw": response.text}
            message = data.get("message", "Unknown error") if isinstance(data, dict) else str(data)
            raise PermanentClientError(message, status, data)
        if status == 204 or not response.content:
            return []
        return response.json()

    async def _request_once(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.request(method, url, params=params, json=json)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise TransientNetworkError(f"{method} {path} failed: {e}") from e
        return self._handle_response(response)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self.executor.run(lambda: self._request_once(method, path, params=params, json=json))

    async def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            page_params = dict(params or {})
            page_params["limit"] = self.page_size
            page_params["offset"] = offset
            page = await self._request("GET", path, params=page_params)
            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        logger.debug(f"[Koios] {path} returned {len(rows)} rows")
        return rows

    async def get_current_epoch(self) -> int:
        data = await self._request("GET", "/tip")
        if not data or data[0].get("epoch_no") is None:
            raise TransientNetworkError("Koios /tip returned no epoch")
        return int(data[0]["epoch_no"])

    async def list_proposals(self) -> List[KoiosProposal]:
        rows = await self._paginate("/proposal_list")
        return [KoiosProposal.model_validate(row) for row in rows]

    async def list_votes(
        self,
        proposal_id: Optional[str] = None,
        min_epoch: Optional[int] = None,
    ) -> List[KoiosVote]:
        """
        List votes, optionally server-filtered.

        Args:
            proposal_id: Only votes on this governance action
            min_epoch: Only votes cast in this epoch or later

        Returns:
            Votes in block-time order
        """
        params: Dict[str, Any] = {"order": "block_time.asc"}
        if proposal_id:
            params["proposal_id"] = f"eq.{proposal_id}"
        if min_epoch is not None:
            params["epoch_no"] = f"gte.{min_epoch}"
        rows = await self._paginate("/vote_list", params)
        return [KoiosVote.model_validate(row) for row in rows]

    async def get_proposal_voting_summary(self, proposal_id: str) -> Optional[KoiosVotingSummary]:
        """Latest voting summary row for a proposal, or None when the index has none."""
        rows = await self._request("GET", "/proposal_voting_summary", params={"_proposal_id": proposal_id})
        if not rows:
            return None
        summaries = [KoiosVotingSummary.model_validate(row) for row in rows]
        return max(summaries, key=lambda s: s.epoch_no if s.epoch_no is not None else -1)

    async def get_voter_power_history(
        self,
        voter_class: VoterType,
        voter_id: Optional[str] = None,
        epoch: Optional[int] = None,
    ) -> List[VoterPower]:
        """
        Voting-power snapshots for DReps or pools.

        Args:
            voter_class: DREP or SPO (committee members carry no stake)
            voter_id: Restrict to one voter
            epoch: Restrict to one epoch

        Returns:
            Rows normalised to (voter_id, epoch_no, amount)
        """
        if voter_class == VoterType.DREP:
            path, id_param, id_field = "/drep_voting_power_history", "_drep_id", "drep_id"
        elif voter_class == VoterType.SPO:
            path, id_param, id_field = "/pool_voting_power_history", "_pool_bech32", "pool_id_bech32"
        else:
            raise ValueError(f"No voting-power history for voter class {voter_class}")

        params: Dict[str, Any] = {}
        if epoch is not None:
            params["_epoch_no"] = epoch
        if voter_id:
            params[id_param] = voter_id
        rows = await self._paginate(path, params)
        return [
            VoterPower(voter_id=row.get(id_field), epoch_no=row.get("epoch_no"), amount=row.get("amount"))
            for row in rows
            if row.get(id_field)
        ]

    async def get_voter_info(
        self,
        voter_class: VoterType,
        ids: Sequence[str],
    ) -> List[Union[DrepInfo, PoolInfo]]:
        """Info records for DReps or pools, POSTed in batches of at most ``batch_size`` ids."""
        if voter_class == VoterType.DREP:
            path, body_key, model = "/drep_info", "_drep_ids", DrepInfo
        elif voter_class == VoterType.SPO:
            path, body_key, model = "/pool_info", "_pool_bech32_ids", PoolInfo
        else:
            raise ValueError(f"No info endpoint for voter class {voter_class}")

        unique_ids = list(dict.fromkeys(ids))
        results: List[Union[DrepInfo, PoolInfo]] = []
        for start in range(0, len(unique_ids), self.batch_size):
            batch = unique_ids[start:start + self.batch_size]
            rows = await self._request("POST", path, json={body_key: batch})
            results.extend(model.model_validate(row) for row in rows)
        return results

    async def list_drep_updates(self, drep_id: Optional[str] = None) -> List[DrepUpdate]:
        params = {"_drep_id": drep_id} if drep_id else None
        rows = await self._paginate("/drep_updates", params)
        return [DrepUpdate.model_validate(row) for row in rows]

    async def get_committee_info(self) -> Optional[CommitteeInfo]:
        rows = await self._request("GET", "/committee_info")
        if not rows:
            return None
        return CommitteeInfo.model_validate(rows[0])
