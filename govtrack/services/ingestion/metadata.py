"""Off-chain metadata documents (CIP-108 proposal anchors, pool metadata)."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from govtrack.core.config import settings
from govtrack.core.constants import DEFAULT_PROPOSAL_TITLE
from govtrack.core.errors import MetadataUnavailable
from govtrack.core.utils import resolve_document_url

logger = logging.getLogger(__name__)


@dataclass
class ProposalMetadata:
    title: str = DEFAULT_PROPOSAL_TITLE
    description: Optional[str] = None
    rationale: Optional[str] = None
    document: Optional[Dict[str, Any]] = None


def text_value(value: Any) -> Optional[str]:
    # JSON-LD documents wrap strings as {"@value": "..."}
    if isinstance(value, dict):
        value = value.get("@value")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _body(document: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    body = (document or {}).get("body")
    return body if isinstance(body, dict) else {}


class MetadataFetcher:
    """Fetches anchor documents over HTTP with a bounded timeout."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.METADATA_FETCH_TIMEOUT,
            follow_redirects=True,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def fetch_json(self, url: Optional[str]) -> Dict[str, Any]:
        """Download and parse a JSON document.

        Raises:
            MetadataUnavailable: For a missing url, a network or HTTP error, or a non-object body
        """
        resolved = resolve_document_url(url)
        if not resolved:
            raise MetadataUnavailable("No metadata url")
        try:
            response = await self.client.get(resolved)
            response.raise_for_status()
            document = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MetadataUnavailable(f"Could not fetch {resolved}: {e}") from e
        if not isinstance(document, dict):
            raise MetadataUnavailable(f"Metadata at {resolved} is not a JSON object")
        return document

    async def proposal_metadata(
        self,
        meta_json: Optional[Dict[str, Any]],
        meta_url: Optional[str],
    ) -> ProposalMetadata:
        """Title, abstract and rationale of a proposal.

        Inline metadata wins; otherwise the anchor url is fetched. Nothing
        here raises: an unreadable document yields the default title.
        """
        document = meta_json if _body(meta_json) else None
        if document is None:
            try:
                document = await self.fetch_json(meta_url)
            except MetadataUnavailable as e:
                logger.info(f"Proposal metadata unavailable: {e}")
                return ProposalMetadata()

        body = _body(document)
        return ProposalMetadata(
            title=text_value(body.get("title")) or DEFAULT_PROPOSAL_TITLE,
            description=text_value(body.get("abstract")),
            rationale=text_value(body.get("rationale")),
            document=document,
        )
