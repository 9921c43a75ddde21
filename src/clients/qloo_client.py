"""
Qloo Taste-Graph Client

Thin async adapter over the Qloo HTTP API. Every response is narrowed into
Entity / Tag models here so nothing untyped reaches the scoring pipeline.

Endpoints used:
    GET /search                 free-text entity search
    GET /v2/tags                tag search
    GET /v2/insights            demographically-biased recommendations
    GET /v2/insights/compare    two-group comparison

Usage:
    client = QlooClient(api_key=Config.QLOO_API_KEY)
    entities = await client.search("jazz", limit=5)
    await client.aclose()
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.error_handling import QlooApiError
from src.common.types import Entity, Tag

logger = logging.getLogger(__name__)


# Entity URN filter types accepted by /v2/insights
class EntityURN:
    ARTIST = "urn:entity:artist"
    BRAND = "urn:entity:brand"
    MOVIE = "urn:entity:movie"
    PLACE = "urn:entity:place"
    SHOW = "urn:entity:show"
    BOOK = "urn:entity:book"
    PODCAST = "urn:entity:podcast"
    PERSON = "urn:entity:person"


@dataclass
class InsightSignal:
    """Signal block for an insights request (all parts optional)."""
    entity_ids: List[str] = field(default_factory=list)
    tag_ids: List[str] = field(default_factory=list)
    age: Optional[str] = None
    gender: Optional[str] = None
    audiences: List[str] = field(default_factory=list)
    location: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        """Flatten into Qloo dotted query parameters, skipping empty parts."""
        params: Dict[str, Any] = {}
        if self.age:
            params["signal.demographics.age"] = self.age
        if self.gender:
            params["signal.demographics.gender"] = self.gender
        if self.audiences:
            params["signal.demographics.audiences"] = ",".join(self.audiences)
        if self.entity_ids:
            params["signal.interests.entities"] = ",".join(self.entity_ids)
        if self.tag_ids:
            params["signal.interests.tags"] = ",".join(self.tag_ids)
        if self.location:
            params["signal.location"] = self.location
        return params


def _extract_results(payload: Any, key: str) -> List[Any]:
    """
    Normalize Qloo response envelopes into a plain list.

    Supports:
      - {"results": [...]}
      - {"results": {"entities": [...]}} / {"results": {"tags": [...]}}
      - {"data": [...]}
      - bare lists
    """
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    results = payload.get("results", payload.get("data"))
    if isinstance(results, dict):
        results = results.get(key) or results.get("entities") or []
    return results if isinstance(results, list) else []


def _parse_items(items: List[Any], model) -> List[Any]:
    """Validate each raw item, dropping the ones that do not fit the schema."""
    parsed = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping malformed Qloo item: {e}")
    return parsed


class QlooClient:
    """
    Async Qloo API client.

    Transport-level failures are retried once with exponential backoff; any
    remaining failure is raised as QlooApiError for callers to absorb.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else Config.QLOO_API_KEY
        self.base_url = base_url or Config.QLOO_BASE_URL
        self.timeout = timeout if timeout is not None else Config.HTTP_TIMEOUT_SECONDS
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "Content-Type": "application/json",
                "X-Api-Key": self.api_key,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(min=1, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _send(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        return await self._client.get(path, params=params)

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        """GET a Qloo endpoint and return decoded JSON."""
        try:
            response = await self._send(path, params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"Qloo API error - Status: {status} - {path} params={params}")
            raise QlooApiError(f"Qloo {path} returned {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.warning(f"Qloo API network error - {path}: {e}")
            raise QlooApiError(f"Qloo {path} network error: {e}") from e
        except ValueError as e:
            raise QlooApiError(f"Qloo {path} returned invalid JSON") from e

    async def search(
        self,
        query: str,
        types: Optional[List[str]] = None,
        limit: int = 5,
    ) -> List[Entity]:
        """Free-text entity search."""
        params: Dict[str, Any] = {"query": query, "take": limit}
        if types:
            params["types"] = ",".join(types)
        payload = await self._get("/search", params)
        return _parse_items(_extract_results(payload, "entities"), Entity)

    async def search_tags(self, query: str, take: int = 5) -> List[Tag]:
        """Search tags by keyword."""
        params = {"filter.query": query, "take": take}
        payload = await self._get("/v2/tags", params)
        return _parse_items(_extract_results(payload, "tags"), Tag)

    async def compare_groups(
        self,
        ids_a: List[str],
        ids_b: List[str],
        take: Optional[int] = None,
        filter_type: Optional[str] = None,
    ) -> List[Entity]:
        """Compare two groups of entity ids and return what they share."""
        params: Dict[str, Any] = {
            "a.signal.interests.entities": ",".join(ids_a),
            "b.signal.interests.entities": ",".join(ids_b),
        }
        if filter_type:
            params["filter.type"] = filter_type
        if take:
            params["take"] = take
        payload = await self._get("/v2/insights/compare", params)
        return _parse_items(_extract_results(payload, "entities"), Entity)

    async def get_insights(
        self,
        filter_type: str,
        signal: InsightSignal,
        take: int = 10,
        explainability: bool = True,
    ) -> List[Entity]:
        """Fetch recommendations for a signal, each carrying an affinity value."""
        params: Dict[str, Any] = {"filter.type": filter_type, "take": take}
        params.update(signal.to_params())
        if explainability:
            params["feature.explainability"] = "true"
        payload = await self._get("/v2/insights", params)
        return _parse_items(_extract_results(payload, "entities"), Entity)
