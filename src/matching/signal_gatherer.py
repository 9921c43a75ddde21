"""
Signal Gatherer

Builds a SignalBag (matched entities + tags) for one profile by issuing a
bounded number of taste-graph searches derived from its attributes. A single
failed search is logged and skipped; gathering itself never raises.
"""

import logging
from typing import Dict, List

from src.clients.qloo_client import QlooClient
from src.common.error_handling import fallback_on_error
from src.common.types import Entity, Profile, SignalBag, Tag

logger = logging.getLogger(__name__)

MAX_QUERIES = 3
MAX_KEYWORDS = 3
SEARCH_LIMIT = 5
TAG_SEARCH_LIMIT = 5

# Heritage substring -> related keywords
HERITAGE_KEYWORDS: Dict[str, List[str]] = {
    "Asian": ["asian", "cuisine", "culture"],
    "Indigenous": ["indigenous", "native", "culture"],
}


def build_search_queries(profile: Profile) -> List[str]:
    """Name, role, department, location, then heritage terms; blanks skipped."""
    queries = [profile.name, profile.role, profile.department]
    if profile.location:
        queries.append(profile.location)
    queries.extend(profile.cultural_heritage)
    return [q for q in queries if q and q.strip()]


def extract_interest_keywords(profile: Profile) -> List[str]:
    """
    Derive tag-search keywords from a profile.

    Order: role words, department, heritage terms (each with its static
    expansion), first comma segment of location. Deduplicated, first wins.
    """
    keywords: List[str] = []

    if profile.role:
        keywords.extend(profile.role.lower().split())

    if profile.department:
        keywords.append(profile.department.lower())

    for heritage in profile.cultural_heritage:
        keywords.append(heritage.lower())
        for marker, related in HERITAGE_KEYWORDS.items():
            if marker in heritage:
                keywords.extend(related)

    if profile.location:
        keywords.append(profile.location.split(",")[0].lower())

    return [kw for kw in dict.fromkeys(keywords) if kw]


class SignalGatherer:
    """Collects entity and tag signals for a profile."""

    def __init__(self, qloo: QlooClient):
        self.qloo = qloo

    @fallback_on_error("Qloo entity search", fallback_value=list)
    async def _search_entities(self, query: str) -> List[Entity]:
        return await self.qloo.search(query, limit=SEARCH_LIMIT)

    @fallback_on_error("Qloo tag search", fallback_value=list)
    async def _search_tags(self, keyword: str) -> List[Tag]:
        return await self.qloo.search_tags(keyword, take=TAG_SEARCH_LIMIT)

    async def gather(self, profile: Profile) -> SignalBag:
        entities: List[Entity] = []
        for query in build_search_queries(profile)[:MAX_QUERIES]:
            entities.extend(await self._search_entities(query))

        tags: List[Tag] = []
        for keyword in extract_interest_keywords(profile)[:MAX_KEYWORDS]:
            tags.extend(await self._search_tags(keyword))

        logger.debug(f"Gathered {len(entities)} entities, {len(tags)} tags for {profile.name}")
        return SignalBag(entities=entities, tags=tags)
