# storefront_search/application/fallback_search_service.py

import asyncio
import time
from typing import Callable, List

from storefront_search.application.entity_normalizer import normalize_records
from storefront_search.application.ttl_cache import TTLCache
from storefront_search.domain.interfaces import CatalogueSourcePort
from storefront_search.domain.models import GroupedResults, SearchIndexItem
from storefront_search.domain.ranking import group_results, rank_items


MIN_QUERY_LENGTH = 2
DEFAULT_CACHE_TTL_SECONDS = 60

PRODUCT_PAGE_SIZE = 20
TAXONOMY_PAGE_SIZE = 10
RANK_LIMIT = 50


class FallbackSearchService:
    """
    Answers a query straight from the catalogue when no cached index is ready.

    Products, categories, brands and tags are looked up concurrently and
    each lookup fails on its own: a failed lookup contributes an empty
    group, never a failed response. Results go through the same ranking
    as the cached index, then are cached per normalized query for a short
    window.
    """

    def __init__(
        self,
        catalogue: CatalogueSourcePort,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._catalogue = catalogue
        self._cache: TTLCache[GroupedResults] = TTLCache(cache_ttl_seconds, clock=clock)

    @staticmethod
    def cache_key(query: str) -> str:
        return f"search:{query.strip().lower()}"

    async def search(self, query: str) -> GroupedResults:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return GroupedResults()

        key = self.cache_key(query)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        candidates = await self._fetch_candidates(query)
        ranked = rank_items(candidates, query, limit=RANK_LIMIT)
        grouped = group_results(ranked, query)

        self._cache.set(key, grouped)
        return grouped

    async def _fetch_candidates(self, query: str) -> List[SearchIndexItem]:
        lookups = {
            "products":   (self._catalogue.search_products(query, PRODUCT_PAGE_SIZE), "product"),
            "categories": (self._catalogue.search_categories(query, TAXONOMY_PAGE_SIZE), "category"),
            "brands":     (self._catalogue.search_brands(query, TAXONOMY_PAGE_SIZE), "brand"),
            "tags":       (self._catalogue.search_tags(query, TAXONOMY_PAGE_SIZE), "tag"),
        }

        outcomes = await asyncio.gather(
            *(call for call, _ in lookups.values()),
            return_exceptions=True,
        )

        candidates: List[SearchIndexItem] = []
        for (group, (_, entity_type)), outcome in zip(lookups.items(), outcomes):
            if isinstance(outcome, BaseException):
                print(f"[FallbackSearch] ⚠ {group} lookup failed for '{query}': {outcome}")
                continue
            candidates.extend(normalize_records(outcome, entity_type))
        return candidates
