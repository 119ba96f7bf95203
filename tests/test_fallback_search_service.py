# tests/test_fallback_search_service.py

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront_search.application.fallback_search_service import FallbackSearchService
from storefront_search.application.ttl_cache import TTLCache
from storefront_search.domain.interfaces import CatalogueUnavailableError


PRODUCTS = [
    {"id": 1, "name": "Nitrile Gloves", "slug": "nitrile-gloves", "sku": "GLV-200"},
    {"id": 2, "name": "Glove Dispenser", "slug": "glove-dispenser", "sku": "DSP-9"},
]
BRANDS = [{"id": 20, "name": "Gloveco", "slug": "gloveco"}]
TAGS = [{"id": 30, "name": "Gloves", "slug": "gloves"}]
CATEGORIES = [{"id": 10, "name": "Hand Protection", "slug": "gloves-ppe"}]


def _make_catalogue(categories_error: Exception = None) -> MagicMock:
    catalogue = MagicMock()
    catalogue.search_products = AsyncMock(return_value=PRODUCTS)
    if categories_error is not None:
        catalogue.search_categories = AsyncMock(side_effect=categories_error)
    else:
        catalogue.search_categories = AsyncMock(return_value=CATEGORIES)
    catalogue.search_brands = AsyncMock(return_value=BRANDS)
    catalogue.search_tags = AsyncMock(return_value=TAGS)
    return catalogue


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ── Tests ─────────────────────────────────────────────────────────────────────

def test_groups_results_from_all_lookups():
    service = FallbackSearchService(_make_catalogue())

    grouped = asyncio.run(service.search("gloves"))

    assert {item.id for item in grouped.products} == {1, 2}
    assert [item.id for item in grouped.categories] == [10]
    assert [item.id for item in grouped.brands] == [20]
    assert [item.id for item in grouped.tags] == [30]
    assert grouped.skus == []


def test_failed_lookup_yields_empty_group_only():
    service = FallbackSearchService(_make_catalogue(categories_error=CatalogueUnavailableError("HTTP 500")))

    grouped = asyncio.run(service.search("gloves"))

    assert grouped.categories == []
    assert grouped.products
    assert grouped.brands
    assert grouped.tags


def test_every_lookup_failing_returns_empty_groups():
    catalogue = MagicMock()
    for name in ("search_products", "search_categories", "search_brands", "search_tags"):
        setattr(catalogue, name, AsyncMock(side_effect=RuntimeError("offline")))
    service = FallbackSearchService(catalogue)

    grouped = asyncio.run(service.search("gloves"))

    assert grouped.is_empty()


def test_sku_query_promotes_product_to_skus():
    catalogue = _make_catalogue()
    service = FallbackSearchService(catalogue)

    grouped = asyncio.run(service.search("GLV-200"))

    assert [item.sku for item in grouped.skus] == ["GLV-200"]
    assert all(item.sku != "GLV-200" for item in grouped.products)
    catalogue.search_products.assert_awaited_once_with("GLV-200", 20)


def test_short_query_skips_catalogue():
    catalogue = _make_catalogue()
    service = FallbackSearchService(catalogue)

    grouped = asyncio.run(service.search(" g "))

    assert grouped.is_empty()
    catalogue.search_products.assert_not_awaited()


def test_repeat_queries_are_served_from_cache_until_expiry():
    catalogue = _make_catalogue()
    clock = _FakeClock()
    service = FallbackSearchService(catalogue, cache_ttl_seconds=60, clock=clock)

    async def scenario():
        await service.search("Gloves")
        await service.search("  gloves ")
        clock.now = 61.0
        await service.search("gloves")

    asyncio.run(scenario())

    assert catalogue.search_products.await_count == 2


def test_cache_key_is_normalized():
    assert FallbackSearchService.cache_key("  GLV-200 ") == "search:glv-200"


# ── TTL cache ─────────────────────────────────────────────────────────────────

def test_ttl_cache_evicts_oldest_entry():
    cache = TTLCache(60, max_entries=2, clock=_FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_ttl_cache_rejects_negative_ttl():
    with pytest.raises(ValueError, match="ttl_seconds"):
        TTLCache(-1)
