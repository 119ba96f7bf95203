# tests/test_api.py

import asyncio
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from api import create_app
from storefront_search.application.fallback_search_service import FallbackSearchService
from storefront_search.application.search_index_service import SearchIndexService
from storefront_search.domain.interfaces import CatalogueUnavailableError
from storefront_search.domain.models import CatalogueBundle
from storefront_search.infrastructure.memory_store import InMemoryIndexStore


def _bundle() -> CatalogueBundle:
    return CatalogueBundle(
        products=[
            {"id": 1, "name": "Nitrile Gloves", "slug": "nitrile-gloves", "sku": "GLV-200", "price": "9.99"},
            {"id": 2, "name": "Face Mask", "slug": "face-mask", "sku": "MSK-1"},
        ],
        categories=[{"id": 10, "name": "Gloves", "slug": "gloves"}],
        brands=[{"id": 20, "name": "Acme", "slug": "acme"}],
        tags=[{"id": 30, "name": "Medical", "slug": "medical"}],
        timestamp=1_700_000_000_000,
        total_products=2,
    )


def _make_catalogue(bundle_error: Exception = None, categories_error: Exception = None) -> MagicMock:
    bundle = _bundle()
    catalogue = MagicMock()
    if bundle_error is not None:
        catalogue.fetch_index_bundle = AsyncMock(side_effect=bundle_error)
    else:
        catalogue.fetch_index_bundle = AsyncMock(return_value=bundle)
    catalogue.search_products = AsyncMock(return_value=bundle.products)
    if categories_error is not None:
        catalogue.search_categories = AsyncMock(side_effect=categories_error)
    else:
        catalogue.search_categories = AsyncMock(return_value=bundle.categories)
    catalogue.search_brands = AsyncMock(return_value=bundle.brands)
    catalogue.search_tags = AsyncMock(return_value=bundle.tags)
    return catalogue


def _client(catalogue: MagicMock, ready: bool = True) -> TestClient:
    index_service = SearchIndexService(catalogue, InMemoryIndexStore(), clock=lambda: 1_700_000_000_000)
    if ready:
        asyncio.run(index_service.initialize())
    app = create_app(
        catalogue=catalogue,
        index_service=index_service,
        fallback_service=FallbackSearchService(catalogue),
    )
    return TestClient(app)


# ── Live search ───────────────────────────────────────────────────────────────

def test_search_returns_grouped_results():
    with _client(_make_catalogue()) as client:
        response = client.get("/search", params={"q": "gloves"})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"products", "categories", "brands", "tags", "skus"}
    assert [item["id"] for item in body["categories"]] == [10]


def test_search_survives_failed_categories_lookup():
    catalogue = _make_catalogue(categories_error=CatalogueUnavailableError("HTTP 500"))

    with _client(catalogue) as client:
        response = client.get("/search", params={"q": "gloves"})

    assert response.status_code == 200
    body = response.json()
    assert body["categories"] == []
    assert body["products"]
    assert body["brands"]
    assert body["tags"]


def test_search_with_short_query_returns_empty_groups():
    with _client(_make_catalogue()) as client:
        body = client.get("/search", params={"q": "g"}).json()

    assert all(group == [] for group in body.values())


def test_search_items_omit_index_internals():
    with _client(_make_catalogue()) as client:
        body = client.get("/search", params={"q": "GLV-200"}).json()

    item = body["skus"][0]
    assert item["sku"] == "GLV-200"
    assert "tokens" not in item
    assert "searchable_text" not in item


# ── Index-backed endpoints ────────────────────────────────────────────────────

def test_suggest_uses_index_when_ready():
    with _client(_make_catalogue()) as client:
        body = client.get("/search/suggest", params={"q": "GLV-200"}).json()

    assert body["source"] == "index"
    assert [item["sku"] for item in body["skus"]] == ["GLV-200"]


def test_suggest_falls_back_to_live_search():
    catalogue = _make_catalogue(bundle_error=CatalogueUnavailableError("offline"))

    with _client(catalogue, ready=False) as client:
        body = client.get("/search/suggest", params={"q": "GLV-200"}).json()

    assert body["source"] == "live"
    assert [item["sku"] for item in body["skus"]] == ["GLV-200"]


def test_suggest_rejects_invalid_limit():
    with _client(_make_catalogue()) as client:
        response = client.get("/search/suggest", params={"q": "gloves", "limit": 0})

    assert response.status_code == 422


def test_count_reports_products_only():
    with _client(_make_catalogue()) as client:
        assert client.get("/search/count").json() == {"count": 2}


def test_status_reports_index_state():
    with _client(_make_catalogue()) as client:
        body = client.get("/status").json()

    assert body["is_ready"] is True
    assert body["items_indexed"] == 5
    assert body["total_products"] == 2
    assert body["last_sync_time"] == 1_700_000_000_000


def test_index_bundle_is_cached():
    catalogue = _make_catalogue()

    with _client(catalogue) as client:
        first = client.get("/search/index").json()
        second = client.get("/search/index").json()

    assert first == second
    assert first["totalProducts"] == 2
    # One fetch for the initial sync, one for the first bundle request.
    assert catalogue.fetch_index_bundle.await_count == 2


def test_index_bundle_failure_returns_empty_groups():
    catalogue = _make_catalogue(bundle_error=CatalogueUnavailableError("offline"))

    with _client(catalogue, ready=False) as client:
        response = client.get("/search/index")

    assert response.status_code == 200
    body = response.json()
    assert body["products"] == []
    assert body["totalProducts"] == 0


def test_reindex_runs_full_sync():
    catalogue = _make_catalogue()

    with _client(catalogue) as client:
        body = client.post("/reindex").json()

    assert body["synced"] is True
    assert body["is_ready"] is True
    assert body["total_products"] == 2
