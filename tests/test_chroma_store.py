# tests/test_chroma_store.py

import asyncio
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from storefront_search.application.entity_normalizer import normalize_product, normalize_taxonomy
from storefront_search.application.search_index_service import SearchIndexService
from storefront_search.domain.models import CatalogueBundle
from storefront_search.infrastructure.chroma_store import (
    SIGNATURE_DIMENSIONS,
    ChromaIndexStore,
    token_signature,
)
from storefront_search.infrastructure.key_value_store import SYNC_TIME_KEY
from storefront_search.infrastructure.resilient_store import open_index_store


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def store(tmp_path) -> ChromaIndexStore:
    """Fresh ChromaIndexStore backed by a temp directory for each test."""
    return ChromaIndexStore(persist_directory=str(tmp_path / "chroma_test"))


def _mixed_items() -> list:
    return [
        normalize_product({
            "id": 1,
            "name": "Nitrile Gloves",
            "slug": "nitrile-gloves",
            "sku": "GLV-200",
            "price": "9.99",
            "on_sale": False,
            "categories": [{"id": 3, "name": "PPE"}],
            "brands": [{"id": 9, "name": "Acme"}],
        }),
        normalize_taxonomy({"id": 3, "name": "PPE", "slug": "ppe"}, "category"),
        normalize_taxonomy({"id": 9, "name": "Acme", "slug": "acme"}, "brand"),
    ]


def _many_tags(n: int) -> list:
    return [normalize_taxonomy({"id": i, "name": f"Tag {i}", "slug": f"tag-{i}"}, "tag") for i in range(n)]


def _catalogue(bundle: CatalogueBundle) -> MagicMock:
    catalogue = MagicMock()
    catalogue.fetch_index_bundle = AsyncMock(return_value=bundle)
    return catalogue


# ── Tests ─────────────────────────────────────────────────────────────────────

def test_empty_store(store):
    assert store.load_all() == []
    assert store.count() == 0


def test_replace_all_round_trips_items(store):
    items = _mixed_items()
    store.replace_all(items)
    assert store.load_all() == items


def test_replace_all_discards_previous_snapshot(store):
    store.replace_all(_many_tags(5))
    store.replace_all(_mixed_items())

    assert [item.key for item in store.load_all()] == ["product_1", "category_3", "brand_9"]
    assert store.count() == 3


def test_replace_all_preserves_order_across_batches(store):
    items = _many_tags(250)
    store.replace_all(items)

    assert store.count() == 250
    assert [item.key for item in store.load_all()] == [item.key for item in items]


def test_data_persists_across_instances(tmp_path):
    path = str(tmp_path / "chroma_persist")
    first = ChromaIndexStore(persist_directory=path)
    first.replace_all(_mixed_items())

    second = ChromaIndexStore(persist_directory=path)

    assert second.load_all() == _mixed_items()


def test_init_fails_when_path_is_a_file(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    with pytest.raises(RuntimeError, match="Failed to initialize ChromaDB"):
        ChromaIndexStore(persist_directory=str(blocker))


# ── Through the index service ─────────────────────────────────────────────────

def test_repeated_product_ids_survive_persist_and_reload(tmp_path):
    products = [{"id": i, "name": f"Glove {i}", "slug": f"glove-{i}"} for i in range(150)]
    products.append({"id": 3, "name": "Glove 3", "slug": "glove-3"})
    bundle = CatalogueBundle(products=products, total_products=len(products))

    first_store = open_index_store(str(tmp_path))
    first = SearchIndexService(_catalogue(bundle), first_store, clock=lambda: 1000)
    asyncio.run(first.initialize())
    before = [item.key for item in first.search("glove", limit=200)]

    offline = _catalogue(CatalogueBundle())
    second_store = open_index_store(str(tmp_path))
    second = SearchIndexService(offline, second_store, clock=lambda: 1000)
    asyncio.run(second.initialize())
    after = [item.key for item in second.search("glove", limit=200)]

    assert first_store.has_primary is True
    assert second_store.has_primary is True
    assert len(before) == 150
    assert len(set(before)) == 150
    assert second.served_from_cache is True
    offline.fetch_index_bundle.assert_not_called()
    assert after == before


def test_sync_time_is_written_to_string_store(tmp_path):
    store = open_index_store(str(tmp_path))
    service = SearchIndexService(_catalogue(CatalogueBundle(products=_mixed_products())), store, clock=lambda: 1_700_000_000_000)

    asyncio.run(service.initialize())

    assert store.has_primary is True
    assert (tmp_path / "kv" / f"{SYNC_TIME_KEY}.txt").read_text() == "1700000000000"
    assert store.get_last_sync_time() == 1_700_000_000_000
    assert [item.key for item in store.load_all()] == ["product_1"]


def _mixed_products() -> list:
    return [{"id": 1, "name": "Nitrile Gloves", "slug": "nitrile-gloves", "sku": "GLV-200"}]


# ── Token signature ───────────────────────────────────────────────────────────

def test_token_signature_is_deterministic_unit_vector():
    first = token_signature(["nitrile", "gloves"])
    second = token_signature(["nitrile", "gloves"])

    assert first == second
    assert len(first) == SIGNATURE_DIMENSIONS
    assert np.linalg.norm(first) == pytest.approx(1.0, abs=1e-6)


def test_token_signature_of_no_tokens_is_not_zero():
    assert np.linalg.norm(token_signature([])) == pytest.approx(1.0, abs=1e-6)
