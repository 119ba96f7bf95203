# tests/test_snapshot_source.py

import asyncio
import json

import pytest

from storefront_search.config import Settings, derive_wp_api_url
from storefront_search.container import build_catalogue_source
from storefront_search.domain.interfaces import CatalogueUnavailableError
from storefront_search.infrastructure.snapshot_source import SnapshotCatalogueSource


@pytest.fixture
def snapshot_path(tmp_path):
    path = tmp_path / "catalogue.json"
    path.write_text(json.dumps({
        "products": [
            {"id": 1, "name": "Nitrile Gloves", "slug": "nitrile-gloves", "sku": "GLV-200"},
            {"id": 2, "name": "Face Mask", "slug": "face-mask", "sku": "MSK-1"},
            {"id": 3, "name": "Vinyl Gloves", "slug": "vinyl-gloves", "sku": "GLV-300"},
        ],
        "categories": [{"id": 10, "name": "Gloves", "slug": "gloves"}],
        "brands": [],
        "tags": [{"id": 30, "name": "Medical", "slug": "medical"}],
    }))
    return path


def test_fetch_index_bundle_reads_every_group(snapshot_path):
    bundle = asyncio.run(SnapshotCatalogueSource(str(snapshot_path)).fetch_index_bundle())

    assert len(bundle.products) == 3
    assert bundle.total_products == 3
    assert [c["id"] for c in bundle.categories] == [10]
    assert bundle.brands == []
    assert bundle.timestamp > 0


def test_search_matches_name_slug_and_sku(snapshot_path):
    source = SnapshotCatalogueSource(str(snapshot_path))

    assert [p["id"] for p in asyncio.run(source.search_products("GLOVES"))] == [1, 3]
    assert [p["id"] for p in asyncio.run(source.search_products("msk-1"))] == [2]
    assert [t["id"] for t in asyncio.run(source.search_tags("medic"))] == [30]


def test_search_respects_limit(snapshot_path):
    source = SnapshotCatalogueSource(str(snapshot_path))
    assert len(asyncio.run(source.search_products("glv", limit=1))) == 1


def test_missing_snapshot_raises_catalogue_error(tmp_path):
    source = SnapshotCatalogueSource(str(tmp_path / "missing.json"))

    with pytest.raises(CatalogueUnavailableError, match="not found"):
        asyncio.run(source.fetch_index_bundle())


def test_invalid_snapshot_raises_catalogue_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[1, 2")

    with pytest.raises(CatalogueUnavailableError, match="Failed to read"):
        asyncio.run(SnapshotCatalogueSource(str(path)).search_brands("x"))


def test_malformed_timestamp_raises_catalogue_error(tmp_path):
    path = tmp_path / "catalogue.json"
    path.write_text(json.dumps({"products": [], "timestamp": "yesterday"}))

    with pytest.raises(CatalogueUnavailableError, match="malformed"):
        asyncio.run(SnapshotCatalogueSource(str(path)).fetch_index_bundle())


# ── Wiring ────────────────────────────────────────────────────────────────────

def test_snapshot_path_selects_snapshot_source(snapshot_path):
    config = Settings(catalogue_snapshot_path=str(snapshot_path))
    assert isinstance(build_catalogue_source(config), SnapshotCatalogueSource)


def test_wp_api_url_is_derived_from_store_url():
    assert derive_wp_api_url("https://shop.example/wp-json/wc/v3") == "https://shop.example/wp-json/wp/v2"
    assert derive_wp_api_url("") == ""
    assert derive_wp_api_url("not a url") == ""
