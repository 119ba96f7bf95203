# storefront_search/container.py
#
# Wiring shared by the terminal app (main.py) and the HTTP API (api.py).

from storefront_search.application.fallback_search_service import FallbackSearchService
from storefront_search.application.search_index_service import SearchIndexService
from storefront_search.config import Settings, settings
from storefront_search.domain.interfaces import CatalogueSourcePort
from storefront_search.infrastructure.catalogue_client import WooCatalogueClient
from storefront_search.infrastructure.resilient_store import open_index_store
from storefront_search.infrastructure.snapshot_source import SnapshotCatalogueSource


def build_catalogue_source(config: Settings = settings) -> CatalogueSourcePort:
    """A snapshot file wins over the live store when both are configured."""
    if config.catalogue_snapshot_path:
        print(f"[Container] Using catalogue snapshot '{config.catalogue_snapshot_path}'.")
        return SnapshotCatalogueSource(config.catalogue_snapshot_path)
    return WooCatalogueClient.from_settings(config)


def build_index_service(
    catalogue: CatalogueSourcePort,
    config: Settings = settings,
) -> SearchIndexService:
    store = open_index_store(
        config.index_persist_directory,
        max_fallback_items=config.index_fallback_max_items,
    )
    return SearchIndexService(
        catalogue=catalogue,
        store=store,
        sync_interval_ms=config.index_sync_interval_ms,
    )


def build_fallback_service(
    catalogue: CatalogueSourcePort,
    config: Settings = settings,
) -> FallbackSearchService:
    return FallbackSearchService(
        catalogue=catalogue,
        cache_ttl_seconds=config.fallback_cache_ttl_seconds,
    )
