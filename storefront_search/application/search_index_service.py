# storefront_search/application/search_index_service.py

import asyncio
import time
from typing import Callable, List, Optional

from storefront_search.application.entity_normalizer import build_index_items
from storefront_search.domain.interfaces import CatalogueSourcePort, IndexStorePort
from storefront_search.domain.models import GroupedResults, SearchIndexItem
from storefront_search.domain.ranking import group_results, rank_items


DEFAULT_SYNC_INTERVAL_MS = 24 * 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class SearchIndexService:
    """
    Owns the cached search index: loading it from the store, keeping it
    fresh against the catalogue, and answering queries from memory.

    Lifecycle:
    - cached index found   → searchable immediately; if older than the sync
                             interval, a resync runs in the background
    - no cached index      → initialize() waits for one full sync
    - sync failure         → logged; the previous index (if any) stays live

    search() never touches the network or the store. Each call ranks
    against whichever snapshot is current when it starts; a sync replaces
    the snapshot wholesale once it has fully succeeded.
    """

    def __init__(
        self,
        catalogue: CatalogueSourcePort,
        store: IndexStorePort,
        sync_interval_ms: int = DEFAULT_SYNC_INTERVAL_MS,
        clock: Callable[[], int] = _now_ms,
    ):
        self._catalogue = catalogue
        self._store = store
        self._sync_interval_ms = sync_interval_ms
        self._clock = clock

        self._index: List[SearchIndexItem] = []
        self._last_sync_time = 0
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._sync_lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None
        self.served_from_cache = False

    # ─── Lifecycle ───────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Load the cached index, or sync one. A second call is a no-op."""
        async with self._init_lock:
            if self._initialized:
                return

            cached = await self._load_cached()
            if cached:
                self._index = cached
                self._last_sync_time = await self._read_last_sync_time()
                self.served_from_cache = True
                self._initialized = True
                print(f"[SearchIndex] Loaded {len(cached)} cached items.")

                if self.is_stale():
                    print("[SearchIndex] Cached index is stale, refreshing in background...")
                    self._refresh_task = asyncio.create_task(self.sync())
                return

            print("[SearchIndex] No cached index, running full sync...")
            await self.sync()
            self._initialized = True

    async def sync(self) -> bool:
        """
        Fetch the catalogue, rebuild the index and persist it.
        Returns False (and keeps the current index) if anything fails.
        """
        async with self._sync_lock:
            try:
                bundle = await self._catalogue.fetch_index_bundle()
            except Exception as error:
                print(f"[SearchIndex] ⚠ Sync failed: {error}")
                return False

            if bundle.is_empty():
                print("[SearchIndex] ⚠ Catalogue returned nothing, keeping current index.")
                return False

            items = build_index_items(bundle)
            self._index = items
            self._initialized = True

            synced_at = self._clock()
            self._last_sync_time = synced_at
            await self._persist(items, synced_at)

            print(f"[SearchIndex] ✓ Synced {len(items)} items ({self.get_total_count()} products).")
            return True

    async def wait_until_refreshed(self) -> None:
        """Wait for a background refresh started by initialize(), if any."""
        if self._refresh_task is not None:
            await self._refresh_task

    async def close(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass

    # ─── Queries ─────────────────────────────────────────────────────────────

    def search(self, query: str, limit: int = 50) -> List[SearchIndexItem]:
        if not self._initialized or not query.strip():
            return []
        return rank_items(self._index, query, limit)

    def search_grouped(self, query: str, limit: int = 30) -> GroupedResults:
        return group_results(self.search(query, limit), query)

    def is_ready(self) -> bool:
        return self._initialized and len(self._index) > 0

    def is_stale(self) -> bool:
        return self._clock() - self._last_sync_time > self._sync_interval_ms

    def get_total_count(self) -> int:
        return sum(1 for item in self._index if item.type == "product")

    @property
    def item_count(self) -> int:
        return len(self._index)

    @property
    def last_sync_time(self) -> int:
        return self._last_sync_time

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    # ─── Store access ────────────────────────────────────────────────────────
    # Store calls are blocking; they run on a worker thread.

    async def _load_cached(self) -> List[SearchIndexItem]:
        try:
            return await asyncio.to_thread(self._store.load_all)
        except Exception as error:
            print(f"[SearchIndex] ⚠ Failed to load cached index: {error}")
            return []

    async def _read_last_sync_time(self) -> int:
        try:
            return await asyncio.to_thread(self._store.get_last_sync_time)
        except Exception as error:
            print(f"[SearchIndex] ⚠ Failed to read last sync time: {error}")
            return 0

    async def _persist(self, items: List[SearchIndexItem], synced_at: int) -> None:
        try:
            await asyncio.to_thread(self._store.replace_all, items)
            await asyncio.to_thread(self._store.set_last_sync_time, synced_at)
        except Exception as error:
            print(f"[SearchIndex] ⚠ Failed to persist index: {error}")
