# storefront_search/infrastructure/memory_store.py

from typing import List

from storefront_search.domain.interfaces import IndexStorePort
from storefront_search.domain.models import SearchIndexItem


class InMemoryIndexStore(IndexStorePort):
    """
    Process-local index store. Nothing survives the process; used when no
    durable backend is wanted (tests, throwaway runs).
    """

    def __init__(self, items: List[SearchIndexItem] = None, last_sync_time: int = 0):
        self._items: List[SearchIndexItem] = list(items or [])
        self._last_sync_time = last_sync_time

    def load_all(self) -> List[SearchIndexItem]:
        return list(self._items)

    def replace_all(self, items: List[SearchIndexItem]) -> None:
        self._items = list(items)
        print(f"[MemoryStore] Stored {len(self._items)} items.")

    def get_last_sync_time(self) -> int:
        return self._last_sync_time

    def set_last_sync_time(self, timestamp_ms: int) -> None:
        self._last_sync_time = int(timestamp_ms)
