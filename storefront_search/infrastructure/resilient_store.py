# storefront_search/infrastructure/resilient_store.py

from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from storefront_search.domain.interfaces import IndexStorePort, SnapshotStorePort
from storefront_search.domain.models import SearchIndexItem
from storefront_search.infrastructure.chroma_store import ChromaIndexStore
from storefront_search.infrastructure.key_value_store import DEFAULT_MAX_ITEMS, KeyValueIndexStore


T = TypeVar("T")

STRUCTURED_SUBDIRECTORY = "chroma"
KEY_VALUE_SUBDIRECTORY  = "kv"


class ResilientIndexStore(IndexStorePort):
    """
    Structured snapshot store with a string-keyed fallback.

    Snapshot reads and writes run against the primary backend first; if the
    primary is missing or the call fails, the same operation runs against
    the fallback. The last-sync time always lives in the fallback, as a
    decimal string. Fallback failures are logged and degrade to an empty
    snapshot / 0 (the index is a cache; callers still have live search).
    """

    def __init__(self, primary: Optional[SnapshotStorePort], fallback: IndexStorePort):
        self._primary = primary
        self._fallback = fallback

    @property
    def has_primary(self) -> bool:
        return self._primary is not None

    def load_all(self) -> List[SearchIndexItem]:
        return self._run("load", lambda store: store.load_all(), default=[])

    def replace_all(self, items: List[SearchIndexItem]) -> None:
        self._run("write", lambda store: store.replace_all(items), default=None)

    def get_last_sync_time(self) -> int:
        return self._run_fallback("read sync time", lambda store: store.get_last_sync_time(), default=0)

    def set_last_sync_time(self, timestamp_ms: int) -> None:
        self._run_fallback("write sync time", lambda store: store.set_last_sync_time(timestamp_ms), default=None)

    def _run(self, operation: str, call: Callable[[SnapshotStorePort], T], default: T) -> T:
        if self._primary is not None:
            try:
                return call(self._primary)
            except Exception as error:
                print(f"[IndexStore] ⚠ Primary store failed to {operation}, using fallback: {error}")

        return self._run_fallback(operation, call, default)

    def _run_fallback(self, operation: str, call: Callable[[IndexStorePort], T], default: T) -> T:
        try:
            return call(self._fallback)
        except Exception as error:
            print(f"[IndexStore] ⚠ Fallback store failed to {operation}: {error}")
            return default


def open_index_store(
    persist_directory: str,
    max_fallback_items: int = DEFAULT_MAX_ITEMS,
) -> ResilientIndexStore:
    """
    Open the structured backend if it can be opened and build the combined store.
    A structured backend that cannot open leaves the string store alone.
    """
    root = Path(persist_directory)
    fallback = KeyValueIndexStore(str(root / KEY_VALUE_SUBDIRECTORY), max_items=max_fallback_items)

    try:
        primary = ChromaIndexStore(str(root / STRUCTURED_SUBDIRECTORY))
    except RuntimeError as error:
        print(f"[IndexStore] ⚠ Structured store unavailable, using key-value store only.\n{error}")
        primary = None

    return ResilientIndexStore(primary=primary, fallback=fallback)
