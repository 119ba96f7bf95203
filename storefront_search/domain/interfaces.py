# storefront_search/domain/interfaces.py

from abc import ABC, abstractmethod
from typing import List

from .models import CatalogueBundle, SearchIndexItem


class CatalogueUnavailableError(RuntimeError):
    """Raised when the catalogue source cannot be reached or answers with an error."""


class SnapshotStorePort(ABC):
    """
    Durable storage for one index snapshot.
    The snapshot is always replaced wholesale; there is no per-item update.
    """

    @abstractmethod
    def load_all(self) -> List[SearchIndexItem]: ...

    @abstractmethod
    def replace_all(self, items: List[SearchIndexItem]) -> None: ...


class IndexStorePort(SnapshotStorePort):
    """An index snapshot plus its last-sync timestamp."""

    @abstractmethod
    def get_last_sync_time(self) -> int:
        """Epoch milliseconds of the last completed sync, or 0 if never synced."""
        ...

    @abstractmethod
    def set_last_sync_time(self, timestamp_ms: int) -> None: ...


class CatalogueSourcePort(ABC):
    """
    Port for the product/category/brand/tag provider.

    One aggregate fetch feeds a full index sync; the four per-type search
    calls feed the live fallback path. Records are raw provider dicts
    carrying at least `id`, `name` and `slug`.
    """

    @abstractmethod
    async def fetch_index_bundle(self) -> CatalogueBundle: ...

    @abstractmethod
    async def search_products(self, query: str, limit: int = 20) -> List[dict]: ...

    @abstractmethod
    async def search_categories(self, query: str, limit: int = 10) -> List[dict]: ...

    @abstractmethod
    async def search_brands(self, query: str, limit: int = 10) -> List[dict]: ...

    @abstractmethod
    async def search_tags(self, query: str, limit: int = 10) -> List[dict]: ...
