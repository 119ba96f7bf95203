# storefront_search/infrastructure/snapshot_source.py

import json
import time
from pathlib import Path
from typing import List

from storefront_search.domain.interfaces import CatalogueSourcePort, CatalogueUnavailableError
from storefront_search.domain.models import CatalogueBundle


class SnapshotCatalogueSource(CatalogueSourcePort):
    """
    Catalogue source backed by a JSON file on disk, for offline runs and demos.

    The file holds one bundle: {"products": [...], "categories": [...],
    "brands": [...], "tags": [...]}. It is re-read on every call so edits
    show up on the next sync without a restart.

    Searches are a case-insensitive substring match over name, slug and
    SKU; ordering is left to the shared ranking.
    """

    def __init__(self, snapshot_path: str):
        self._path = Path(snapshot_path)

    async def fetch_index_bundle(self) -> CatalogueBundle:
        bundle = self._load()
        bundle.timestamp = int(time.time() * 1000)
        print(f"[SnapshotSource] Loaded {len(bundle.products)} products from {self._path.name}")
        return bundle

    async def search_products(self, query: str, limit: int = 20) -> List[dict]:
        return self._filter(self._load().products, query, limit)

    async def search_categories(self, query: str, limit: int = 10) -> List[dict]:
        return self._filter(self._load().categories, query, limit)

    async def search_brands(self, query: str, limit: int = 10) -> List[dict]:
        return self._filter(self._load().brands, query, limit)

    async def search_tags(self, query: str, limit: int = 10) -> List[dict]:
        return self._filter(self._load().tags, query, limit)

    def _load(self) -> CatalogueBundle:
        if not self._path.exists():
            raise CatalogueUnavailableError(f"Catalogue snapshot not found: {self._path}")

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            raise CatalogueUnavailableError(
                f"Failed to read catalogue snapshot '{self._path}': {error}"
            ) from error

        if not isinstance(data, dict):
            raise CatalogueUnavailableError(f"Catalogue snapshot '{self._path}' is not a JSON object.")
        try:
            return CatalogueBundle.from_dict(data)
        except (TypeError, ValueError) as error:
            raise CatalogueUnavailableError(
                f"Catalogue snapshot '{self._path}' has malformed fields: {error}"
            ) from error

    @staticmethod
    def _filter(records: List[dict], query: str, limit: int) -> List[dict]:
        needle = query.strip().lower()
        if not needle:
            return records[:limit]

        matches = []
        for record in records:
            haystack = " ".join(
                str(record.get(name) or "") for name in ("name", "slug", "sku")
            ).lower()
            if needle in haystack:
                matches.append(record)
                if len(matches) >= limit:
                    break
        return matches
