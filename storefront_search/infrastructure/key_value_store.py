# storefront_search/infrastructure/key_value_store.py

import json
import os
from pathlib import Path
from typing import List, Optional

from storefront_search.domain.interfaces import IndexStorePort
from storefront_search.domain.models import SearchIndexItem


# ── Constants ─────────────────────────────────────────────────────────────────

INDEX_CACHE_KEY     = "search_index_cache"
SYNC_TIME_KEY       = "search_index_sync_time"
DEFAULT_MAX_ITEMS   = 1000


class KeyValueIndexStore(IndexStorePort):
    """
    Fallback index store on a plain string-keyed store: one file per key
    under `directory`.

    Entries:
        search_index_cache      JSON array of the first `max_items` items
        search_index_sync_time  last sync, epoch milliseconds as a decimal string

    Best-effort: read failures return an empty snapshot / 0, write failures
    are logged and dropped. Nothing here raises.
    """

    def __init__(self, directory: str, max_items: int = DEFAULT_MAX_ITEMS):
        if max_items <= 0:
            raise ValueError(f"max_items must be positive, got {max_items}")
        self._directory = Path(directory)
        self._max_items = max_items

    # ─── IndexStorePort ──────────────────────────────────────────────────────

    def load_all(self) -> List[SearchIndexItem]:
        raw = self.get_item(INDEX_CACHE_KEY)
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            print("[KeyValueStore] ⚠ Cached index is not valid JSON, ignoring it.")
            return []
        if not isinstance(parsed, list):
            return []

        items = []
        for entry in parsed:
            if not isinstance(entry, dict):
                continue
            try:
                items.append(SearchIndexItem.from_dict(entry))
            except TypeError:
                continue
        return items

    def replace_all(self, items: List[SearchIndexItem]) -> None:
        # First N items, not the most recent N: products lead the snapshot.
        limited = items[: self._max_items]
        payload = json.dumps([item.to_dict() for item in limited], ensure_ascii=False)
        if self.set_item(INDEX_CACHE_KEY, payload) and len(items) > len(limited):
            print(f"[KeyValueStore] Index capped at {len(limited)} of {len(items)} items.")

    def get_last_sync_time(self) -> int:
        raw = self.get_item(SYNC_TIME_KEY)
        if not raw:
            return 0
        try:
            return int(raw.strip())
        except ValueError:
            return 0

    def set_last_sync_time(self, timestamp_ms: int) -> None:
        self.set_item(SYNC_TIME_KEY, str(int(timestamp_ms)))

    # ─── String Store ────────────────────────────────────────────────────────

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as error:
            print(f"[KeyValueStore] ⚠ Failed to read '{key}': {error}")
            return None

    def set_item(self, key: str, value: str) -> bool:
        """Write atomically (temp file + rename). Returns False if the write failed."""
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
            return True
        except OSError as error:
            print(f"[KeyValueStore] ⚠ Failed to write '{key}': {error}")
            return False

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{key}.txt"
