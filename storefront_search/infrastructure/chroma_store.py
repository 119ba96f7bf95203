# storefront_search/infrastructure/chroma_store.py

import hashlib
import json
from pathlib import Path
from typing import List

import chromadb
import numpy as np
from chromadb.config import Settings

from storefront_search.domain.interfaces import SnapshotStorePort
from storefront_search.domain.models import SearchIndexItem


# ── Constants ─────────────────────────────────────────────────────────────────

COLLECTION_NAME         = "search_index"
STAGING_COLLECTION_NAME = "search_index_staging"
POSITION_KEY            = "position"
TYPE_KEY                = "type"

# Records written per add() call. Batches commit one after another.
WRITE_BATCH_SIZE = 100

# Chroma requires a vector per record; items get a hashed token signature.
SIGNATURE_DIMENSIONS = 16


def token_signature(tokens: List[str]) -> List[float]:
    """
    Deterministic unit vector from an item's tokens (feature hashing).
    Component 0 is a constant bias so the vector is never all zeros.
    """
    vector = np.zeros(SIGNATURE_DIMENSIONS, dtype=np.float32)
    vector[0] = 1.0
    for token in tokens:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=4).digest()
        bucket = 1 + int.from_bytes(digest, "big") % (SIGNATURE_DIMENSIONS - 1)
        vector[bucket] += 1.0
    return (vector / np.linalg.norm(vector)).tolist()


class ChromaIndexStore(SnapshotStorePort):
    """
    Structured on-disk snapshot store on a ChromaDB persistent collection.

    ┌──────────────────────────────────────────────────────────┐
    │  one record per item     id = item.key                   │
    │                          document = item JSON            │
    │                          metadata = {type, position}     │
    └──────────────────────────────────────────────────────────┘

    replace_all() writes a staging collection in sequential batches of
    WRITE_BATCH_SIZE, then swaps it in for the live one, so a failed write
    leaves the previous snapshot readable. load_all() restores the snapshot
    order from the stored position.

    The last-sync time is not kept here; it belongs to the string store.
    """

    def __init__(self, persist_directory: str):
        self._persist_directory = persist_directory

        path = Path(persist_directory)
        if path.exists() and not path.is_dir():
            raise RuntimeError(f"Failed to initialize ChromaDB: path '{persist_directory}' is a file.")

        try:
            path.mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(
                path=persist_directory,
                settings=Settings(anonymized_telemetry=False),
            )
            self._collection = self._open_collection()
        except Exception as error:
            raise RuntimeError(
                f"Failed to initialize ChromaDB at '{persist_directory}'.\n"
                f"The database may be locked by another process or corrupted.\n"
                f"Fix: close other running instances, or delete '{persist_directory}'.\n"
                f"Original error: {error}"
            ) from error

        print(
            f"[ChromaStore] Connected to '{persist_directory}'. "
            f"Collection has {self.count()} items."
        )

    # ─── SnapshotStorePort ───────────────────────────────────────────────────

    def load_all(self) -> List[SearchIndexItem]:
        results = self._collection.get(include=["documents", "metadatas"])

        rows = sorted(
            zip(results["documents"], results["metadatas"]),
            key=lambda row: (row[1] or {}).get(POSITION_KEY, 0),
        )
        return [SearchIndexItem.from_dict(json.loads(document)) for document, _ in rows]

    def replace_all(self, items: List[SearchIndexItem]) -> None:
        # Build into a staging collection; the live one is only swapped out
        # once every batch has been written.
        self._client.get_or_create_collection(name=STAGING_COLLECTION_NAME)
        self._client.delete_collection(STAGING_COLLECTION_NAME)
        staging = self._client.create_collection(
            name=STAGING_COLLECTION_NAME,
            metadata={"hnsw:space": "cosine"},
        )

        for start in range(0, len(items), WRITE_BATCH_SIZE):
            batch = items[start : start + WRITE_BATCH_SIZE]
            staging.add(
                ids        = [item.key for item in batch],
                embeddings = [token_signature(item.tokens) for item in batch],
                documents  = [json.dumps(item.to_dict(), ensure_ascii=False) for item in batch],
                metadatas  = [
                    {TYPE_KEY: item.type, POSITION_KEY: start + offset}
                    for offset, item in enumerate(batch)
                ],
            )

        self._client.delete_collection(COLLECTION_NAME)
        staging.modify(name=COLLECTION_NAME)
        self._collection = self._client.get_collection(COLLECTION_NAME)

        print(f"[ChromaStore] ✓ Stored {len(items)} items in {self._batch_count(len(items))} batch(es).")

    # ─── Helpers ─────────────────────────────────────────────────────────────

    def count(self) -> int:
        return self._collection.count()

    def _open_collection(self):
        return self._client.get_or_create_collection(
            name=COLLECTION_NAME,
            metadata={"hnsw:space": "cosine"},
        )

    @staticmethod
    def _batch_count(item_count: int) -> int:
        return -(-item_count // WRITE_BATCH_SIZE)
