"""In-memory nearest-neighbour index over document embeddings.

Embeddings are privacy-sensitive: the serialized blob from :meth:`VectorIndex.save`
is meant for device-local storage only.
"""

import json
import time
from collections.abc import Iterable, Sequence
from typing import Any, ClassVar

import numpy as np

from vault_ingest.logging.logger import Log
from vault_ingest.search.cache import DEFAULT_CAPACITY, LRUCache
from vault_ingest.search.exceptions import DimensionMismatchError
from vault_ingest.search.models import (
    FilterFn,
    IndexStats,
    SearchResult,
    VectorEntry,
    VectorMetadata,
)

DEFAULT_DIMENSIONS = 384
BYTES_PER_FLOAT = 4


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between two vectors; 0.0 when either has zero norm."""
    denominator = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if denominator == 0.0:
        return 0.0
    return float(np.dot(a, b)) / denominator


class VectorIndex:
    """Brute-force cosine search with metadata filtering and save/load.

    Not thread-safe: callers sharing an index across threads synchronize
    externally. ``load`` leaves the index unchanged when the blob is malformed.

    Unfiltered query results are kept in an LRU cache of ``cache_size``
    entries, emptied by every mutation. Metadata is copied on the way in
    and on the way out, so callers never share it with the index.
    """

    FORMAT_VERSION: ClassVar[int] = 1

    def __init__(
        self,
        dimensions: int = DEFAULT_DIMENSIONS,
        cache_size: int = DEFAULT_CAPACITY,
    ) -> None:
        if dimensions <= 0:
            raise ValueError(f"dimensions must be positive, got {dimensions}")
        self._dimensions = dimensions
        self._entries: dict[str, VectorEntry] = {}
        self._last_updated: float | None = None
        self._search_cache: LRUCache[list[SearchResult]] = LRUCache(cache_size)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def search_cache(self) -> LRUCache[list[SearchResult]]:
        return self._search_cache

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_vector(
        self,
        id: str,
        vector: Sequence[float] | np.ndarray,
        metadata: VectorMetadata | None = None,
    ) -> None:
        """Insert or overwrite ``id``. Raises DimensionMismatchError on wrong length."""
        array = self._as_vector(vector)
        self._entries[id] = VectorEntry(id=id, vector=array, metadata=_copy(metadata))
        self._touch()

    def add_vectors(self, entries: Iterable[VectorEntry]) -> None:
        """Add several entries; nothing is inserted if any has the wrong length."""
        staged = [
            VectorEntry(
                id=entry.id,
                vector=self._as_vector(entry.vector),
                metadata=_copy(entry.metadata),
            )
            for entry in entries
        ]
        for entry in staged:
            self._entries[entry.id] = entry
        if staged:
            self._touch()

    def remove_vector(self, id: str) -> None:
        if self._entries.pop(id, None) is not None:
            self._touch()

    def clear(self) -> None:
        if self._entries:
            self._entries.clear()
            self._touch()

    def has_vector(self, id: str) -> bool:
        return id in self._entries

    def get_vector(self, id: str) -> VectorEntry | None:
        return self._entries.get(id)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: Sequence[float] | np.ndarray, k: int = 10) -> list[SearchResult]:
        array = self._as_vector(query)
        key = (array.tobytes(), k)
        results = self._search_cache.get(key)
        if results is None:
            results = self._rank(array, self._entries.values(), k)
            self._search_cache.put(key, results)
        return [_detached(result) for result in results]

    def search_with_filter(
        self,
        query: Sequence[float] | np.ndarray,
        predicate: FilterFn,
        k: int = 10,
    ) -> list[SearchResult]:
        """Rank only the entries accepted by ``predicate(id, metadata)``."""
        candidates = [
            entry for entry in self._entries.values() if predicate(entry.id, entry.metadata)
        ]
        results = self._rank(self._as_vector(query), candidates, k)
        return [_detached(result) for result in results]

    def _rank(
        self,
        query: np.ndarray,
        candidates: Iterable[VectorEntry],
        k: int,
    ) -> list[SearchResult]:
        pool = list(candidates)
        if not pool or k <= 0:
            return []

        matrix = np.vstack([entry.vector for entry in pool]).astype(np.float64)
        query64 = query.astype(np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query64)
        dots = matrix @ query64
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)

        # Stable sort keeps insertion order among equal scores.
        order = np.argsort(-scores, kind="stable")[: min(k, len(pool))]
        return [
            SearchResult(id=pool[i].id, score=float(scores[i]), metadata=pool[i].metadata)
            for i in order
        ]

    # ------------------------------------------------------------------
    # Stats & persistence
    # ------------------------------------------------------------------

    def get_stats(self) -> IndexStats:
        count = len(self._entries)
        return IndexStats(
            vector_count=count,
            dimensions=self._dimensions,
            index_size_bytes=count * self._dimensions * BYTES_PER_FLOAT,
            last_updated=self._last_updated,
        )

    def save(self) -> bytes:
        document = {
            "version": self.FORMAT_VERSION,
            "dimensions": self._dimensions,
            "last_updated": self._last_updated,
            "vectors": [
                {
                    "id": entry.id,
                    "vector": entry.vector.tolist(),
                    "metadata": entry.metadata,
                }
                for entry in self._entries.values()
            ],
        }
        return json.dumps(document).encode("utf-8")

    def load(self, blob: bytes | str) -> bool:
        """Replace the contents from a :meth:`save` blob.

        Returns False and leaves the index unchanged if the blob is malformed.
        """
        try:
            staged, last_updated = self._parse(blob)
        except (ValueError, TypeError, KeyError) as exc:
            Log.warning(f"Rejected vector index blob: {exc}")
            return False

        self._entries = staged
        self._search_cache.clear()
        self._last_updated = last_updated if last_updated is not None else time.time()
        Log.info(f"Loaded vector index with {len(staged)} vectors")
        return True

    def _parse(self, blob: bytes | str) -> tuple[dict[str, VectorEntry], float | None]:
        document: Any = json.loads(blob)
        if not isinstance(document, dict):
            raise ValueError("index blob must be a JSON object")
        if document.get("version") != self.FORMAT_VERSION:
            raise ValueError(f"unsupported index version {document.get('version')!r}")
        if document.get("dimensions") != self._dimensions:
            raise ValueError(
                f"index dimensions {document.get('dimensions')!r} != {self._dimensions}"
            )
        raw_vectors = document["vectors"]
        if not isinstance(raw_vectors, list):
            raise ValueError("'vectors' must be a list")

        staged: dict[str, VectorEntry] = {}
        for raw in raw_vectors:
            entry_id = raw["id"]
            metadata = raw.get("metadata")
            if not isinstance(entry_id, str):
                raise ValueError("vector id must be a string")
            if metadata is not None and not isinstance(metadata, dict):
                raise ValueError(f"metadata for {entry_id!r} must be an object")
            staged[entry_id] = VectorEntry(
                id=entry_id, vector=self._as_vector(raw["vector"]), metadata=metadata
            )

        last_updated = document.get("last_updated")
        return staged, float(last_updated) if last_updated is not None else None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _as_vector(self, vector: Sequence[float] | np.ndarray) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float32)
        if array.ndim != 1 or array.shape[0] != self._dimensions:
            actual = array.shape[0] if array.ndim == 1 else array.size
            raise DimensionMismatchError(self._dimensions, int(actual))
        if not np.all(np.isfinite(array)):
            raise ValueError("vector contains non-finite values")
        return array

    def _touch(self) -> None:
        self._last_updated = time.time()
        self._search_cache.clear()


def _copy(metadata: VectorMetadata | None) -> VectorMetadata | None:
    return dict(metadata) if metadata is not None else None


def _detached(result: SearchResult) -> SearchResult:
    return SearchResult(id=result.id, score=result.score, metadata=_copy(result.metadata))
