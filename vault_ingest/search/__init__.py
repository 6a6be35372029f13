from vault_ingest.search.cache import LRUCache
from vault_ingest.search.exceptions import DimensionMismatchError
from vault_ingest.search.models import IndexStats, SearchResult, VectorEntry
from vault_ingest.search.vector_index import VectorIndex, cosine_similarity

__all__ = [
    "DimensionMismatchError",
    "IndexStats",
    "LRUCache",
    "SearchResult",
    "VectorEntry",
    "VectorIndex",
    "cosine_similarity",
]
