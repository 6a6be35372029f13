from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import numpy as np

VectorMetadata = dict[str, Any]
FilterFn = Callable[[str, VectorMetadata | None], bool]


@dataclass
class VectorEntry:
    id: str
    vector: np.ndarray
    metadata: VectorMetadata | None = None


@dataclass(frozen=True)
class SearchResult:
    id: str
    score: float
    metadata: VectorMetadata | None = field(default=None, compare=False)


@dataclass(frozen=True)
class IndexStats:
    vector_count: int
    dimensions: int
    index_size_bytes: int
    last_updated: float | None
