import numpy as np
from sentence_transformers import SentenceTransformer

from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.embedding.exceptions import EmbeddingError
from vault_ingest.logging.logger import Log
from vault_ingest.resources.lazy import LazyResource


class SentenceTransformerProvider(BaseEmbeddingProvider):
    """Local sentence-transformers model, loaded on first use."""

    def __init__(self, model_name: str, dimensions: int, device: str | None = None) -> None:
        self._model_name = model_name
        self._dimensions = dimensions
        self._device = device
        self._model: LazyResource[SentenceTransformer] = LazyResource(self._load_model)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        model = self._model.get()
        try:
            vector = model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        except Exception as exc:
            raise EmbeddingError(f"Embedding inference failed: {exc}") from exc
        return np.asarray(vector, dtype=np.float32)

    def _load_model(self) -> SentenceTransformer:
        try:
            Log.info(f"Loading embedding model: {self._model_name}")
            model = SentenceTransformer(self._model_name, device=self._device)
        except Exception as exc:
            raise EmbeddingError(f"Unable to load embedding model: {exc}") from exc
        actual = model.get_sentence_embedding_dimension()
        if actual is not None and actual != self._dimensions:
            raise EmbeddingError(
                f"Model {self._model_name} produces {actual}-dim vectors, "
                f"configured for {self._dimensions}"
            )
        return model
