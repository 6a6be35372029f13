import httpx
import numpy as np
import openai

from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.embedding.exceptions import EmbeddingError


class OpenAICompatibleProvider(BaseEmbeddingProvider):
    """Embeddings from an OpenAI-compatible server running on this machine.

    Intended for local runtimes such as Ollama; the base URL defaults to one.
    """

    def __init__(
        self,
        *,
        model: str,
        dimensions: int,
        base_url: str,
        api_key: str = "",
        timeout_seconds: int = 30,
    ) -> None:
        self._model = model
        self._dimensions = dimensions
        self._client = openai.OpenAI(
            api_key=api_key or "local",
            timeout=timeout_seconds,
            base_url=base_url,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        try:
            response = self._client.embeddings.create(model=self._model, input=text)
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise EmbeddingError(f"Embedding server network error: {exc}") from exc
        except openai.APIError as exc:
            raise EmbeddingError(f"Embedding server API error: {exc}") from exc

        if not response.data:
            raise EmbeddingError("Embedding server returned no data")
        return np.asarray(response.data[0].embedding, dtype=np.float32)
