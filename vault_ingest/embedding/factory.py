from vault_ingest.config.settings import Settings
from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.embedding.openai_compatible_adapter import OpenAICompatibleProvider
from vault_ingest.embedding.sentence_transformer_adapter import SentenceTransformerProvider


class EmbeddingProviderFactory:
    """Creates the configured embedding provider, or None when disabled."""

    PROVIDERS: tuple[str, ...] = ("none", "sentence_transformers", "openai_compatible")

    @classmethod
    def create(cls, settings: Settings) -> BaseEmbeddingProvider | None:
        provider = settings.embedding_provider.lower()
        if provider == "none":
            return None
        if provider == "sentence_transformers":
            return SentenceTransformerProvider(
                model_name=settings.embedding_model_name,
                dimensions=settings.embedding_dimensions,
            )
        if provider == "openai_compatible":
            return OpenAICompatibleProvider(
                model=settings.embedding_model_name,
                dimensions=settings.embedding_dimensions,
                base_url=settings.embedding_base_url,
                api_key=settings.embedding_api_key,
                timeout_seconds=settings.embedding_timeout_seconds,
            )
        raise ValueError(
            f"Unknown embedding provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
