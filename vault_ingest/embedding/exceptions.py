from vault_ingest.processor.exceptions import ProcessorError


class EmbeddingError(ProcessorError):
    """Raised when the embedding provider fails or returns a malformed vector."""

    code = "EMBEDDING_ERROR"
