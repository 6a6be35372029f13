from vault_ingest.processor.exceptions import ProcessorError


class DimensionMismatchError(ProcessorError, ValueError):
    """Raised when a vector's length differs from the index dimensionality."""

    code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Vector dimension mismatch: expected {expected}, got {actual}",
            recoverable=False,
        )
        self.expected = expected
        self.actual = actual
