from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vault_ingest.processor.models import ValidationResult


class ProcessorError(Exception):
    """Base exception for all processing-related errors.

    Carries a machine-readable ``code`` and whether the caller may retry the
    whole document.
    """

    code: str = "PROCESSING_ERROR"

    def __init__(self, message: str, *, recoverable: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class FileValidationError(ProcessorError):
    """Raised by the pipeline when a file is rejected by validation."""

    code = "VALIDATION_ERROR"

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(result.error or "Validation failed")
        self.result = result


class ProcessingCancelledError(ProcessorError):
    """Raised at a stage boundary once a document has been cancelled."""

    code = "CANCELLED"

    def __init__(self, file_id: str) -> None:
        super().__init__("Processing cancelled")
        self.file_id = file_id


class DocumentProcessingError(ProcessorError):
    """Catch-all for unexpected failures inside the pipeline."""

    code = "PROCESSING_ERROR"


class FileReadError(ProcessorError):
    """Raised when a file cannot be read from disk."""

    code = "FILE_READ_ERROR"
