from typing import ClassVar

from vault_ingest.processor.models import (
    DocumentSource,
    FileKind,
    ImageSource,
    InputFile,
    PdfSource,
    ValidationResult,
)

MAX_FILE_SIZE_BYTES = 25 * 1024 * 1024


class FileValidator:
    """Checks size, non-emptiness and MIME type before any processing starts."""

    SUPPORTED_MIME_TYPES: ClassVar[frozenset[str]] = frozenset(
        {
            "application/pdf",
            "image/jpeg",
            "image/jpg",
            "image/png",
            "image/webp",
            "image/heic",
            "image/heif",
        }
    )

    def __init__(self, max_size_bytes: int = MAX_FILE_SIZE_BYTES) -> None:
        self._max_size_bytes = max_size_bytes

    def validate(self, file: InputFile | None) -> ValidationResult:
        """Validate file metadata. Never raises; failures are returned as data."""
        if file is None:
            return ValidationResult(is_valid=False, error="No file provided")

        size = file.size_bytes
        if size > self._max_size_bytes:
            max_mb = self._max_size_bytes / 1024 / 1024
            return ValidationResult(
                is_valid=False,
                error=f"File too large. Maximum size is {max_mb:g}MB",
                size_bytes=size,
            )
        if size == 0:
            return ValidationResult(is_valid=False, error="File is empty")

        mime_type = (file.mime_type or "").lower()
        if mime_type not in self.SUPPORTED_MIME_TYPES:
            return ValidationResult(
                is_valid=False,
                error=(
                    f"Unsupported file type: {mime_type or 'unknown'}. "
                    "Supported types: PDF, JPEG, PNG, WebP, HEIC"
                ),
                mime_type=mime_type,
                size_bytes=size,
            )

        file_type = FileKind.PDF if mime_type == "application/pdf" else FileKind.IMAGE
        source: DocumentSource = (
            PdfSource(file) if file_type is FileKind.PDF else ImageSource(file)
        )
        return ValidationResult(
            is_valid=True,
            file_type=file_type,
            mime_type=mime_type,
            size_bytes=size,
            source=source,
        )
