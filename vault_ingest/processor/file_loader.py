import mimetypes
from pathlib import Path
from typing import ClassVar

from vault_ingest.processor.exceptions import FileReadError
from vault_ingest.processor.models import InputFile


class FileLoader:
    """Reads a document from the local filesystem into an InputFile."""

    EXTRA_MIME_TYPES: ClassVar[dict[str, str]] = {
        ".heic": "image/heic",
        ".heif": "image/heif",
        ".webp": "image/webp",
    }

    def load(self, path: Path) -> InputFile:
        """Read file bytes and guess the MIME type from the extension.

        Raises:
            FileNotFoundError: if the file does not exist.
            FileReadError: if the path exists but cannot be read.
        """
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}") from exc
        return InputFile(name=path.name, mime_type=self.guess_mime_type(path), data=data)

    def guess_mime_type(self, path: Path) -> str:
        suffix = path.suffix.lower()
        if suffix in self.EXTRA_MIME_TYPES:
            return self.EXTRA_MIME_TYPES[suffix]
        mime_type, _ = mimetypes.guess_type(path.name)
        return mime_type or "application/octet-stream"
