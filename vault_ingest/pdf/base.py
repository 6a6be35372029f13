from abc import ABC, abstractmethod
from collections.abc import Callable

from PIL import Image

from vault_ingest.processor.models import PdfExtractionResult

PageProgressCallback = Callable[[int, int], None]


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(
        self,
        pdf_bytes: bytes,
        on_page_progress: PageProgressCallback | None = None,
    ) -> PdfExtractionResult:
        """Extract the text layer from PDF bytes page by page.

        Args:
            pdf_bytes: Raw PDF file content.
            on_page_progress: Called with ``(current_page, total_pages)``
                after each page.

        Returns:
            PdfExtractionResult with per-page texts, the image-based verdict
            and the document info dictionary when the file has one.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    @abstractmethod
    def render_page(
        self,
        pdf_bytes: bytes,
        page_number: int = 1,
        scale: float = 2.0,
    ) -> Image.Image:
        """Render a 1-based page to an RGB image for OCR or thumbnails.

        Raises:
            PdfExtractionError: on an invalid page number or render failure.
        """

    @abstractmethod
    def page_count(self, pdf_bytes: bytes) -> int:
        """Return the number of pages without extracting text."""
