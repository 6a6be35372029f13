import io
import time

import pdfplumber
from PIL import Image

from vault_ingest.logging.logger import Log
from vault_ingest.pdf.base import BasePdfExtractor, PageProgressCallback
from vault_ingest.pdf.exceptions import PdfExtractionError
from vault_ingest.pdf.layout import (
    MIN_TEXT_PER_PAGE,
    TextFragment,
    build_extraction_result,
    build_metadata,
    join_fragments,
)
from vault_ingest.processor.exceptions import ProcessorError
from vault_ingest.processor.models import PdfExtractionResult, PdfMetadata

_POINTS_PER_INCH = 72


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts and renders PDF pages using pdfplumber.

    Words carry no end-of-line flag, so line breaks come from baseline
    (word ``bottom``) changes alone.
    """

    def __init__(self, min_text_per_page: int = MIN_TEXT_PER_PAGE) -> None:
        self._min_text_per_page = min_text_per_page

    def extract(
        self,
        pdf_bytes: bytes,
        on_page_progress: PageProgressCallback | None = None,
    ) -> PdfExtractionResult:
        started_at = time.perf_counter()
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                total = len(pdf.pages)
                page_texts: list[str] = []
                for page_number, page in enumerate(pdf.pages, start=1):
                    fragments = [
                        TextFragment(text=word["text"], baseline=float(word["bottom"]))
                        for word in page.extract_words()
                    ]
                    page_texts.append(join_fragments(fragments))
                    if on_page_progress is not None:
                        on_page_progress(page_number, total)
                metadata = self._metadata(pdf)
        except ProcessorError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        return build_extraction_result(
            page_texts, self._min_text_per_page, started_at, metadata
        )

    def render_page(
        self,
        pdf_bytes: bytes,
        page_number: int = 1,
        scale: float = 2.0,
    ) -> Image.Image:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                if page_number < 1 or page_number > len(pdf.pages):
                    raise PdfExtractionError(
                        f"Invalid page number: {page_number}. "
                        f"PDF has {len(pdf.pages)} pages."
                    )
                page_image = pdf.pages[page_number - 1].to_image(
                    resolution=_POINTS_PER_INCH * scale
                )
                return page_image.original.convert("RGB")
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber render failed: {exc}") from exc

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return len(pdf.pages)
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber open failed: {exc}") from exc

    @staticmethod
    def _metadata(pdf: pdfplumber.PDF) -> PdfMetadata | None:
        try:
            return build_metadata(pdf.metadata)
        except Exception as exc:
            Log.warning(f"Cannot read PDF metadata: {exc}")
            return None
