import time
from collections.abc import Iterator

import pymupdf
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


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts and renders PDF pages using PyMuPDF."""

    def __init__(self, min_text_per_page: int = MIN_TEXT_PER_PAGE) -> None:
        self._min_text_per_page = min_text_per_page

    def extract(
        self,
        pdf_bytes: bytes,
        on_page_progress: PageProgressCallback | None = None,
    ) -> PdfExtractionResult:
        started_at = time.perf_counter()
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                total = doc.page_count
                page_texts: list[str] = []
                for page_number, page in enumerate(doc, start=1):
                    page_texts.append(join_fragments(list(self._fragments(page))))
                    if on_page_progress is not None:
                        on_page_progress(page_number, total)
                metadata = self._metadata(doc)
        except ProcessorError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
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
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if page_number < 1 or page_number > doc.page_count:
                    raise PdfExtractionError(
                        f"Invalid page number: {page_number}. "
                        f"PDF has {doc.page_count} pages."
                    )
                page = doc[page_number - 1]
                pixmap = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
                return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf render failed: {exc}") from exc

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return int(doc.page_count)
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf open failed: {exc}") from exc

    @staticmethod
    def _fragments(page: pymupdf.Page) -> Iterator[TextFragment]:
        """Yield text spans in reading order; the last span of a line ends it."""
        layout = page.get_text("dict")
        for block in layout.get("blocks", []):
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                spans = [span for span in line.get("spans", []) if span["text"].strip()]
                for index, span in enumerate(spans):
                    yield TextFragment(
                        text=span["text"].strip(),
                        baseline=float(span["origin"][1]),
                        ends_line=index == len(spans) - 1,
                    )

    @staticmethod
    def _metadata(doc: pymupdf.Document) -> PdfMetadata | None:
        try:
            return build_metadata(doc.metadata)
        except Exception as exc:
            Log.warning(f"Cannot read PDF metadata: {exc}")
            return None
