import io

import pytest
from PIL import Image
from pillow_heif import register_heif_opener
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

RECEIPT_LINES = [
    "ACME HARDWARE",
    "123 Main Street, Springfield",
    "Date: 01/15/2024",
    "Hammer 1 x $24.99",
    "Box of nails 2 x $12.50",
    "Paint brush set 1 x $32.07",
    "Total: $82.06",
    "Thank you for shopping with us",
]


def _pdf(pages: list[list[str]], title: str | None = None, author: str | None = None) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    if title is not None:
        c.setTitle(title)
    if author is not None:
        c.setAuthor(author)
    for lines in pages:
        y = 720
        for line in lines:
            c.drawString(72, y, line)
            y -= 18
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    return _pdf([["Hello PDF World"]])


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return _pdf([["Page one content"], ["Page two content"]])


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    return _pdf([[]])


@pytest.fixture()
def receipt_pdf_bytes() -> bytes:
    """Single-page receipt whose text layer is long enough to skip OCR."""
    return _pdf([RECEIPT_LINES])


@pytest.fixture()
def titled_pdf_bytes() -> bytes:
    """Receipt PDF whose info dictionary carries a title and author."""
    return _pdf([RECEIPT_LINES], title="ACME receipt", author="ACME Billing")


@pytest.fixture()
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (400, 300), (240, 240, 240)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def heic_bytes() -> bytes:
    """A 400x300 HEIC photo."""
    register_heif_opener()
    buf = io.BytesIO()
    Image.new("RGB", (400, 300), (240, 240, 240)).save(buf, format="HEIF")
    return buf.getvalue()
