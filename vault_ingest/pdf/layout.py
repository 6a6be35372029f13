"""Text-layer helpers shared by the PDF adapters.

Engines hand out positioned text fragments. They are joined into lines the
same way regardless of engine: a fragment flagged as ending its line, or a
baseline jump of more than ``LINE_BREAK_TOLERANCE`` layout units to the next
fragment, starts a new line. Anything else is joined with a single space.
"""

import re
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from vault_ingest.processor.models import PdfExtractionResult, PdfMetadata

LINE_BREAK_TOLERANCE = 2.0
MIN_TEXT_PER_PAGE = 50

_PDF_DATE_RE = re.compile(
    r"(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    r"(?:([Zz+-])(?:(\d{2})'?(?:(\d{2})'?)?)?)?"
)


@dataclass(frozen=True)
class TextFragment:
    text: str
    baseline: float | None = None
    ends_line: bool = False


def join_fragments(fragments: Sequence[TextFragment]) -> str:
    parts: list[str] = []
    last = len(fragments) - 1
    for index, fragment in enumerate(fragments):
        parts.append(fragment.text)
        if fragment.ends_line:
            parts.append("\n")
        elif index < last:
            parts.append("\n" if _baseline_changes(fragment, fragments[index + 1]) else " ")
    return "".join(parts).strip()


def _baseline_changes(current: TextFragment, following: TextFragment) -> bool:
    if current.baseline is None or following.baseline is None:
        return False
    return abs(current.baseline - following.baseline) > LINE_BREAK_TOLERANCE


def is_image_based(page_texts: Sequence[str], min_text_per_page: int = MIN_TEXT_PER_PAGE) -> bool:
    """True when more than half of the pages carry almost no text."""
    low_text_pages = sum(1 for text in page_texts if len(text) < min_text_per_page)
    return low_text_pages > len(page_texts) / 2


def build_extraction_result(
    page_texts: list[str],
    min_text_per_page: int,
    started_at: float,
    metadata: PdfMetadata | None = None,
) -> PdfExtractionResult:
    """Assemble the result; ``started_at`` is a ``time.perf_counter()`` reading."""
    return PdfExtractionResult(
        text="\n\n".join(page_texts),
        page_count=len(page_texts),
        is_image_based=is_image_based(page_texts, min_text_per_page),
        page_texts=page_texts,
        extraction_time_ms=(time.perf_counter() - started_at) * 1000,
        metadata=metadata,
    )


def build_metadata(info: Mapping[str, object] | None) -> PdfMetadata | None:
    """Map an engine's document info dictionary onto PdfMetadata.

    Keys are matched case-insensitively, so both ``Title`` and ``title`` work.
    Returns None when the dictionary carries nothing usable.
    """
    if not info:
        return None
    fields = {key.lower(): _info_text(value) for key, value in info.items()}
    metadata = PdfMetadata(
        title=fields.get("title"),
        author=fields.get("author"),
        subject=fields.get("subject"),
        keywords=fields.get("keywords"),
        creator=fields.get("creator"),
        producer=fields.get("producer"),
        creation_date=parse_pdf_date(fields.get("creationdate")),
        modification_date=parse_pdf_date(fields.get("moddate")),
    )
    return None if metadata == PdfMetadata() else metadata


def parse_pdf_date(raw: str | None) -> datetime | None:
    """Parse a ``D:YYYYMMDDHHmmSSOHH'mm'`` date; missing parts default low.

    A date without an offset is read as UTC.
    """
    if not raw:
        return None
    match = _PDF_DATE_RE.match(raw.strip())
    if match is None:
        return None
    year, month, day, hour, minute, second, sign, tz_hours, tz_minutes = match.groups()

    tz = timezone.utc
    if sign in ("+", "-") and tz_hours:
        offset = timedelta(hours=int(tz_hours), minutes=int(tz_minutes or 0))
        tz = timezone(offset if sign == "+" else -offset)
    try:
        return datetime(
            int(year),
            int(month or 1),
            int(day or 1),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            tzinfo=tz,
        )
    except ValueError:
        return None


def _info_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        encoding = "utf-16" if value.startswith((b"\xfe\xff", b"\xff\xfe")) else "latin-1"
        value = value.decode(encoding, errors="replace")
    text = str(value).strip()
    return text or None
