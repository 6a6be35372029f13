"""Regex and heuristic extraction of dates, amounts, vendor and currency."""

import re
from typing import ClassVar

from vault_ingest.extraction.models import ExtractedEntities, ExtractedField

NO_DESCRIPTION = "No description available"


class EntityExtractor:
    """Pulls structured financial facts out of raw document text.

    Every field carries a confidence in [0, 1]. Keyword-anchored amounts rank
    above bare currency amounts, ISO dates above slash dates.
    """

    ISO_DATE_CONFIDENCE: ClassVar[float] = 0.95
    SLASH_DATE_CONFIDENCE: ClassVar[float] = 0.75
    KEYWORD_AMOUNT_CONFIDENCE: ClassVar[float] = 0.95
    SYMBOL_AMOUNT_CONFIDENCE: ClassVar[float] = 0.85
    KEYWORD_VENDOR_CONFIDENCE: ClassVar[float] = 0.9
    LETTERHEAD_VENDOR_CONFIDENCE: ClassVar[float] = 0.7

    TWO_DIGIT_YEAR_PIVOT: ClassVar[int] = 50
    VENDOR_SCAN_LINES: ClassVar[int] = 5
    DESCRIPTION_LINES: ClassVar[int] = 3
    DESCRIPTION_LINE_LIMIT: ClassVar[int] = 100
    DESCRIPTION_LIMIT: ClassVar[int] = 200

    CURRENCY_SYMBOLS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("$", "USD"),
        ("€", "EUR"),
        ("£", "GBP"),
        ("¥", "JPY"),
        ("₹", "INR"),
    )
    DEFAULT_CURRENCY: ClassVar[str] = "USD"

    _ISO_DATE_RE: ClassVar[re.Pattern[str]] = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
    _SLASH_DATE_RE: ClassVar[re.Pattern[str]] = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{2,4})\b")
    _KEYWORD_AMOUNT_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\b(?:Total|Amount|Due)(?:\s*:|\s+is)?\s*[$€£¥₹]?\s*([\d,]+(?:\.\d{2})?)",
        re.IGNORECASE,
    )
    _SYMBOL_AMOUNT_RE: ClassVar[re.Pattern[str]] = re.compile(r"[$€£¥₹]\s*([\d,]+(?:\.\d{2})?)")
    _VENDOR_KEYWORD_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\b(?i:From|Merchant|Vendor|Store)(?:\s*:)?[ \t]+([A-Z][A-Za-z0-9 \t&'.,-]+?)[ \t]*$",
        re.MULTILINE,
    )
    _LETTERHEAD_RE: ClassVar[re.Pattern[str]] = re.compile(r"^[A-Z][A-Z0-9\s&'.,-]+$")
    _CURRENCY_CODE_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\b(USD|EUR|GBP|CAD|AUD|JPY|CNY|INR)\b", re.IGNORECASE
    )

    def extract(self, text: str) -> ExtractedEntities:
        dates = self.extract_dates(text)
        amounts = self.extract_amounts(text)
        return ExtractedEntities(
            date=dates[0] if dates else None,
            amount=amounts[0] if amounts else None,
            vendor=self.extract_vendor(text),
            description=self.generate_description(text),
            currency=self.detect_currency(text),
            all_amounts=amounts,
            all_dates=dates,
        )

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def extract_dates(self, text: str) -> list[ExtractedField[str]]:
        """ISO dates first, then M/D/Y dates; deduplicated, first occurrence wins."""
        dates: list[ExtractedField[str]] = []
        seen: set[str] = set()

        for match in self._ISO_DATE_RE.finditer(text):
            year, month, day = (int(part) for part in match.groups())
            value = _iso_date(year, month, day)
            if value is not None and value not in seen:
                seen.add(value)
                dates.append(ExtractedField(value, self.ISO_DATE_CONFIDENCE))

        for match in self._SLASH_DATE_RE.finditer(text):
            month, day, year = (int(part) for part in match.groups())
            if year < 100:
                year += 2000 if year < self.TWO_DIGIT_YEAR_PIVOT else 1900
            value = _iso_date(year, month, day)
            if value is not None and value not in seen:
                seen.add(value)
                dates.append(ExtractedField(value, self.SLASH_DATE_CONFIDENCE))

        return dates

    # ------------------------------------------------------------------
    # Amounts
    # ------------------------------------------------------------------

    def extract_amounts(self, text: str) -> list[ExtractedField[float]]:
        """Keyword and currency-symbol amounts, best confidence per value first."""
        best: dict[float, float] = {}
        order: list[float] = []

        candidates = [
            (self._SYMBOL_AMOUNT_RE, self.SYMBOL_AMOUNT_CONFIDENCE),
            (self._KEYWORD_AMOUNT_RE, self.KEYWORD_AMOUNT_CONFIDENCE),
        ]
        for pattern, confidence in candidates:
            for match in pattern.finditer(text):
                value = _parse_amount(match.group(1))
                if value is None or value <= 0:
                    continue
                if value not in best:
                    order.append(value)
                    best[value] = confidence
                else:
                    best[value] = max(best[value], confidence)

        amounts = [ExtractedField(value, best[value]) for value in order]
        # sorted() is stable: equal confidences keep document order.
        return sorted(amounts, key=lambda item: item.confidence, reverse=True)

    # ------------------------------------------------------------------
    # Vendor
    # ------------------------------------------------------------------

    def extract_vendor(self, text: str) -> ExtractedField[str] | None:
        for match in self._VENDOR_KEYWORD_RE.finditer(text):
            vendor = match.group(1).strip()
            if 2 <= len(vendor) <= 50:
                return ExtractedField(vendor, self.KEYWORD_VENDOR_CONFIDENCE)

        for line in text.split("\n")[: self.VENDOR_SCAN_LINES]:
            candidate = line.strip()
            if (
                3 <= len(candidate) <= 40
                and candidate == candidate.upper()
                and self._LETTERHEAD_RE.match(candidate)
            ):
                return ExtractedField(candidate, self.LETTERHEAD_VENDOR_CONFIDENCE)

        return None

    # ------------------------------------------------------------------
    # Currency & description
    # ------------------------------------------------------------------

    def detect_currency(self, text: str) -> str:
        for symbol, code in self.CURRENCY_SYMBOLS:
            if symbol in text:
                return code
        match = self._CURRENCY_CODE_RE.search(text)
        return match.group(1).upper() if match else self.DEFAULT_CURRENCY

    def generate_description(self, text: str) -> str:
        lines = [line.strip() for line in text.split("\n")]
        eligible = [line for line in lines if 0 < len(line) < self.DESCRIPTION_LINE_LIMIT]

        description = ""
        for line in eligible[: self.DESCRIPTION_LINES]:
            separator = " | " if description else ""
            if len(description) + len(separator) + len(line) > self.DESCRIPTION_LIMIT:
                break
            description += separator + line

        return description or NO_DESCRIPTION


def _iso_date(year: int, month: int, day: int) -> str | None:
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return f"{year:04d}-{month:02d}-{day:02d}"


def _parse_amount(raw: str) -> float | None:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None
