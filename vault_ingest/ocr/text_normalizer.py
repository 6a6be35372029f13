"""Post-OCR repair of a systematic currency-glyph misread.

Depending on font and scan quality the rupee glyph is recognized as the digit
``3``, the letters ``z``/``Z`` or ``%``. A lone ``3`` in front of a price is
ambiguous and only repaired after a financial keyword. Once the pattern shows
up ``document_threshold`` times it is treated as a systematic misread and
repaired everywhere, including list amounts no keyword precedes.
"""

import re
from typing import ClassVar

RUPEE_GLYPH = "₹"
DEFAULT_DOCUMENT_THRESHOLD = 2

_PRICE = r"\d[\d,]*\.\d{2}(?!\d)"


class TextNormalizer:
    FINANCIAL_KEYWORDS: ClassVar[tuple[str, ...]] = (
        r"Grand\s+Total",
        r"Bill\s+Total",
        r"Item\s+Total",
        "Total",
        "Amount",
        "Payable",
        "Paid",
        "Net",
        "Due",
        "Bill",
    )

    _ABBREVIATION_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\bRs\s*[.:,]*\s*(?=\d)", re.IGNORECASE
    )

    def __init__(
        self,
        glyph: str = RUPEE_GLYPH,
        document_threshold: int = DEFAULT_DOCUMENT_THRESHOLD,
    ) -> None:
        self._glyph = glyph
        self._document_threshold = document_threshold
        not_after = rf"(?<![\d.,{re.escape(glyph)}])"
        self._digit_misread_re = re.compile(rf"{not_after}3({_PRICE})")
        keywords = "|".join(self.FINANCIAL_KEYWORDS)
        self._keyword_misread_re = re.compile(
            rf"\b({keywords})(\s*:?\s*){not_after}3({_PRICE})", re.IGNORECASE
        )
        self._letter_misread_re = re.compile(rf"(?<![A-Za-z0-9])[zZ%]({_PRICE})")

    def count_digit_misreads(self, text: str) -> int:
        return len(self._digit_misread_re.findall(text))

    def normalize(self, text: str) -> str:
        if not text:
            return text

        if self.count_digit_misreads(text) >= self._document_threshold:
            # A leading minus is not part of the match, so negatives keep their sign.
            text = self._digit_misread_re.sub(lambda m: self._glyph + m.group(1), text)
        else:
            text = self._keyword_misread_re.sub(
                lambda m: f"{m.group(1)}{m.group(2)}{self._glyph}{m.group(3)}", text
            )

        text = self._letter_misread_re.sub(lambda m: self._glyph + m.group(1), text)
        return self._ABBREVIATION_RE.sub("Rs. ", text)
