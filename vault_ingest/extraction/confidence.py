from vault_ingest.extraction.models import ExtractedEntities

DEFAULT_OCR_DISCOUNT = 0.9
DEFAULT_CONFIDENCE_FLOOR = 0.3


class ConfidenceAggregator:
    """Combines per-field confidences into one document-level score in [0, 1]."""

    def __init__(
        self,
        ocr_discount: float = DEFAULT_OCR_DISCOUNT,
        floor: float = DEFAULT_CONFIDENCE_FLOOR,
    ) -> None:
        self._ocr_discount = ocr_discount
        self._floor = floor

    def aggregate(self, entities: ExtractedEntities, ocr_used: bool) -> float:
        scores = [
            extracted.confidence
            for extracted in (entities.date, entities.amount, entities.vendor)
            if extracted is not None
        ]
        if not scores:
            return self._floor

        average = sum(scores) / len(scores)
        return average * self._ocr_discount if ocr_used else average
