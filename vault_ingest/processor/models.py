from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import numpy as np

from vault_ingest.extraction.models import ExtractedEntities


@dataclass(frozen=True)
class InputFile:
    """A user-supplied file: its metadata plus the raw content."""

    name: str
    mime_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class FileKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"


@dataclass(frozen=True)
class PdfSource:
    file: InputFile


@dataclass(frozen=True)
class ImageSource:
    file: InputFile


DocumentSource = PdfSource | ImageSource


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of file validation. Produced once per file, never mutated."""

    is_valid: bool
    error: str | None = None
    file_type: FileKind | None = None
    mime_type: str = ""
    size_bytes: int = 0
    source: DocumentSource | None = None


@dataclass(frozen=True)
class PdfMetadata:
    """Document information dictionary of a PDF."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: str | None = None
    creator: str | None = None
    producer: str | None = None
    creation_date: datetime | None = None
    modification_date: datetime | None = None


@dataclass(frozen=True)
class PdfExtractionResult:
    """Text layer pulled from a PDF, page by page."""

    text: str
    page_count: int
    is_image_based: bool
    page_texts: list[str] = field(default_factory=list)
    extraction_time_ms: float = 0.0
    metadata: PdfMetadata | None = None


@dataclass(frozen=True)
class OcrResult:
    """Recognized text. ``confidence`` is on the engine's 0-100 scale."""

    text: str
    confidence: float
    processing_time_ms: float = 0.0


@dataclass(frozen=True)
class ProcessingOptions:
    skip_embedding: bool = False
    skip_thumbnail: bool = False
    ocr_language: str = "eng"
    force_ocr: bool = False
    min_text_for_no_ocr: int = 100


class ProcessingStage(str, Enum):
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    OCR = "ocr"
    EMBEDDING = "embedding"
    SAVING = "saving"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ProcessingErrorInfo:
    code: str
    message: str
    recoverable: bool = True


@dataclass(frozen=True)
class ProcessingProgress:
    """A single progress event emitted to the caller's sink."""

    file_id: str
    file_name: str
    stage: ProcessingStage
    progress: int
    current_page: int | None = None
    total_pages: int | None = None
    error: ProcessingErrorInfo | None = None


@dataclass(frozen=True)
class FileMetadata:
    original_name: str
    mime_type: str
    size_bytes: int
    page_count: int | None = None
    pdf_metadata: PdfMetadata | None = None


@dataclass(frozen=True)
class SyncableTransaction:
    """The only shape of a processed document allowed to leave the device."""

    id: str
    date: str | None
    amount: float | None
    vendor: str | None
    category: str | None
    note: str | None
    currency: str
    created_at: datetime

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "date": self.date,
            "amount": self.amount,
            "vendor": self.vendor,
            "category": self.category,
            "note": self.note,
            "currency": self.currency,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ProcessedDocumentResult:
    """Terminal artifact of the pipeline.

    ``raw_text`` and ``embedding`` are device-local. Only the structured
    fields reachable through :meth:`to_transaction` may be synchronized.
    """

    id: str
    raw_text: str
    embedding: np.ndarray | None
    entities: ExtractedEntities
    file_metadata: FileMetadata
    confidence: float
    processing_time_ms: float
    ocr_used: bool
    thumbnail_data_url: str | None = None

    def to_transaction(
        self,
        category: str | None = None,
        note: str | None = None,
    ) -> SyncableTransaction:
        entities = self.entities
        return SyncableTransaction(
            id=self.id,
            date=entities.date.value if entities.date else None,
            amount=entities.amount.value if entities.amount else None,
            vendor=entities.vendor.value if entities.vendor else None,
            category=category,
            note=note,
            currency=entities.currency,
            created_at=datetime.now(timezone.utc),
        )


@dataclass(frozen=True)
class BatchFailure:
    file_id: str | None
    file_name: str
    error: str


@dataclass
class BatchProcessingResult:
    successful: list[ProcessedDocumentResult] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)
    total_time_ms: float = 0.0
