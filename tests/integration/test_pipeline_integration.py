from unittest.mock import MagicMock

import numpy as np
import pytest

from vault_ingest.config.settings import Settings
from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.ocr.base import BaseOcrEngine
from vault_ingest.processor.exceptions import FileValidationError
from vault_ingest.processor.models import (
    InputFile,
    OcrResult,
    ProcessingOptions,
    ProcessingProgress,
    ProcessingStage,
)
from vault_ingest.processor.processor import Processor, build_processor
from vault_ingest.search.vector_index import VectorIndex
from vault_ingest.worker.batch_runner import BatchRunner


def _ocr_engine(text: str = "Total: 3120.00") -> MagicMock:
    engine = MagicMock(spec=BaseOcrEngine)
    engine.recognize.return_value = OcrResult(text=text, confidence=91.0)
    return engine


def _embedding_provider() -> MagicMock:
    provider = MagicMock(spec=BaseEmbeddingProvider)
    provider.dimensions = 384

    def embed(text: str) -> np.ndarray:
        rng = np.random.default_rng(len(text))
        vector = rng.standard_normal(384).astype(np.float32)
        return vector / np.linalg.norm(vector)

    provider.embed.side_effect = embed
    return provider


@pytest.fixture()
def processor() -> Processor:
    return build_processor(
        Settings(pdf_engine="pymupdf"),
        embedding_provider=_embedding_provider(),
        ocr_engine=_ocr_engine(),
    )


class TestTextPdf:
    def test_receipt_end_to_end(self, processor: Processor, receipt_pdf_bytes: bytes) -> None:
        events: list[ProcessingProgress] = []
        file = InputFile("receipt.pdf", "application/pdf", receipt_pdf_bytes)

        result = processor.process_document(file, on_progress=events.append)

        assert result.ocr_used is False
        assert result.entities.date is not None
        assert result.entities.date.value == "2024-01-15"
        assert result.entities.amount is not None
        assert result.entities.amount.value == pytest.approx(82.06)
        assert result.entities.vendor is not None
        assert result.entities.vendor.value == "ACME HARDWARE"
        assert 0.0 < result.confidence < 1.0
        assert result.confidence == pytest.approx(0.8)
        assert result.file_metadata.page_count == 1
        assert result.embedding is not None
        assert result.embedding.shape == (384,)
        assert result.thumbnail_data_url is not None
        assert result.thumbnail_data_url.startswith("data:image/webp;base64,")

        stages = [e.stage for e in events]
        assert stages[0] is ProcessingStage.VALIDATING
        assert ProcessingStage.EXTRACTING in stages
        assert ProcessingStage.OCR not in stages
        assert stages[-1] is ProcessingStage.COMPLETE
        assert stages.index(ProcessingStage.EMBEDDING) < stages.index(ProcessingStage.SAVING)
        assert all(e.file_id == result.id for e in events)

    def test_document_info_reaches_file_metadata(
        self, processor: Processor, titled_pdf_bytes: bytes
    ) -> None:
        file = InputFile("receipt.pdf", "application/pdf", titled_pdf_bytes)
        result = processor.process_document(file, ProcessingOptions(skip_thumbnail=True))
        pdf_metadata = result.file_metadata.pdf_metadata
        assert pdf_metadata is not None
        assert pdf_metadata.title == "ACME receipt"
        assert result.to_transaction().to_payload().keys() == {
            "id",
            "date",
            "amount",
            "vendor",
            "category",
            "note",
            "currency",
            "created_at",
        }

    def test_forced_ocr_replaces_text_layer(
        self, processor: Processor, receipt_pdf_bytes: bytes
    ) -> None:
        file = InputFile("receipt.pdf", "application/pdf", receipt_pdf_bytes)
        result = processor.process_document(
            file, ProcessingOptions(force_ocr=True, skip_thumbnail=True)
        )
        assert result.ocr_used is True
        assert result.raw_text == "Total: ₹120.00"
        assert result.entities.currency == "INR"
        assert result.thumbnail_data_url is None

    def test_blank_pdf_falls_back_to_ocr(
        self, processor: Processor, empty_pdf_bytes: bytes
    ) -> None:
        file = InputFile("scan.pdf", "application/pdf", empty_pdf_bytes)
        result = processor.process_document(file, ProcessingOptions(skip_embedding=True))
        assert result.ocr_used is True
        assert result.embedding is None
        assert result.entities.amount is not None
        assert result.confidence == pytest.approx(0.95 * 0.9)


class TestImage:
    def test_photo_goes_through_ocr(self, processor: Processor, png_bytes: bytes) -> None:
        events: list[ProcessingProgress] = []
        file = InputFile("photo.png", "image/png", png_bytes)

        result = processor.process_document(file, on_progress=events.append)

        assert result.ocr_used is True
        assert result.file_metadata.page_count is None
        assert result.entities.amount is not None
        assert result.entities.amount.value == pytest.approx(120.0)
        assert ProcessingStage.EXTRACTING not in [e.stage for e in events]
        assert ProcessingStage.OCR in [e.stage for e in events]

    def test_heic_photo_is_decoded(self, processor: Processor, heic_bytes: bytes) -> None:
        file = InputFile("photo.heic", "image/heic", heic_bytes)
        result = processor.process_document(file)
        assert result.ocr_used is True
        assert result.entities.amount is not None
        assert result.thumbnail_data_url is not None


class TestRejectedAndBatch:
    def test_invalid_file_raises_with_error_event(self, processor: Processor) -> None:
        events: list[ProcessingProgress] = []
        file = InputFile("notes.txt", "text/plain", b"hello")
        with pytest.raises(FileValidationError):
            processor.process_document(file, on_progress=events.append)
        assert events[-1].stage is ProcessingStage.ERROR
        assert events[-1].error is not None
        assert events[-1].error.code == "VALIDATION_ERROR"

    def test_batch_and_index(
        self, processor: Processor, receipt_pdf_bytes: bytes, png_bytes: bytes
    ) -> None:
        files = [
            InputFile("receipt.pdf", "application/pdf", receipt_pdf_bytes),
            InputFile("notes.txt", "text/plain", b"hello"),
            InputFile("photo.png", "image/png", png_bytes),
        ]
        batch = BatchRunner(processor).run(files)
        assert len(batch.successful) == 2
        assert [f.file_name for f in batch.failed] == ["notes.txt"]

        index = VectorIndex(384)
        for document in batch.successful:
            assert document.embedding is not None
            index.add_vector(document.id, document.embedding, {"ocr": document.ocr_used})

        target = batch.successful[0]
        assert target.embedding is not None
        top = index.search(target.embedding, k=1)[0]
        assert top.id == target.id
        assert top.score == pytest.approx(1.0, abs=1e-5)

        ocr_only = index.search_with_filter(
            target.embedding, lambda _id, metadata: bool(metadata and metadata["ocr"]), k=5
        )
        assert [r.id for r in ocr_only] == [batch.successful[1].id]
