from unittest.mock import MagicMock

import numpy as np
import pytest
from PIL import Image

from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.embedding.exceptions import EmbeddingError
from vault_ingest.extraction.confidence import ConfidenceAggregator
from vault_ingest.extraction.entity_extractor import EntityExtractor
from vault_ingest.extraction.models import ExtractedEntities, ExtractedField
from vault_ingest.ocr.base import BaseOcrEngine
from vault_ingest.ocr.exceptions import RecognitionError
from vault_ingest.ocr.preprocessor import ImagePreprocessor
from vault_ingest.ocr.text_normalizer import RUPEE_GLYPH, TextNormalizer
from vault_ingest.pdf.base import BasePdfExtractor
from vault_ingest.processor.cancellation import CancellationToken
from vault_ingest.processor.exceptions import FileValidationError
from vault_ingest.processor.models import (
    ImageSource,
    InputFile,
    OcrResult,
    PdfExtractionResult,
    PdfSource,
    ProcessingOptions,
    ProcessingProgress,
    ProcessingStage,
)
from vault_ingest.processor.pipeline import PipelineContext
from vault_ingest.processor.steps import (
    EmbedStep,
    ExtractEntitiesStep,
    ExtractTextStep,
    OcrStep,
    ScoreStep,
    ThumbnailStep,
    ValidateStep,
)
from vault_ingest.processor.validator import FileValidator
from vault_ingest.thumbnail.generator import ThumbnailGenerator

PDF = InputFile("r.pdf", "application/pdf", b"%PDF-fake")


def _context(
    file: InputFile = PDF,
    options: ProcessingOptions | None = None,
    events: list[ProcessingProgress] | None = None,
) -> PipelineContext:
    context = PipelineContext(
        file_id="doc-1",
        file=file,
        options=options or ProcessingOptions(),
        cancel_token=CancellationToken("doc-1"),
        on_progress=events.append if events is not None else None,
    )
    return context


def _pdf_result(text: str, image_based: bool = False, pages: int = 1) -> PdfExtractionResult:
    return PdfExtractionResult(
        text=text,
        page_count=pages,
        is_image_based=image_based,
        page_texts=[text],
    )


class TestValidateStep:
    def test_sets_source(self) -> None:
        events: list[ProcessingProgress] = []
        context = ValidateStep(FileValidator()).run(_context(events=events))
        assert context.source == PdfSource(PDF)
        assert [(e.stage, e.progress) for e in events] == [
            (ProcessingStage.VALIDATING, 0),
            (ProcessingStage.VALIDATING, 100),
        ]

    def test_rejects_invalid_file(self) -> None:
        context = _context(file=InputFile("a.txt", "text/plain", b"hi"))
        with pytest.raises(FileValidationError, match="Unsupported file type"):
            ValidateStep(FileValidator()).run(context)
        assert context.validation is not None
        assert not context.validation.is_valid


class TestExtractTextStep:
    def test_pdf_text_layer_with_page_progress(self) -> None:
        extractor = MagicMock(spec=BasePdfExtractor)

        def extract(data, on_page_progress):  # type: ignore[no-untyped-def]
            on_page_progress(1, 2)
            on_page_progress(2, 2)
            return _pdf_result("page text", pages=2)

        extractor.extract.side_effect = extract
        events: list[ProcessingProgress] = []
        context = _context(events=events)
        context.source = PdfSource(PDF)

        ExtractTextStep(extractor).run(context)

        assert context.raw_text == "page text"
        assert context.page_count == 2
        assert [(e.progress, e.current_page, e.total_pages) for e in events] == [
            (0, None, None),
            (50, 1, 2),
            (100, 2, 2),
        ]
        assert all(e.stage is ProcessingStage.EXTRACTING for e in events)

    def test_force_ocr_skips_text_layer(self) -> None:
        extractor = MagicMock(spec=BasePdfExtractor)
        extractor.page_count.return_value = 3
        context = _context(options=ProcessingOptions(force_ocr=True))
        context.source = PdfSource(PDF)

        ExtractTextStep(extractor).run(context)

        extractor.extract.assert_not_called()
        assert context.page_count == 3

    def test_images_have_no_text_layer(self) -> None:
        extractor = MagicMock(spec=BasePdfExtractor)
        image = InputFile("r.png", "image/png", b"png")
        context = _context(file=image)
        context.source = ImageSource(image)
        ExtractTextStep(extractor).run(context)
        extractor.extract.assert_not_called()
        assert context.raw_text == ""


def _ocr_step(
    extractor: MagicMock | None = None,
    engine: MagicMock | None = None,
    max_pages: int = 5,
) -> tuple[OcrStep, MagicMock, MagicMock]:
    extractor = extractor or MagicMock(spec=BasePdfExtractor)
    extractor.render_page.return_value = Image.new("RGB", (20, 20), "white")
    engine = engine or MagicMock(spec=BaseOcrEngine)
    engine.recognize.return_value = OcrResult(text="Total: 3120.00\n", confidence=88.0)
    step = OcrStep(extractor, engine, ImagePreprocessor(), TextNormalizer(), max_pages=max_pages)
    return step, extractor, engine


class TestOcrStep:
    def test_long_text_layer_skips_ocr(self) -> None:
        step, _, engine = _ocr_step()
        context = _context()
        context.source = PdfSource(PDF)
        context.pdf_result = _pdf_result("x" * 150)
        context.raw_text = "x" * 150

        step.run(context)

        engine.recognize.assert_not_called()
        assert context.ocr_used is False

    def test_short_text_layer_triggers_ocr(self) -> None:
        step, extractor, engine = _ocr_step()
        context = _context()
        context.source = PdfSource(PDF)
        context.pdf_result = _pdf_result("x" * 60)
        context.raw_text = "x" * 60
        context.page_count = 1

        step.run(context)

        assert context.ocr_used is True
        assert context.raw_text == f"Total: {RUPEE_GLYPH}120.00"
        extractor.render_page.assert_called_once_with(PDF.data, 1, 2.0)

    def test_image_based_pdf_triggers_ocr(self) -> None:
        step, _, engine = _ocr_step()
        context = _context()
        context.source = PdfSource(PDF)
        context.pdf_result = _pdf_result("x" * 500, image_based=True)
        context.raw_text = "x" * 500
        context.page_count = 1
        step.run(context)
        engine.recognize.assert_called_once()

    def test_pages_capped_and_joined(self) -> None:
        step, extractor, engine = _ocr_step(max_pages=2)
        context = _context(options=ProcessingOptions(force_ocr=True, ocr_language="hin"))
        context.source = PdfSource(PDF)
        context.page_count = 7

        step.run(context)

        assert extractor.render_page.call_count == 2
        assert context.raw_text == f"Total: {RUPEE_GLYPH}120.00\n\nTotal: {RUPEE_GLYPH}120.00"
        assert engine.recognize.call_args.args[1] == "hin"

    def test_ocr_receives_contrast_stretched_image(self) -> None:
        step, _, engine = _ocr_step()
        context = _context(options=ProcessingOptions(force_ocr=True))
        context.source = PdfSource(PDF)
        context.page_count = 1
        step.run(context)
        image = engine.recognize.call_args.args[0]
        assert image.mode == "RGBA"

    def test_page_progress_is_overall(self) -> None:
        engine = MagicMock(spec=BaseOcrEngine)

        def recognize(image, language, on_progress):  # type: ignore[no-untyped-def]
            on_progress(100)
            return OcrResult(text="ok", confidence=90.0)

        step, _, engine = _ocr_step(engine=engine)
        engine.recognize.side_effect = recognize
        events: list[ProcessingProgress] = []
        context = _context(options=ProcessingOptions(force_ocr=True), events=events)
        context.source = PdfSource(PDF)
        context.page_count = 2

        step.run(context)

        assert [(e.progress, e.current_page) for e in events] == [(0, 1), (50, 1), (100, 2)]

    def test_image_is_decoded_and_recognized(self, png_bytes: bytes) -> None:
        step, _, engine = _ocr_step()
        image = InputFile("r.png", "image/png", png_bytes)
        context = _context(file=image)
        context.source = ImageSource(image)

        step.run(context)

        assert context.ocr_used is True
        assert engine.recognize.call_args.args[0].size == (400, 300)

    def test_undecodable_image_raises(self) -> None:
        step, _, _ = _ocr_step()
        image = InputFile("r.heic", "image/heic", b"not an image")
        context = _context(file=image)
        context.source = ImageSource(image)
        with pytest.raises(RecognitionError, match="Cannot decode image"):
            step.run(context)


class TestExtractEntitiesAndScore:
    def test_entities_then_confidence(self) -> None:
        context = _context()
        context.raw_text = "Total: $82.06"
        ExtractEntitiesStep(EntityExtractor()).run(context)
        ScoreStep(ConfidenceAggregator()).run(context)
        assert context.entities is not None
        assert context.entities.amount == ExtractedField(82.06, 0.95)
        assert context.confidence == pytest.approx(0.95)

    def test_score_discounts_ocr(self) -> None:
        context = _context()
        context.ocr_used = True
        context.entities = ExtractedEntities(amount=ExtractedField(1.0, 1.0))
        ScoreStep(ConfidenceAggregator()).run(context)
        assert context.confidence == pytest.approx(0.9)


class TestEmbedStep:
    def _provider(self, vector: np.ndarray) -> MagicMock:
        provider = MagicMock(spec=BaseEmbeddingProvider)
        provider.embed.return_value = vector
        return provider

    def test_embeds_raw_text(self) -> None:
        provider = self._provider(np.ones(4, dtype=np.float32))
        context = _context()
        context.raw_text = "receipt"
        EmbedStep(provider, 4).run(context)
        provider.embed.assert_called_once_with("receipt")
        assert context.embedding is not None
        assert context.embedding.shape == (4,)

    def test_wrong_length_raises(self) -> None:
        context = _context()
        context.raw_text = "receipt"
        with pytest.raises(EmbeddingError, match="expected"):
            EmbedStep(self._provider(np.ones(3, dtype=np.float32)), 4).run(context)

    def test_skip_embedding(self) -> None:
        provider = self._provider(np.ones(4, dtype=np.float32))
        context = _context(options=ProcessingOptions(skip_embedding=True))
        context.raw_text = "receipt"
        EmbedStep(provider, 4).run(context)
        provider.embed.assert_not_called()
        assert context.embedding is None

    def test_no_provider(self) -> None:
        context = _context()
        context.raw_text = "receipt"
        assert EmbedStep(None, 4).run(context).embedding is None


class TestThumbnailStep:
    def test_pdf_thumbnail_from_first_page(self) -> None:
        extractor = MagicMock(spec=BasePdfExtractor)
        extractor.render_page.return_value = Image.new("RGB", (612, 792), "white")
        context = _context()
        context.source = PdfSource(PDF)

        ThumbnailStep(extractor, ThumbnailGenerator()).run(context)

        extractor.render_page.assert_called_once_with(PDF.data, 1, 1.0)
        assert context.thumbnail_data_url is not None
        assert context.thumbnail_data_url.startswith("data:image/webp;base64,")

    def test_failure_is_not_fatal(self) -> None:
        events: list[ProcessingProgress] = []
        extractor = MagicMock(spec=BasePdfExtractor)
        extractor.render_page.side_effect = RuntimeError("render failed")
        context = _context(events=events)
        context.source = PdfSource(PDF)

        ThumbnailStep(extractor, ThumbnailGenerator()).run(context)

        assert context.thumbnail_data_url is None
        assert events[-1].stage is ProcessingStage.SAVING
        assert events[-1].progress == 100

    def test_skip_thumbnail(self) -> None:
        extractor = MagicMock(spec=BasePdfExtractor)
        context = _context(options=ProcessingOptions(skip_thumbnail=True))
        context.source = PdfSource(PDF)
        ThumbnailStep(extractor, ThumbnailGenerator()).run(context)
        extractor.render_page.assert_not_called()
