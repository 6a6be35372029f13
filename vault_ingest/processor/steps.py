from PIL import Image, UnidentifiedImageError

from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.embedding.exceptions import EmbeddingError
from vault_ingest.extraction.confidence import ConfidenceAggregator
from vault_ingest.extraction.entity_extractor import EntityExtractor
from vault_ingest.logging.logger import Log
from vault_ingest.ocr.base import BaseOcrEngine, OcrProgressCallback
from vault_ingest.ocr.exceptions import RecognitionError
from vault_ingest.ocr.preprocessor import ImagePreprocessor
from vault_ingest.ocr.text_normalizer import TextNormalizer
from vault_ingest.pdf.base import BasePdfExtractor
from vault_ingest.processor.exceptions import FileValidationError
from vault_ingest.processor.models import ImageSource, PdfSource, ProcessingStage
from vault_ingest.processor.pipeline import PipelineContext, PipelineStep
from vault_ingest.processor.validator import FileValidator
from vault_ingest.resources.images import open_image
from vault_ingest.thumbnail.generator import ThumbnailGenerator


class ValidateStep(PipelineStep):
    def __init__(self, validator: FileValidator) -> None:
        self._validator = validator

    def run(self, context: PipelineContext) -> PipelineContext:
        context.report(ProcessingStage.VALIDATING, 0)
        result = self._validator.validate(context.file)
        context.validation = result
        if not result.is_valid:
            raise FileValidationError(result)
        context.source = result.source
        context.report(ProcessingStage.VALIDATING, 100)
        return context


class ExtractTextStep(PipelineStep):
    """Reads the PDF text layer. Images have none and are left to OcrStep."""

    def __init__(self, pdf_extractor: BasePdfExtractor) -> None:
        self._pdf_extractor = pdf_extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        match context.source:
            case PdfSource(file=file):
                if context.options.force_ocr:
                    context.page_count = self._pdf_extractor.page_count(file.data)
                    return context

                context.report(ProcessingStage.EXTRACTING, 0)

                def on_page(current: int, total: int) -> None:
                    context.report(
                        ProcessingStage.EXTRACTING,
                        round(current / total * 100),
                        current_page=current,
                        total_pages=total,
                    )

                result = self._pdf_extractor.extract(file.data, on_page)
                context.pdf_result = result
                context.raw_text = result.text
                context.page_count = result.page_count
                Log.info(
                    f"Extracted {len(result.text)} chars from {result.page_count} pages",
                    file_id=context.file_id,
                    image_based=result.is_image_based,
                )
            case ImageSource():
                pass
            case _:
                raise ValueError("PipelineContext.source must be set before extraction")
        return context


class OcrStep(PipelineStep):
    """Renders, contrast-stretches, recognizes and repairs page images.

    Images always go through OCR. PDFs do when OCR is forced, when the text
    layer looks image-based or when it is shorter than the configured minimum.
    """

    def __init__(
        self,
        pdf_extractor: BasePdfExtractor,
        ocr_engine: BaseOcrEngine,
        preprocessor: ImagePreprocessor,
        normalizer: TextNormalizer,
        max_pages: int = 5,
        render_scale: float = 2.0,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._ocr_engine = ocr_engine
        self._preprocessor = preprocessor
        self._normalizer = normalizer
        self._max_pages = max_pages
        self._render_scale = render_scale

    def run(self, context: PipelineContext) -> PipelineContext:
        match context.source:
            case PdfSource(file=file):
                if not self._needs_ocr(context):
                    return context
                context.raw_text = self._recognize_pdf(context, file.data)
            case ImageSource(file=file):
                context.raw_text = self._recognize_image(context, file.data)
            case _:
                raise ValueError("PipelineContext.source must be set before OCR")
        context.ocr_used = True
        return context

    def _needs_ocr(self, context: PipelineContext) -> bool:
        options = context.options
        if options.force_ocr:
            return True
        if context.pdf_result is not None and context.pdf_result.is_image_based:
            return True
        return len(context.raw_text) < options.min_text_for_no_ocr

    def _recognize_pdf(self, context: PipelineContext, pdf_bytes: bytes) -> str:
        page_count = context.page_count
        if page_count is None:
            page_count = self._pdf_extractor.page_count(pdf_bytes)
            context.page_count = page_count
        pages = min(page_count, self._max_pages)
        context.report(ProcessingStage.OCR, 0, current_page=1 if pages else None, total_pages=pages)

        page_texts: list[str] = []
        for page_number in range(1, pages + 1):
            image = self._pdf_extractor.render_page(pdf_bytes, page_number, self._render_scale)

            def on_progress(value: int, page_number: int = page_number) -> None:
                overall = ((page_number - 1) * 100 + value) / pages
                context.report(
                    ProcessingStage.OCR,
                    round(overall),
                    current_page=page_number,
                    total_pages=pages,
                )

            page_texts.append(self._recognize(context, image, on_progress))

        if page_count > pages:
            Log.info(
                f"OCR limited to the first {pages} of {page_count} pages",
                file_id=context.file_id,
            )
        return "\n\n".join(text for text in page_texts if text)

    def _recognize_image(self, context: PipelineContext, data: bytes) -> str:
        context.report(ProcessingStage.OCR, 0)
        try:
            image = open_image(data).convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise RecognitionError(f"Cannot decode image: {exc}") from exc

        def on_progress(value: int) -> None:
            context.report(ProcessingStage.OCR, value)

        return self._recognize(context, image, on_progress)

    def _recognize(
        self,
        context: PipelineContext,
        image: Image.Image,
        on_progress: OcrProgressCallback,
    ) -> str:
        prepared = self._preprocessor.preprocess(image)
        result = self._ocr_engine.recognize(prepared, context.options.ocr_language, on_progress)
        Log.debug(
            f"OCR recognized {len(result.text)} chars",
            file_id=context.file_id,
            ocr_confidence=result.confidence,
        )
        return self._normalizer.normalize(result.text.strip())


class ExtractEntitiesStep(PipelineStep):
    def __init__(self, entity_extractor: EntityExtractor) -> None:
        self._entity_extractor = entity_extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        context.report(ProcessingStage.EMBEDDING, 0)
        context.entities = self._entity_extractor.extract(context.raw_text)
        Log.info(
            f"Extracted {len(context.entities.all_amounts)} amounts and "
            f"{len(context.entities.all_dates)} dates",
            file_id=context.file_id,
        )
        return context


class ScoreStep(PipelineStep):
    def __init__(self, aggregator: ConfidenceAggregator) -> None:
        self._aggregator = aggregator

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.entities is None:
            raise ValueError("PipelineContext.entities must be set before scoring")
        context.confidence = self._aggregator.aggregate(context.entities, context.ocr_used)
        return context


class EmbedStep(PipelineStep):
    def __init__(
        self,
        embedding_provider: BaseEmbeddingProvider | None,
        expected_dimensions: int,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._expected_dimensions = expected_dimensions

    def run(self, context: PipelineContext) -> PipelineContext:
        if (
            context.options.skip_embedding
            or self._embedding_provider is None
            or not context.raw_text.strip()
        ):
            context.report(ProcessingStage.EMBEDDING, 100)
            return context

        context.report(ProcessingStage.EMBEDDING, 50)
        embedding = self._embedding_provider.embed(context.raw_text)
        if embedding.shape != (self._expected_dimensions,):
            raise EmbeddingError(
                f"Embedding has shape {embedding.shape}, "
                f"expected ({self._expected_dimensions},)"
            )
        context.embedding = embedding
        context.report(ProcessingStage.EMBEDDING, 100)
        return context


class ThumbnailStep(PipelineStep):
    """Best-effort preview. Failures are logged and never abort the document."""

    def __init__(self, pdf_extractor: BasePdfExtractor, generator: ThumbnailGenerator) -> None:
        self._pdf_extractor = pdf_extractor
        self._generator = generator

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.options.skip_thumbnail:
            return context

        context.report(ProcessingStage.SAVING, 0)
        try:
            match context.source:
                case PdfSource(file=file):
                    image = self._pdf_extractor.render_page(file.data, 1, 1.0)
                    thumbnail = self._generator.generate(image)
                case ImageSource(file=file):
                    thumbnail = self._generator.generate_from_bytes(file.data)
                case _:
                    raise ValueError("PipelineContext.source must be set before thumbnailing")
            context.thumbnail_data_url = thumbnail.data_url
        except Exception as exc:
            Log.warning(f"Thumbnail generation failed: {exc}", file_id=context.file_id)
        context.report(ProcessingStage.SAVING, 100)
        return context
