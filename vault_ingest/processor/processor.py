import threading
from collections.abc import Sequence
from time import perf_counter

from vault_ingest.config.settings import Settings
from vault_ingest.embedding.base import BaseEmbeddingProvider
from vault_ingest.embedding.factory import EmbeddingProviderFactory
from vault_ingest.extraction.confidence import ConfidenceAggregator
from vault_ingest.extraction.entity_extractor import EntityExtractor
from vault_ingest.logging.logger import Log
from vault_ingest.ocr.base import BaseOcrEngine
from vault_ingest.ocr.factory import OcrEngineFactory
from vault_ingest.ocr.preprocessor import ImagePreprocessor
from vault_ingest.ocr.text_normalizer import TextNormalizer
from vault_ingest.pdf.factory import PdfExtractorFactory
from vault_ingest.processor.cancellation import CancellationToken
from vault_ingest.processor.exceptions import DocumentProcessingError, ProcessorError
from vault_ingest.processor.models import (
    FileMetadata,
    InputFile,
    ProcessedDocumentResult,
    ProcessingErrorInfo,
    ProcessingOptions,
    ProcessingStage,
)
from vault_ingest.processor.pipeline import PipelineContext, PipelineStep, ProgressCallback
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


class Processor:
    """Orchestrates the document processing pipeline.

    Pipeline: validate -> extract -> OCR -> entities -> score -> embed -> thumbnail.
    Cancellation is checked before every step and once more before the result
    is assembled. One document at a time per instance: the OCR engine does not
    accept concurrent recognition.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        ocr_engine: BaseOcrEngine,
        default_options: ProcessingOptions | None = None,
    ) -> None:
        self._steps = list(steps)
        self._ocr_engine = ocr_engine
        self._default_options = default_options or ProcessingOptions()
        self._tokens: dict[str, CancellationToken] = {}
        self._tokens_lock = threading.Lock()

    def create_cancel_token(self) -> CancellationToken:
        """Issue a token whose ``file_id`` becomes the id of the processed document."""
        token = CancellationToken()
        with self._tokens_lock:
            self._tokens[token.file_id] = token
        return token

    def cancel(self, file_id: str) -> bool:
        """Flag a running document for cancellation. Returns False if unknown."""
        with self._tokens_lock:
            token = self._tokens.get(file_id)
        if token is None:
            return False
        token.cancel()
        Log.info(f"Cancellation requested for document {file_id}")
        return True

    def process_document(
        self,
        file: InputFile,
        options: ProcessingOptions | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ProcessedDocumentResult:
        """Run every step for one file and assemble the result.

        Raises:
            FileValidationError: if the file is rejected.
            ProcessingCancelledError: if the token was cancelled between steps.
            ProcessorError: any other typed pipeline failure; unexpected
                exceptions are wrapped in DocumentProcessingError.
        """
        token = cancel_token or self.create_cancel_token()
        with self._tokens_lock:
            self._tokens.setdefault(token.file_id, token)

        context = PipelineContext(
            file_id=token.file_id,
            file=file,
            options=options or self._default_options,
            cancel_token=token,
            on_progress=on_progress,
        )
        Log.info(
            f"Processing document {context.file_id}",
            file_name=file.name,
            mime_type=file.mime_type,
            size_bytes=file.size_bytes,
        )

        try:
            for step in self._steps:
                token.raise_if_cancelled()
                context = step.run(context)
            token.raise_if_cancelled()
            result = self._assemble(context)
        except ProcessorError as exc:
            self._fail(context, exc)
            raise
        except Exception as exc:
            wrapped = DocumentProcessingError(str(exc) or type(exc).__name__)
            self._fail(context, wrapped)
            raise wrapped from exc
        finally:
            with self._tokens_lock:
                self._tokens.pop(token.file_id, None)

        context.report(ProcessingStage.COMPLETE, 100)
        Log.info(
            f"Processed document {result.id} in {result.processing_time_ms:.0f} ms",
            ocr_used=result.ocr_used,
            confidence=result.confidence,
        )
        return result

    def terminate(self) -> None:
        """Release the cached OCR engine and forget pending cancellations."""
        self._ocr_engine.terminate()
        with self._tokens_lock:
            self._tokens.clear()
        Log.info("Processor terminated")

    def _assemble(self, context: PipelineContext) -> ProcessedDocumentResult:
        if context.entities is None:
            raise DocumentProcessingError("Pipeline finished without extracted entities")
        file = context.file
        return ProcessedDocumentResult(
            id=context.file_id,
            raw_text=context.raw_text,
            embedding=context.embedding,
            entities=context.entities,
            file_metadata=FileMetadata(
                original_name=file.name,
                mime_type=file.mime_type,
                size_bytes=file.size_bytes,
                page_count=context.page_count,
                pdf_metadata=context.pdf_result.metadata if context.pdf_result else None,
            ),
            confidence=context.confidence,
            processing_time_ms=(perf_counter() - context.started_at) * 1000,
            ocr_used=context.ocr_used,
            thumbnail_data_url=context.thumbnail_data_url,
        )

    @staticmethod
    def _fail(context: PipelineContext, exc: ProcessorError) -> None:
        file = context.file
        Log.exception(
            f"Processing failed for document {context.file_id}: {exc.message}",
            file_name=file.name,
            mime_type=file.mime_type,
            size_bytes=file.size_bytes,
            stage=context.stage.value,
            error_code=exc.code,
        )
        context.report(
            ProcessingStage.ERROR,
            0,
            error=ProcessingErrorInfo(
                code=exc.code,
                message=exc.message,
                recoverable=exc.recoverable,
            ),
        )


def build_processor(
    settings: Settings,
    embedding_provider: BaseEmbeddingProvider | None = None,
    ocr_engine: BaseOcrEngine | None = None,
) -> Processor:
    """Build a Processor with adapters selected from settings."""
    pdf_extractor = PdfExtractorFactory.create(settings)
    ocr_engine = ocr_engine or OcrEngineFactory.create(settings)
    if embedding_provider is None:
        embedding_provider = EmbeddingProviderFactory.create(settings)

    steps: list[PipelineStep] = [
        ValidateStep(FileValidator(settings.max_file_size_bytes)),
        ExtractTextStep(pdf_extractor),
        OcrStep(
            pdf_extractor,
            ocr_engine,
            ImagePreprocessor(),
            TextNormalizer(document_threshold=settings.misread_document_threshold),
            max_pages=settings.ocr_max_pages,
            render_scale=settings.ocr_render_scale,
        ),
        ExtractEntitiesStep(EntityExtractor()),
        ScoreStep(
            ConfidenceAggregator(
                ocr_discount=settings.confidence_ocr_discount,
                floor=settings.confidence_floor,
            )
        ),
        EmbedStep(embedding_provider, settings.embedding_dimensions),
        ThumbnailStep(
            pdf_extractor,
            ThumbnailGenerator(settings.thumbnail_max_size, settings.thumbnail_quality),
        ),
    ]
    default_options = ProcessingOptions(
        ocr_language=settings.ocr_language,
        min_text_for_no_ocr=settings.min_text_for_no_ocr,
    )
    return Processor(steps, ocr_engine, default_options)
