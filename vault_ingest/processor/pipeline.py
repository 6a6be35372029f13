from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from time import perf_counter

import numpy as np

from vault_ingest.extraction.models import ExtractedEntities
from vault_ingest.processor.cancellation import CancellationToken
from vault_ingest.processor.models import (
    DocumentSource,
    InputFile,
    PdfExtractionResult,
    ProcessingErrorInfo,
    ProcessingOptions,
    ProcessingProgress,
    ProcessingStage,
    ValidationResult,
)

ProgressCallback = Callable[[ProcessingProgress], None]


@dataclass(slots=True)
class PipelineContext:
    file_id: str
    file: InputFile
    options: ProcessingOptions
    cancel_token: CancellationToken
    on_progress: ProgressCallback | None = None
    started_at: float = field(default_factory=perf_counter)
    stage: ProcessingStage = ProcessingStage.VALIDATING
    validation: ValidationResult | None = None
    source: DocumentSource | None = None
    pdf_result: PdfExtractionResult | None = None
    raw_text: str = ""
    page_count: int | None = None
    ocr_used: bool = False
    entities: ExtractedEntities | None = None
    embedding: np.ndarray | None = None
    thumbnail_data_url: str | None = None
    confidence: float = 0.0

    def report(
        self,
        stage: ProcessingStage,
        progress: int,
        *,
        current_page: int | None = None,
        total_pages: int | None = None,
        error: ProcessingErrorInfo | None = None,
    ) -> None:
        self.stage = stage
        if self.on_progress is None:
            return
        self.on_progress(
            ProcessingProgress(
                file_id=self.file_id,
                file_name=self.file.name,
                stage=stage,
                progress=progress,
                current_page=current_page,
                total_pages=total_pages,
                error=error,
            )
        )


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
