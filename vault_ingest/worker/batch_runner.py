from collections.abc import Iterable
from time import perf_counter

from vault_ingest.logging.logger import Log
from vault_ingest.processor.exceptions import ProcessorError
from vault_ingest.processor.models import (
    BatchFailure,
    BatchProcessingResult,
    InputFile,
    ProcessingOptions,
)
from vault_ingest.processor.pipeline import ProgressCallback
from vault_ingest.processor.processor import Processor


class BatchRunner:
    """Process several files in order; one failure never stops the batch."""

    def __init__(self, processor: Processor) -> None:
        self._processor = processor

    def run(
        self,
        files: Iterable[InputFile],
        options: ProcessingOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchProcessingResult:
        started_at = perf_counter()
        result = BatchProcessingResult()

        for file in files:
            token = self._processor.create_cancel_token()
            try:
                document = self._processor.process_document(file, options, on_progress, token)
            except ProcessorError as exc:
                result.failed.append(
                    BatchFailure(file_id=token.file_id, file_name=file.name, error=exc.message)
                )
                Log.warning(f"Batch item {file.name} failed: {exc.message}")
                continue
            result.successful.append(document)

        result.total_time_ms = (perf_counter() - started_at) * 1000
        Log.info(
            f"Batch finished: {len(result.successful)} succeeded, {len(result.failed)} failed"
        )
        return result
