import asyncio
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

from vault_ingest.logging.logger import Log
from vault_ingest.processor.cancellation import CancellationToken
from vault_ingest.processor.models import (
    InputFile,
    ProcessedDocumentResult,
    ProcessingOptions,
    ProcessingProgress,
)
from vault_ingest.processor.pipeline import ProgressCallback
from vault_ingest.processor.processor import Processor


class ProcessingWorker:
    """Runs a Processor off the event loop on a dedicated thread.

    Callers await :meth:`process_document`; the blocking pipeline runs on a
    single-thread executor, so documents submitted to one worker are processed
    one at a time. Run several workers for parallelism.
    """

    def __init__(self, processor: Processor) -> None:
        self._processor = processor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vault-ingest")
        self._closed = False

    async def __aenter__(self) -> "ProcessingWorker":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.terminate()

    async def process_document(
        self,
        file: InputFile,
        options: ProcessingOptions | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ProcessedDocumentResult:
        """Process one file; progress events are delivered on the event loop thread.

        Pass a token from :meth:`create_cancel_token` to know the document id up
        front; otherwise it arrives with the first progress event.
        """
        if self._closed:
            raise RuntimeError("ProcessingWorker has been terminated")

        loop = asyncio.get_running_loop()
        token = cancel_token or self._processor.create_cancel_token()

        def forward(progress: ProcessingProgress) -> None:
            if on_progress is not None:
                loop.call_soon_threadsafe(on_progress, progress)

        return await loop.run_in_executor(
            self._executor,
            lambda: self._processor.process_document(file, options, forward, token),
        )

    def create_cancel_token(self) -> CancellationToken:
        return self._processor.create_cancel_token()

    def cancel(self, file_id: str) -> bool:
        return self._processor.cancel(file_id)

    async def terminate(self) -> None:
        if self._closed:
            return
        self._closed = True
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._processor.terminate)
        self._executor.shutdown(wait=True)
        Log.info("Processing worker stopped")
