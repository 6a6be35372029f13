import threading
import uuid

from vault_ingest.processor.exceptions import ProcessingCancelledError


class CancellationToken:
    """Per-document cancellation flag, checked between pipeline stages.

    Safe to cancel from another thread than the one running the pipeline.
    """

    def __init__(self, file_id: str | None = None) -> None:
        self.file_id = file_id or str(uuid.uuid4())
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ProcessingCancelledError(self.file_id)
