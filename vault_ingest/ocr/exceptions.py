from vault_ingest.processor.exceptions import ProcessorError


class RecognitionError(ProcessorError):
    """Raised when the OCR engine fails to start or to recognize an image."""

    code = "OCR_ERROR"
