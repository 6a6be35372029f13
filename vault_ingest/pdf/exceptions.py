from vault_ingest.processor.exceptions import ProcessorError


class PdfExtractionError(ProcessorError):
    """Raised when a PDF cannot be opened, parsed or rendered."""

    code = "PDF_EXTRACTION_ERROR"
