import pytest
from pydantic import ValidationError

from vault_ingest.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        assert Settings().app_env == "dev"

    def test_default_pdf_engine(self) -> None:
        assert Settings().pdf_engine == "pymupdf"

    def test_default_ocr(self) -> None:
        s = Settings()
        assert s.ocr_engine == "tesseract"
        assert s.ocr_language == "eng"
        assert s.ocr_max_pages == 5

    def test_default_thresholds(self) -> None:
        s = Settings()
        assert s.max_file_size_bytes == 25 * 1024 * 1024
        assert s.min_text_per_page == 50
        assert s.min_text_for_no_ocr == 100
        assert s.misread_document_threshold == 2

    def test_default_confidence_constants(self) -> None:
        s = Settings()
        assert s.confidence_ocr_discount == 0.9
        assert s.confidence_floor == 0.3

    def test_embedding_disabled_by_default(self) -> None:
        s = Settings()
        assert s.embedding_provider == "none"
        assert s.embedding_dimensions == 384


class TestSettingsFromEnv:
    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert Settings().log_level == "DEBUG"

    def test_loads_pdf_engine(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PDF_ENGINE", "pdfplumber")
        assert Settings().pdf_engine == "pdfplumber"

    def test_loads_embedding_dimensions(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBEDDING_DIMENSIONS", "768")
        assert Settings().embedding_dimensions == 768


class TestSettingsValidation:
    def test_invalid_max_pages_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCR_MAX_PAGES", "many")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_discount_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONFIDENCE_OCR_DISCOUNT", "abc")
        with pytest.raises(ValidationError):
            Settings()
