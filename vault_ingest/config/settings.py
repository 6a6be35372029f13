from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    pdf_engine: str = "pymupdf"
    min_text_per_page: int = 50
    min_text_for_no_ocr: int = 100
    max_file_size_bytes: int = 25 * 1024 * 1024

    ocr_engine: str = "tesseract"
    ocr_language: str = "eng"
    ocr_render_scale: float = 2.0
    ocr_max_pages: int = 5
    tesseract_cmd: str = ""

    misread_document_threshold: int = 2
    confidence_ocr_discount: float = 0.9
    confidence_floor: float = 0.3

    embedding_provider: str = "none"
    embedding_model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimensions: int = 384
    embedding_base_url: str = "http://localhost:11434/v1"
    embedding_api_key: str = ""
    embedding_timeout_seconds: int = 30

    thumbnail_max_size: int = 200
    thumbnail_quality: int = 80
