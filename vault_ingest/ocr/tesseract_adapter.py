import threading
import time
from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import pytesseract
from PIL import Image

from vault_ingest.logging.logger import Log
from vault_ingest.ocr.base import BaseOcrEngine, OcrImage, OcrProgressCallback
from vault_ingest.ocr.exceptions import RecognitionError
from vault_ingest.processor.exceptions import ProcessorError
from vault_ingest.processor.models import OcrResult
from vault_ingest.resources.images import open_image
from vault_ingest.resources.lazy import LazyResource


@dataclass(frozen=True)
class _TesseractWorker:
    """Verified engine binary bound to a language and recognition config."""

    language: str
    config: str
    version: str


class TesseractAdapter(BaseOcrEngine):
    """Recognizes text with the Tesseract engine through pytesseract.

    The engine check and configuration happen once, on the first call, and are
    reused until :meth:`terminate` or a language change. Only one recognition
    may run at a time per adapter.
    """

    # 3 = fully automatic page segmentation, handles mixed receipt layouts.
    PAGE_SEGMENTATION_MODE: ClassVar[int] = 3

    def __init__(self, tesseract_cmd: str = "") -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._language = "eng"
        self._worker: LazyResource[_TesseractWorker] = LazyResource(
            self._start_worker, self._stop_worker
        )
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._worker.is_initialized

    def recognize(
        self,
        image: OcrImage,
        language: str = "eng",
        on_progress: OcrProgressCallback | None = None,
    ) -> OcrResult:
        if not self._lock.acquire(blocking=False):
            raise RecognitionError("OCR is already processing another image")
        started_at = time.perf_counter()
        try:
            worker = self._worker_for(language)
            _report(on_progress, 0)
            pil_image = self._to_pil(image)
            data = pytesseract.image_to_data(
                pil_image,
                lang=worker.language,
                config=worker.config,
                output_type=pytesseract.Output.DICT,
            )
            _report(on_progress, 50)
            text = pytesseract.image_to_string(
                pil_image, lang=worker.language, config=worker.config
            )
            _report(on_progress, 100)
        except ProcessorError:
            raise
        except Exception as exc:
            raise RecognitionError(f"OCR recognition failed: {exc}") from exc
        finally:
            self._lock.release()

        confidence = self._mean_confidence(data.get("conf", []))
        elapsed_ms = (time.perf_counter() - started_at) * 1000
        Log.debug(
            f"OCR recognized {len(text)} chars with confidence {confidence:.1f} "
            f"in {elapsed_ms:.0f}ms"
        )
        return OcrResult(text=text, confidence=confidence, processing_time_ms=elapsed_ms)

    def terminate(self) -> None:
        self._worker.release()

    def _worker_for(self, language: str) -> _TesseractWorker:
        if self._worker.is_initialized and self._language != language:
            self._worker.release()
        self._language = language
        return self._worker.get()

    def _start_worker(self) -> _TesseractWorker:
        try:
            version = str(pytesseract.get_tesseract_version())
        except Exception as exc:
            raise RecognitionError(f"Failed to initialize OCR: {exc}") from exc
        config = f"--psm {self.PAGE_SEGMENTATION_MODE} -c preserve_interword_spaces=1"
        Log.info(f"Tesseract {version} ready for language '{self._language}'")
        return _TesseractWorker(language=self._language, config=config, version=version)

    @staticmethod
    def _stop_worker(worker: _TesseractWorker) -> None:
        Log.debug(f"Released Tesseract worker for language '{worker.language}'")

    @staticmethod
    def _to_pil(image: OcrImage) -> Image.Image:
        """Normalize supported inputs to a Pillow image.

        Pixel buffers become Pillow images; pytesseract encodes them to a
        temporary PNG before invoking the engine.
        """
        if isinstance(image, Image.Image):
            return image
        if isinstance(image, np.ndarray):
            return Image.fromarray(image.astype(np.uint8))
        return open_image(image)

    @staticmethod
    def _mean_confidence(raw_confidences: list[object]) -> float:
        confidences = [float(str(value)) for value in raw_confidences]
        positive = [value for value in confidences if value > 0]
        return float(np.mean(positive)) if positive else 0.0


def _report(on_progress: OcrProgressCallback | None, value: int) -> None:
    if on_progress is not None:
        on_progress(value)
