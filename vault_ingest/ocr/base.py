from abc import ABC, abstractmethod
from collections.abc import Callable

import numpy as np
from PIL import Image

from vault_ingest.processor.models import OcrResult

OcrImage = bytes | Image.Image | np.ndarray
OcrProgressCallback = Callable[[int], None]


class BaseOcrEngine(ABC):
    """Contract for all OCR adapters."""

    @abstractmethod
    def recognize(
        self,
        image: OcrImage,
        language: str = "eng",
        on_progress: OcrProgressCallback | None = None,
    ) -> OcrResult:
        """Convert an image into text plus an overall confidence.

        Args:
            image: Encoded image bytes, a Pillow image, or an RGBA pixel array.
            language: Recognition language code, e.g. ``"eng"``.
            on_progress: Receives 0-100 as recognition advances.

        Returns:
            OcrResult with confidence on the engine's 0-100 scale.

        Raises:
            RecognitionError: if the engine cannot start or recognition fails.
        """

    @abstractmethod
    def terminate(self) -> None:
        """Release the cached engine instance, if any."""
