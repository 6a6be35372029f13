"""Contrast stretching applied to page images before OCR.

Receipts are often photographed under washed-out or uneven light. Stretching
the luminance range, rather than binarizing, keeps thin strokes intact while
expanding contrast.
"""

from typing import ClassVar

import numpy as np
from PIL import Image


class ImagePreprocessor:
    """Grayscale + 1% clipped linear contrast stretch. Output keeps input size."""

    LUMINANCE_WEIGHTS: ClassVar[np.ndarray] = np.array([0.2126, 0.7152, 0.0722])

    def __init__(self, clip_fraction: float = 0.01) -> None:
        self._clip_fraction = clip_fraction

    def preprocess(self, image: Image.Image) -> Image.Image:
        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)
        return Image.fromarray(self.preprocess_array(rgba))

    def preprocess_array(self, pixels: np.ndarray) -> np.ndarray:
        """Stretch an ``(height, width, 3|4)`` uint8 array; returns RGBA."""
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(f"Expected an RGB(A) pixel array, got shape {pixels.shape}")

        luminance = self._luminance(pixels)
        out = np.empty((*luminance.shape, 4), dtype=np.uint8)
        out[..., 3] = 255
        if luminance.size == 0:
            return out

        min_val, max_val = self._clip_bounds(luminance)
        scaled = (luminance.astype(np.float64) - min_val) * 255.0 / (max_val - min_val)
        stretched = np.clip(np.rint(scaled), 0, 255).astype(np.uint8)
        out[..., :3] = stretched[..., np.newaxis]
        return out

    def _luminance(self, pixels: np.ndarray) -> np.ndarray:
        rgb = pixels[..., :3].astype(np.float64)
        return np.clip(np.rint(rgb @ self.LUMINANCE_WEIGHTS), 0, 255).astype(np.uint8)

    def _clip_bounds(self, luminance: np.ndarray) -> tuple[int, int]:
        histogram = np.bincount(luminance.ravel(), minlength=256)
        threshold = luminance.size * self._clip_fraction

        min_val = int(np.argmax(np.cumsum(histogram) > threshold))
        max_val = 255 - int(np.argmax(np.cumsum(histogram[::-1]) > threshold))

        # All-black / all-white pages collapse the range.
        if max_val <= min_val:
            if min_val < 255:
                max_val = min_val + 1
            else:
                min_val, max_val = 254, 255
        return min_val, max_val
